from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user, login_required
from sqlalchemy import func
from models import db
from models.phrase import Phrase, CEFR_LEVELS, DIFFICULTIES
from auth.utils import admin_required
from services.explanation_context import ExplanationContext
from services.language_utils import is_supported_code
from services.phrase_generation_service import create_generated_phrases
from services.answer_verification_service import verify_phrase_answer
from services.tts_service import synthesize_speech
from services.word_explanation_fixer import ensure_word_explanation_coverage, validate_phrase_word_explanations
from services.word_explanation_generator import ExplanationGenerationError
from services.word_explanation_store import WordExplanationStore
from services.word_lookup_service import get_word_explanation, get_grammar_explanation
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('phrases', __name__, url_prefix='/api/phrases')

REQUIRED_PHRASE_FIELDS = (
    'native_language_code', 'learning_language_code', 'native_text',
    'learning_text', 'difficulty', 'cefr_level'
)
OPTIONAL_PHRASE_FIELDS = ('category', 'situation_text', 'expected_answer', 'situation_explanation')


def _get_phrase_or_404(phrase_id):
    phrase = Phrase.query.get(phrase_id) if phrase_id else None
    if not phrase:
        return None, (jsonify({'success': False, 'error': 'Phrase not found'}), 404)
    return phrase, None


@bp.route('', methods=['GET'])
@login_required
def list_phrases():
    phrases = Phrase.query.order_by(Phrase.created_at.desc()).all()
    return jsonify({
        'success': True,
        'phrases': [phrase.to_dict() for phrase in phrases],
        'count': len(phrases)
    }), 200


@bp.route('', methods=['POST'])
@login_required
def create_phrase():
    """
    Create a phrase manually.

    Request body:
    {
        "native_language_code": "es",
        "learning_language_code": "de",
        "native_text": "¿Cómo pedirías un café?",
        "learning_text": "Wie würden Sie einen Kaffee bestellen?",
        "difficulty": "BEGINNER",
        "cefr_level": "A2",
        "category": "restaurant",            // optional
        "situation_text": "...",             // optional
        "expected_answer": "...",            // optional
        "situation_explanation": "..."       // optional
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    missing = [field for field in REQUIRED_PHRASE_FIELDS if not data.get(field)]
    if missing:
        return jsonify({'success': False, 'error': f'Missing required fields: {", ".join(missing)}'}), 400

    for field in ('native_language_code', 'learning_language_code'):
        if not is_supported_code(data[field]):
            return jsonify({'success': False, 'error': f'Unsupported language: {data[field]}'}), 400

    try:
        phrase = Phrase(**{field: data[field] for field in REQUIRED_PHRASE_FIELDS})
        for field in OPTIONAL_PHRASE_FIELDS:
            if data.get(field):
                setattr(phrase, field, data[field])
        db.session.add(phrase)
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Failed to create phrase: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to create phrase'}), 500

    return jsonify({'success': True, 'phrase': phrase.to_dict()}), 201


@bp.route('/<int:phrase_id>', methods=['GET'])
@login_required
def get_phrase(phrase_id):
    phrase, error = _get_phrase_or_404(phrase_id)
    if error:
        return error
    return jsonify({'success': True, 'phrase': phrase.to_dict()}), 200


@bp.route('/<int:phrase_id>', methods=['PUT'])
@admin_required
def update_phrase(phrase_id):
    phrase, error = _get_phrase_or_404(phrase_id)
    if error:
        return error

    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    try:
        for field in REQUIRED_PHRASE_FIELDS + OPTIONAL_PHRASE_FIELDS:
            if field not in data:
                continue
            if field.endswith('_language_code') and not is_supported_code(data[field]):
                return jsonify({'success': False, 'error': f'Unsupported language: {data[field]}'}), 400
            setattr(phrase, field, data[field])
        db.session.commit()
    except ValueError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Failed to update phrase {phrase_id}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to update phrase'}), 500

    return jsonify({'success': True, 'phrase': phrase.to_dict()}), 200


@bp.route('/<int:phrase_id>', methods=['DELETE'])
@admin_required
def delete_phrase(phrase_id):
    phrase, error = _get_phrase_or_404(phrase_id)
    if error:
        return error

    try:
        db.session.delete(phrase)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Failed to delete phrase {phrase_id}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to delete phrase'}), 500

    return jsonify({'success': True}), 200


@bp.route('/random', methods=['GET'])
@login_required
def random_phrase():
    """
    Random phrase, by default from the current user's language pair.

    Query params: native_language, learning_language, difficulty (all optional)
    """
    native_code = request.args.get('native_language') or current_user.native_language_code
    learning_code = request.args.get('learning_language') or current_user.learning_language_code
    difficulty = request.args.get('difficulty')

    if difficulty and difficulty not in DIFFICULTIES:
        return jsonify({'success': False, 'error': f'Invalid difficulty: {difficulty}'}), 400

    query = Phrase.query
    if native_code:
        query = query.filter_by(native_language_code=native_code)
    if learning_code:
        query = query.filter_by(learning_language_code=learning_code)
    if difficulty:
        query = query.filter_by(difficulty=difficulty)

    phrase = query.order_by(func.random()).first()
    if not phrase:
        return jsonify({'success': False, 'error': 'No phrases available'}), 404

    return jsonify({'success': True, 'phrase': phrase.to_dict()}), 200


@bp.route('/generate', methods=['POST'])
@admin_required
def generate():
    """
    Generate phrases with the LLM, then validate and repair their word explanations.

    Request body:
    {
        "native_language_code": "es",
        "learning_language_code": "de",
        "cefr_level": "A2",
        "category": "restaurant",
        "quantity": 5
    }

    Response (201):
    {
        "success": true,
        "phrases": [...],
        "requested": 5, "created": 5, "duplicates": 0,
        "validation": {
            "total_phrases": 5, "valid_phrases": 4, "invalid_phrases": 1, "average_coverage": 98.57,
            "phrases": [{"phrase_id": 1, "coverage_percent": 100.0, "missing_count": 0,
                         "extra_count": 0, "is_valid": true, "passes": 2}, ...]
        }
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    required = ('native_language_code', 'learning_language_code', 'cefr_level', 'category', 'quantity')
    if any(not data.get(field) for field in required):
        return jsonify({'success': False, 'error': 'All fields are required'}), 400

    if data['cefr_level'] not in CEFR_LEVELS:
        return jsonify({'success': False, 'error': 'Invalid CEFR level. Must be A1, A2, B1, B2, C1 or C2'}), 400

    try:
        result = create_generated_phrases(
            native_language_code=data['native_language_code'],
            learning_language_code=data['learning_language_code'],
            cefr_level=data['cefr_level'],
            category=data['category'],
            quantity=data['quantity'],
            max_passes=current_app.config.get('MAX_VALIDATION_PASSES', 3)
        )
    except LookupError:
        return jsonify({'success': False, 'error': 'Languages not found'}), 404
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except RuntimeError as e:
        return jsonify({'success': False, 'error': str(e)}), 502
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Phrase generation failed: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to generate phrases'}), 500

    status_code = 201 if result['success'] else 400
    return jsonify(result), status_code


@bp.route('/verify', methods=['POST'])
@login_required
def verify():
    """
    Verify a learner's answer for a phrase.

    Request body: {"phrase_id": 1, "user_answer": "Ich hätte gern einen Kaffee"}
    """
    data = request.get_json(silent=True) or {}
    phrase_id = data.get('phrase_id')
    user_answer = data.get('user_answer')

    if not phrase_id or not user_answer:
        return jsonify({'success': False, 'error': 'phrase_id and user_answer are required'}), 400

    phrase, error = _get_phrase_or_404(phrase_id)
    if error:
        return error

    try:
        result = verify_phrase_answer(current_user.id, phrase.id, user_answer)
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except RuntimeError as e:
        logger.error(f'Verification failed for phrase {phrase_id}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to verify phrase'}), 500

    return jsonify({'success': True, **result}), 200


@bp.route('/audio', methods=['POST'])
@login_required
def audio():
    """
    Speech for a phrase's learning text or for arbitrary text.

    Request body: {"phrase_id": 1} or {"text": "Guten Morgen"}
    """
    data = request.get_json(silent=True) or {}
    phrase_id = data.get('phrase_id')
    text = data.get('text')

    if not phrase_id and not text:
        return jsonify({'success': False, 'error': 'phrase_id or text is required'}), 400

    if phrase_id:
        phrase, error = _get_phrase_or_404(phrase_id)
        if error:
            return error
        text = phrase.learning_text

    try:
        result = synthesize_speech(text)
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except RuntimeError as e:
        return jsonify({'success': False, 'error': str(e)}), 502

    return jsonify({'success': True, **result}), 200


@bp.route('/word-explanation', methods=['POST'])
@login_required
def word_explanation():
    """Request body: {"phrase_id": 1, "word": "Kaffee"}"""
    data = request.get_json(silent=True) or {}
    if not data.get('phrase_id') or not data.get('word'):
        return jsonify({'success': False, 'error': 'phrase_id and word are required'}), 400

    phrase, error = _get_phrase_or_404(data['phrase_id'])
    if error:
        return error

    try:
        result = get_word_explanation(phrase, data['word'])
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except ExplanationGenerationError as e:
        return jsonify({'success': False, 'error': f'Failed to explain word: {str(e)}'}), 502

    return jsonify({'success': True, **result}), 200


@bp.route('/grammar-explanation', methods=['POST'])
@login_required
def grammar_explanation():
    """Request body: {"phrase_id": 1, "word": "einen"}"""
    data = request.get_json(silent=True) or {}
    if not data.get('phrase_id') or not data.get('word'):
        return jsonify({'success': False, 'error': 'phrase_id and word are required'}), 400

    phrase, error = _get_phrase_or_404(data['phrase_id'])
    if error:
        return error

    try:
        result = get_grammar_explanation(phrase, data['word'])
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400
    except ExplanationGenerationError as e:
        return jsonify({'success': False, 'error': f'Failed to explain grammar: {str(e)}'}), 502

    return jsonify({'success': True, **result}), 200


@bp.route('/<int:phrase_id>/word-explanations', methods=['GET'])
@login_required
def list_word_explanations(phrase_id):
    """Stored explanations of a phrase with a fresh coverage report"""
    phrase, error = _get_phrase_or_404(phrase_id)
    if error:
        return error

    store = WordExplanationStore()
    explanations = store.find_many(phrase.id, phrase.native_language_code, phrase.learning_language_code)
    report = validate_phrase_word_explanations(phrase, store=store)

    return jsonify({
        'success': True,
        'word_explanations': [e.to_dict() for e in explanations],
        'validation': report.model_dump()
    }), 200


@bp.route('/<int:phrase_id>/word-explanations/repair', methods=['POST'])
@admin_required
def repair_word_explanations(phrase_id):
    """Run validation and repair passes on a stored phrase"""
    phrase, error = _get_phrase_or_404(phrase_id)
    if error:
        return error

    outcome = ensure_word_explanation_coverage(
        ExplanationContext.from_phrase(phrase),
        max_passes=current_app.config.get('MAX_VALIDATION_PASSES', 3)
    )

    return jsonify({
        'success': True,
        'passes': outcome['passes'],
        'added': outcome['added'],
        'removed': outcome['removed'],
        'validation': outcome['report'].model_dump()
    }), 200
