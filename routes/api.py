from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from models.language import Language
from models import db
from services.language_utils import is_supported_code
from services.stats_service import get_user_stats
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('api', __name__, url_prefix='/api')


@bp.route('/languages', methods=['GET'])
def get_languages():
    """
    Get all supported languages ordered by display_order.

    Returns:
        JSON array of language objects with code, en_name, original_name, display_order
    """
    try:
        languages = Language.query.order_by(Language.display_order).all()
        languages_data = [lang.to_dict() for lang in languages]

        return jsonify({
            'success': True,
            'data': languages_data,
            'count': len(languages_data)
        }), 200

    except Exception as e:
        logger.exception(f'Failed to list languages: {str(e)}')
        return jsonify({
            'success': False,
            'error': str(e)
        }), 500


@bp.route('/stats', methods=['GET'])
@login_required
def get_stats():
    """Learning statistics of the current user"""
    try:
        return jsonify({'success': True, **get_user_stats(current_user)}), 200
    except Exception as e:
        logger.exception(f'Failed to compute stats for user {current_user.id}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to get statistics'}), 500


@bp.route('/user/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify({'success': True, 'user': current_user.to_dict()}), 200


@bp.route('/user/profile', methods=['PUT'])
@login_required
def update_profile():
    """
    Update the current user's language pair and/or password.

    Request body (all optional):
    {
        "native_language_code": "es",
        "learning_language_code": "de",
        "password": "new-secret"
    }
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No JSON data provided'}), 400

    try:
        for field in ('native_language_code', 'learning_language_code'):
            if field in data:
                code = data[field]
                if code and not is_supported_code(code):
                    return jsonify({'success': False, 'error': f'Unsupported language: {code}'}), 400
                setattr(current_user, field, code or None)

        if data.get('password'):
            current_user.set_password(data['password'])

        db.session.commit()
        logger.info(f'Updated profile for user {current_user.email}')
        return jsonify({'success': True, 'user': current_user.to_dict()}), 200

    except ValueError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': str(e)}), 400
    except Exception as e:
        db.session.rollback()
        logger.exception(f'Error updating profile for user {current_user.email}: {str(e)}')
        return jsonify({'success': False, 'error': 'Failed to update profile'}), 500
