"""
Unit tests for answer verification.

Tests grading and progress storage including:
- Grading result mapping and score clamping
- Fallback result when the LLM call fails
- UserPhraseProgress persistence
"""

import sys
import os
import pytest
from unittest.mock import patch, MagicMock

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from models import db
from models.language import Language
from models.phrase import Phrase
from models.user import User
from models.user_phrase_progress import UserPhraseProgress
from services.answer_verification_service import FALLBACK_FEEDBACK, grade_answer, verify_phrase_answer
from services.llm_models.verification_models import AnswerVerification


@pytest.fixture(scope='function')
def app_context():
    """Create a fresh app context and database for each test"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

        db.session.add_all([
            Language(code='es', original_name='Español', en_name='Spanish', display_order=1),
            Language(code='de', original_name='Deutsch', en_name='German', display_order=2),
        ])
        db.session.commit()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def user(app_context):
    user = User(email='learner@example.com', native_language_code='es', learning_language_code='de')
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def phrase(app_context):
    phrase = Phrase(
        native_language_code='es',
        learning_language_code='de',
        native_text='¿Cómo pedirías un café?',
        learning_text='Ich hätte gern einen Kaffee.',
        situation_text='Wie würden Sie einen Kaffee bestellen?',
        expected_answer='Ich hätte gern einen Kaffee, bitte.',
        difficulty='BEGINNER',
        cefr_level='A2'
    )
    db.session.add(phrase)
    db.session.commit()
    return phrase


def mock_verification(mock_get_llm_client, **fields):
    client = MagicMock()
    client.create_structured_completion.return_value = {
        'parsed_object': AnswerVerification(**fields),
        'raw_content': '{}',
        'model': 'gpt-4o-mini',
        'usage': {}
    }
    mock_get_llm_client.return_value = client
    return client


class TestGradeAnswer:
    """Tests for grade_answer()"""

    @patch('services.answer_verification_service.get_llm_client')
    def test_maps_llm_result(self, mock_get_llm_client):
        mock_verification(
            mock_get_llm_client,
            is_correct=True, feedback='Muy bien', accuracy_score=95,
            words_learned=['Kaffee', '  ', 'bitte'], words_forgotten=[]
        )

        result = grade_answer('¿Cómo pedirías un café?', 'Einen Kaffee, bitte', 'Ich hätte gern einen Kaffee.', 'BEGINNER')

        assert result == {
            'is_correct': True,
            'feedback': 'Muy bien',
            'accuracy_score': 95,
            'words_learned': ['Kaffee', 'bitte'],
            'words_forgotten': None
        }

    @pytest.mark.parametrize('score, expected', [(150, 100), (-5, 0), (42, 42)])
    @patch('services.answer_verification_service.get_llm_client')
    def test_score_is_clamped(self, mock_get_llm_client, score, expected):
        mock_verification(mock_get_llm_client, is_correct=False, feedback='...', accuracy_score=score)

        result = grade_answer('a', 'b', 'c', 'BEGINNER')

        assert result['accuracy_score'] == expected

    @patch('services.answer_verification_service.get_llm_client')
    def test_llm_failure_returns_fallback(self, mock_get_llm_client):
        mock_get_llm_client.side_effect = ValueError('OPENAI_API_KEY not found in environment variables')

        result = grade_answer('a', 'b', 'c', 'BEGINNER')

        assert result['is_correct'] is False
        assert result['accuracy_score'] == 0
        assert result['feedback'] == FALLBACK_FEEDBACK


class TestVerifyPhraseAnswer:
    """Tests for verify_phrase_answer()"""

    @patch('services.answer_verification_service.get_llm_client')
    def test_stores_progress(self, mock_get_llm_client, user, phrase):
        client = mock_verification(
            mock_get_llm_client,
            is_correct=True, feedback='Correcto', accuracy_score=90, words_learned=['gern']
        )

        result = verify_phrase_answer(user.id, phrase.id, '  Ich möchte einen Kaffee  ')

        assert result['is_correct'] is True
        progress = UserPhraseProgress.query.get(result['progress_id'])
        assert progress.user_answer == 'Ich möchte einen Kaffee'
        assert progress.accuracy_score == 90
        assert progress.words_learned_json == ['gern']

        prompt = client.create_structured_completion.call_args.kwargs['messages'][1]['content']
        assert 'Ich hätte gern einen Kaffee, bitte.' in prompt

    @patch('services.answer_verification_service.get_llm_client')
    def test_fallback_result_is_stored(self, mock_get_llm_client, user, phrase):
        mock_get_llm_client.side_effect = RuntimeError('timeout')

        result = verify_phrase_answer(user.id, phrase.id, 'Kaffee')

        assert result['is_correct'] is False
        assert UserPhraseProgress.query.count() == 1

    def test_empty_answer(self, user, phrase):
        with pytest.raises(ValueError):
            verify_phrase_answer(user.id, phrase.id, '   ')

    def test_unknown_phrase(self, user):
        with pytest.raises(ValueError):
            verify_phrase_answer(user.id, 999, 'Kaffee')
