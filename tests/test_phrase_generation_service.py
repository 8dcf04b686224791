"""
Tests for the phrase generation service.

The LLM client is mocked; missing-explanation repair uses a fake generator.
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
from models.word_explanation import WordExplanation
from services.llm_models.explanation_models import WordExplanationEntry
from services.llm_models.phrase_models import GeneratedPhrase, PhraseGenerationResponse
from services.phrase_generation_service import create_generated_phrases, summarize_validation
from services.word_explanation_validator import validate_word_explanations


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


def explained(words):
    return [WordExplanationEntry(word=w, translation='t', explanation='e') for w in words]


def llm_response(phrases):
    return {
        'parsed_object': PhraseGenerationResponse(phrases=phrases),
        'raw_content': '{}',
        'model': 'gpt-4o-mini',
        'usage': {'prompt_tokens': 10, 'completion_tokens': 20, 'total_tokens': 30}
    }


def mock_client(mock_get_llm_client, phrases):
    client = MagicMock()
    client.create_structured_completion.return_value = llm_response(phrases)
    mock_get_llm_client.return_value = client
    return client


def fill_all(missing_words, context):
    return explained(missing_words)


def fill_nothing(missing_words, context):
    return []


KAFFEE = GeneratedPhrase(
    native_text='¿Cómo pedirías un café?',
    learning_text='Ich hätte gern einen Kaffee.',
    situation_text='Wie würden Sie einen Kaffee bestellen?',
    expected_answer='Ich hätte gern einen Kaffee.',
    situation_explanation='Pedir un café en una cafetería',
    word_explanations=explained(['wie', 'würden', 'sie', 'einen', 'kaffee', 'bestellen'])
)

RECHNUNG = GeneratedPhrase(
    native_text='¿Cómo pedirías la cuenta?',
    learning_text='Die Rechnung, bitte.',
    situation_text='Wie fragen Sie nach der Rechnung?',
    expected_answer='Die Rechnung, bitte.',
    word_explanations=explained(['wie', 'fragen', 'pizza'])
)


class TestCreateGeneratedPhrases:
    """Tests for create_generated_phrases()"""

    @patch('services.phrase_generation_service.get_llm_client')
    def test_creates_phrases_and_repairs_explanations(self, mock_get_llm_client, app_context):
        mock_client(mock_get_llm_client, [KAFFEE, RECHNUNG])

        result = create_generated_phrases('es', 'de', 'A2', 'restaurant', 2, generate_missing=fill_all)

        assert result['success'] is True
        assert result['requested'] == 2
        assert result['created'] == 2
        assert result['duplicates'] == 0

        validation = result['validation']
        assert validation['total_phrases'] == 2
        assert validation['valid_phrases'] == 2
        assert validation['invalid_phrases'] == 0
        assert validation['average_coverage'] == 100

        kaffee_summary, rechnung_summary = validation['phrases']
        assert kaffee_summary['passes'] == 1
        assert rechnung_summary['passes'] == 2
        assert rechnung_summary['is_valid'] is True

        phrase = Phrase.query.filter_by(native_text='¿Cómo pedirías la cuenta?').first()
        assert phrase.difficulty == 'BEGINNER'
        assert phrase.category == 'restaurant'
        words = {e.word for e in WordExplanation.query.filter_by(phrase_id=phrase.id)}
        assert words == {'wie', 'fragen', 'sie', 'nach', 'der', 'rechnung'}

    @patch('services.phrase_generation_service.get_llm_client')
    def test_invalid_phrase_is_still_created(self, mock_get_llm_client, app_context):
        mock_client(mock_get_llm_client, [RECHNUNG])

        result = create_generated_phrases('es', 'de', 'B1', 'restaurant', 1, generate_missing=fill_nothing)

        assert result['success'] is True
        assert result['created'] == 1
        summary = result['validation']['phrases'][0]
        assert summary['is_valid'] is False
        assert summary['passes'] == 3
        assert summary['extra_count'] == 0
        assert summary['missing_count'] == 4
        assert Phrase.query.count() == 1
        assert Phrase.query.first().difficulty == 'INTERMEDIATE'

    @patch('services.phrase_generation_service.get_llm_client')
    def test_skips_phrases_that_already_exist(self, mock_get_llm_client, app_context):
        db.session.add(Phrase(
            native_language_code='es', learning_language_code='de',
            native_text='¿cómo pedirías un café? ', learning_text='Einen Kaffee, bitte.',
            difficulty='BEGINNER', cefr_level='A1', category='cafe'
        ))
        db.session.commit()
        mock_client(mock_get_llm_client, [KAFFEE, RECHNUNG])

        result = create_generated_phrases('es', 'de', 'A2', 'restaurant', 2, generate_missing=fill_all)

        assert result['created'] == 1
        assert result['duplicates'] == 1
        assert result['phrases'][0]['native_text'] == '¿Cómo pedirías la cuenta?'

    @patch('services.phrase_generation_service.get_llm_client')
    def test_duplicates_within_batch_are_dropped(self, mock_get_llm_client, app_context):
        mock_client(mock_get_llm_client, [KAFFEE, KAFFEE.model_copy()])

        result = create_generated_phrases('es', 'de', 'A2', 'restaurant', 2, generate_missing=fill_all)

        assert result['created'] == 1

    @patch('services.phrase_generation_service.get_llm_client')
    def test_nothing_new_generated(self, mock_get_llm_client, app_context):
        mock_client(mock_get_llm_client, [])

        result = create_generated_phrases('es', 'de', 'A2', 'restaurant', 3, generate_missing=fill_all)

        assert result['success'] is False
        assert result['created'] == 0
        assert 'error' in result

    @patch('services.phrase_generation_service.get_llm_client')
    def test_llm_failure_raises_runtime_error(self, mock_get_llm_client, app_context):
        client = MagicMock()
        client.create_structured_completion.side_effect = RuntimeError('timeout')
        mock_get_llm_client.return_value = client

        with pytest.raises(RuntimeError):
            create_generated_phrases('es', 'de', 'A2', 'restaurant', 1, generate_missing=fill_all)

        assert Phrase.query.count() == 0

    @pytest.mark.parametrize('cefr_level, category, quantity', [
        ('D1', 'restaurant', 1),
        ('A1', '  ', 1),
        ('A1', 'restaurant', 0),
        ('A1', 'restaurant', 51),
        ('A1', 'restaurant', '5'),
        ('A1', 'restaurant', True),
    ])
    def test_invalid_arguments(self, app_context, cefr_level, category, quantity):
        with pytest.raises(ValueError):
            create_generated_phrases('es', 'de', cefr_level, category, quantity)

    def test_unknown_language(self, app_context):
        with pytest.raises(LookupError):
            create_generated_phrases('es', 'xx', 'A1', 'restaurant', 1)


class TestSummarizeValidation:
    """Tests for summarize_validation()"""

    def test_empty_batch(self):
        assert summarize_validation([]) == {
            'total_phrases': 0,
            'valid_phrases': 0,
            'invalid_phrases': 0,
            'average_coverage': 0.0
        }

    def test_average_coverage(self):
        reports = [
            validate_word_explanations('Ich trinke Kaffee', [{'word': w} for w in ['ich', 'trinke', 'kaffee']], 'de'),
            validate_word_explanations('Ich trinke Kaffee', [], 'de'),
        ]

        summary = summarize_validation(reports)

        assert summary['valid_phrases'] == 1
        assert summary['invalid_phrases'] == 1
        assert summary['average_coverage'] == 50.0
