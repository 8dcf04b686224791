"""
Unit tests for WordExplanationStore.

Tests persistence of word explanations including:
- Word normalization on write and lookup
- Duplicate keys reported as ExplanationConflictError
- Deletion and lookup by (phrase, word, language pair)
"""

import sys
import os
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from models import db
from models.language import Language
from models.phrase import Phrase
from models.word_explanation import WordExplanation
from services.llm_models.explanation_models import WordExample
from services.word_explanation_store import ExplanationConflictError, WordExplanationStore


@pytest.fixture(scope='function')
def app_context():
    """Create a fresh app context and database for each test"""
    app = create_app('testing')

    with app.app_context():
        db.create_all()

        db.session.add_all([
            Language(code='es', original_name='Español', en_name='Spanish', display_order=1),
            Language(code='de', original_name='Deutsch', en_name='German', display_order=2),
            Language(code='en', original_name='English', en_name='English', display_order=3),
        ])
        db.session.commit()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def phrase(app_context):
    phrase = Phrase(
        native_language_code='es',
        learning_language_code='de',
        native_text='¿Cómo pedirías un café?',
        learning_text='Wie würden Sie einen Kaffee bestellen?',
        difficulty='BEGINNER',
        cefr_level='A2'
    )
    db.session.add(phrase)
    db.session.commit()
    return phrase


@pytest.fixture
def store():
    return WordExplanationStore()


def create(store, phrase, word, native='es', learning='de', **kwargs):
    return store.create(
        phrase_id=phrase.id,
        word=word,
        native_language_code=native,
        learning_language_code=learning,
        translation=kwargs.get('translation', 'café'),
        explanation=kwargs.get('explanation', 'Sustantivo, objeto directo'),
        examples=kwargs.get('examples')
    )


class TestCreate:
    """Tests for WordExplanationStore.create()"""

    def test_stores_normalized_word(self, store, phrase):
        record = create(store, phrase, ' Kaffee? ')

        assert record.id is not None
        assert record.word == 'kaffee'
        assert store.find_one(phrase.id, 'KAFFEE', 'es', 'de') is not None

    def test_duplicate_key_raises_conflict_and_keeps_one_record(self, store, phrase):
        create(store, phrase, 'kaffee')

        with pytest.raises(ExplanationConflictError) as exc_info:
            create(store, phrase, 'Kaffee!', translation='otro')

        assert exc_info.value.word == 'kaffee'
        assert exc_info.value.phrase_id == phrase.id
        records = WordExplanation.query.filter_by(phrase_id=phrase.id, word='kaffee').all()
        assert len(records) == 1
        assert records[0].translation == 'café'

    def test_same_word_for_other_language_pair_is_not_a_conflict(self, store, phrase):
        create(store, phrase, 'kaffee')
        create(store, phrase, 'kaffee', native='en')

        assert WordExplanation.query.filter_by(phrase_id=phrase.id, word='kaffee').count() == 2

    def test_session_usable_after_conflict(self, store, phrase):
        create(store, phrase, 'kaffee')
        with pytest.raises(ExplanationConflictError):
            create(store, phrase, 'kaffee')

        create(store, phrase, 'bestellen')

        assert len(store.find_many(phrase.id, 'es', 'de')) == 2

    def test_empty_word_raises_value_error(self, store, phrase):
        with pytest.raises(ValueError):
            create(store, phrase, '?!')

    def test_examples_stored_as_plain_dicts(self, store, phrase):
        examples = [
            WordExample(learning_text='Ein Kaffee, bitte.', native_text='Un café, por favor.'),
            {'learning_text': 'Der Kaffee ist heiß.', 'native_text': 'El café está caliente.'},
        ]

        record = create(store, phrase, 'kaffee', examples=examples)

        assert record.examples_json == [
            {'learning_text': 'Ein Kaffee, bitte.', 'native_text': 'Un café, por favor.'},
            {'learning_text': 'Der Kaffee ist heiß.', 'native_text': 'El café está caliente.'},
        ]
        assert record.to_dict()['examples'][0]['learning_text'] == 'Ein Kaffee, bitte.'

    def test_no_examples_stored_as_none(self, store, phrase):
        record = create(store, phrase, 'kaffee', examples=[])

        assert record.examples_json is None
        assert record.to_dict()['examples'] == []


class TestDeleteAndFind:
    """Tests for delete_many(), find_many() and find_one()"""

    def test_delete_many_returns_removed_count(self, store, phrase):
        create(store, phrase, 'foo')
        create(store, phrase, 'kaffee')

        assert store.delete_many(phrase.id, 'Foo.', 'es', 'de') == 1
        assert store.delete_many(phrase.id, 'foo', 'es', 'de') == 0
        assert [e.word for e in store.find_many(phrase.id, 'es', 'de')] == ['kaffee']

    def test_find_many_is_scoped_to_language_pair_and_ordered(self, store, phrase):
        create(store, phrase, 'wie')
        create(store, phrase, 'kaffee')
        create(store, phrase, 'bestellen', native='en')

        words = [e.word for e in store.find_many(phrase.id, 'es', 'de')]

        assert words == ['wie', 'kaffee']

    def test_find_one_missing_returns_none(self, store, phrase):
        assert store.find_one(phrase.id, 'kaffee', 'es', 'de') is None

    def test_deleting_phrase_removes_explanations(self, store, phrase):
        create(store, phrase, 'kaffee')

        db.session.delete(phrase)
        db.session.commit()

        assert WordExplanation.query.count() == 0
