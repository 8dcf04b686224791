"""
Word Explanation Store - persistence for per-word phrase explanations.

Explanations are keyed by (phrase_id, word, native_language_code,
learning_language_code). Words are normalized before every write and lookup.
A second create() for an existing key raises ExplanationConflictError, whatever
the database engine reports for the underlying uniqueness violation.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.word_explanation import WordExplanation
from services.text_normalization import normalize_word

logger = logging.getLogger(__name__)


class ExplanationConflictError(Exception):
    """An explanation already exists for the (phrase, word, language pair) key"""

    def __init__(self, phrase_id: int, word: str):
        super().__init__(f"Explanation for '{word}' already exists on phrase {phrase_id}")
        self.phrase_id = phrase_id
        self.word = word


def _clean_examples(examples: Optional[List[Any]]) -> Optional[List[Dict[str, str]]]:
    """Keep example pairs as plain dicts; None when there are none"""
    if not examples:
        return None

    cleaned = []
    for example in examples:
        if isinstance(example, dict):
            learning_text = example.get('learning_text') or ''
            native_text = example.get('native_text') or ''
        else:
            learning_text = getattr(example, 'learning_text', None) or ''
            native_text = getattr(example, 'native_text', None) or ''
        cleaned.append({'learning_text': learning_text, 'native_text': native_text})
    return cleaned


class WordExplanationStore:
    """SQLAlchemy-backed store for WordExplanation rows"""

    def create(
        self,
        phrase_id: int,
        word: str,
        native_language_code: str,
        learning_language_code: str,
        translation: str,
        explanation: str,
        examples: Optional[List[Any]] = None
    ) -> WordExplanation:
        """
        Insert and commit one explanation.

        Raises:
            ValueError: If the word normalizes to an empty string
            ExplanationConflictError: If the key already exists
            SQLAlchemyError: On any other database failure
        """
        normalized = normalize_word(word)
        if not normalized:
            raise ValueError(f"Cannot store an explanation for empty word: {word!r}")

        if self.find_one(phrase_id, normalized, native_language_code, learning_language_code):
            raise ExplanationConflictError(phrase_id, normalized)

        record = WordExplanation(
            phrase_id=phrase_id,
            word=normalized,
            native_language_code=native_language_code,
            learning_language_code=learning_language_code,
            translation=translation,
            explanation=explanation,
            examples_json=_clean_examples(examples)
        )

        try:
            db.session.add(record)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            # Lost a race with a concurrent insert of the same key; other
            # integrity failures (e.g. unknown phrase) propagate unchanged
            if self.find_one(phrase_id, normalized, native_language_code, learning_language_code):
                raise ExplanationConflictError(phrase_id, normalized)
            raise
        except SQLAlchemyError:
            db.session.rollback()
            raise

        logger.debug(f"Stored explanation: phrase_id={phrase_id}, word='{normalized}'")
        return record

    def delete_many(
        self,
        phrase_id: int,
        word: str,
        native_language_code: str,
        learning_language_code: str
    ) -> int:
        """Delete every explanation for the key; returns the number of rows removed"""
        try:
            deleted = WordExplanation.query.filter_by(
                phrase_id=phrase_id,
                word=normalize_word(word),
                native_language_code=native_language_code,
                learning_language_code=learning_language_code
            ).delete()
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            raise
        return deleted

    def find_many(
        self,
        phrase_id: int,
        native_language_code: str,
        learning_language_code: str
    ) -> List[WordExplanation]:
        return WordExplanation.query.filter_by(
            phrase_id=phrase_id,
            native_language_code=native_language_code,
            learning_language_code=learning_language_code
        ).order_by(WordExplanation.id).all()

    def find_one(
        self,
        phrase_id: int,
        word: str,
        native_language_code: str,
        learning_language_code: str
    ) -> Optional[WordExplanation]:
        return WordExplanation.query.filter_by(
            phrase_id=phrase_id,
            word=normalize_word(word),
            native_language_code=native_language_code,
            learning_language_code=learning_language_code
        ).first()
