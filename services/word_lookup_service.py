"""
Word Lookup Service - on-demand word and grammar explanations for a phrase.

Stored explanations are returned as they are. A word without one is explained
by the LLM; it is stored only when it is an important word of the explained
sentence, so a lookup never adds an extra word to the coverage set.
"""

import logging
from typing import Any, Dict

from models import db
from models.phrase import Phrase
from services.explanation_context import ExplanationContext
from services.important_words import get_word_filter
from services.text_normalization import normalize_word, unique_tokens
from services.word_explanation_generator import explain_grammar, explain_word
from services.word_explanation_store import ExplanationConflictError, WordExplanationStore

logger = logging.getLogger(__name__)


def _is_explained_word(phrase: Phrase, normalized_word: str) -> bool:
    word_filter = get_word_filter()
    return any(
        token.normalized == normalized_word
        and word_filter.is_important(token.normalized, phrase.learning_language_code)
        for token in unique_tokens(phrase.explained_sentence)
    )


def get_word_explanation(phrase: Phrase, word: str, store: WordExplanationStore = None) -> Dict[str, Any]:
    """
    Explanation of one word of a phrase, generating it if missing.

    A generated explanation is stored only for an important word of
    phrase.explained_sentence.

    Returns:
        dict: word, translation, explanation, examples, cached (bool), stored (bool)

    Raises:
        ValueError: If the word is empty
        ExplanationGenerationError: If generation fails
    """
    store = store or WordExplanationStore()
    normalized = normalize_word(word)
    if not normalized:
        raise ValueError("Word cannot be empty")

    existing = store.find_one(phrase.id, normalized, phrase.native_language_code, phrase.learning_language_code)
    if existing:
        return {**existing.to_dict(), "cached": True, "stored": True}

    entry = explain_word(normalized, ExplanationContext.from_phrase(phrase))

    if not _is_explained_word(phrase, entry.word):
        logger.info(f"Not storing explanation for '{entry.word}', not an important word of phrase {phrase.id}")
        return {
            "id": None,
            "phrase_id": phrase.id,
            "word": entry.word,
            "translation": entry.translation,
            "explanation": entry.explanation,
            "examples": [example.model_dump() for example in entry.examples],
            "grammar_explanation": None,
            "cached": False,
            "stored": False
        }

    try:
        record = store.create(
            phrase_id=phrase.id,
            word=entry.word,
            native_language_code=phrase.native_language_code,
            learning_language_code=phrase.learning_language_code,
            translation=entry.translation,
            explanation=entry.explanation,
            examples=entry.examples
        )
    except ExplanationConflictError:
        # Stored concurrently by another request
        record = store.find_one(phrase.id, normalized, phrase.native_language_code, phrase.learning_language_code)

    return {**record.to_dict(), "cached": False, "stored": True}


def get_grammar_explanation(phrase: Phrase, word: str, store: WordExplanationStore = None) -> Dict[str, Any]:
    """
    Grammar analysis of a phrase centred on one word.

    Cached on the word's stored explanation when one exists.

    Raises:
        ValueError: If the word is empty
        ExplanationGenerationError: If generation fails
    """
    store = store or WordExplanationStore()
    normalized = normalize_word(word)
    if not normalized:
        raise ValueError("Word cannot be empty")

    existing = store.find_one(phrase.id, normalized, phrase.native_language_code, phrase.learning_language_code)
    if existing and existing.grammar_explanation:
        return {"word": word, "grammar_explanation": existing.grammar_explanation, "cached": True}

    grammar_explanation = explain_grammar(word, ExplanationContext.from_phrase(phrase))

    if existing:
        existing.grammar_explanation = grammar_explanation
        db.session.commit()
        logger.info(f"Cached grammar explanation for '{normalized}' on phrase_id={phrase.id}")

    return {"word": word, "grammar_explanation": grammar_explanation, "cached": False}
