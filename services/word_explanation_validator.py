"""
Word Explanation Validator - scores how well a set of word explanations covers a sentence.

Pure computation: no database access, no LLM calls. The same sentence and
explanations always yield the same report.

Rules:
- Every important word of the sentence (see services.important_words) needs an
  explanation; words are compared by their normalized form and a word repeated
  in the sentence counts once.
- An explanation whose word is not an important word of the sentence is an
  extra and always makes the set invalid.
- coverage_percent = (important - missing) / important * 100, rounded to 2
  places, and 100 when the sentence has no important words.
- is_valid holds iff coverage is 100 and there are no extras.
"""

import logging
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, Field

from services.important_words import ImportantWordFilter, default_word_filter
from services.text_normalization import normalize_word, unique_tokens

logger = logging.getLogger(__name__)


class ValidationReport(BaseModel):
    """Coverage of a sentence's important words by a set of explanations"""
    phrase_id: Optional[int] = None
    sentence: str
    language_code: Optional[str] = None
    total_important_words: int
    explained_count: int = Field(description="Number of explanations that were evaluated")
    missing_words: List[str] = Field(description="Original surface forms of unexplained important words")
    extra_words: List[str] = Field(description="Words of explanations that match no important word")
    coverage_percent: float
    is_valid: bool


def explanation_word(explanation: Any) -> str:
    """Word field of an explanation given as a model instance or a dict"""
    if isinstance(explanation, dict):
        return explanation.get('word') or ''
    return getattr(explanation, 'word', None) or ''


def validate_word_explanations(
    sentence: str,
    explanations: Iterable[Any],
    language_code: Optional[str] = None,
    word_filter: Optional[ImportantWordFilter] = None,
    phrase_id: Optional[int] = None
) -> ValidationReport:
    """
    Validate that every important word of a sentence has exactly one matching explanation.

    Args:
        sentence: Sentence in the learning language
        explanations: Objects or dicts with a 'word' field; words may carry
                      any casing or punctuation
        language_code: Language of the sentence, selects the short-word allow-list
        word_filter: Important-word filter; the built-in table when omitted
        phrase_id: Carried into the report for logging only

    Returns:
        ValidationReport

    Examples:
        >>> report = validate_word_explanations("Wie würden Sie einen Kaffee bestellen?", [], 'de')
        >>> report.missing_words
        ['Wie', 'würden', 'Sie', 'einen', 'Kaffee', 'bestellen?']
        >>> report.coverage_percent, report.is_valid
        (0.0, False)
    """
    word_filter = word_filter or default_word_filter
    explanations = list(explanations)

    important_tokens = [
        token for token in unique_tokens(sentence)
        if word_filter.is_important(token.normalized, language_code)
    ]
    important_words = {token.normalized for token in important_tokens}

    explained_words = {normalize_word(explanation_word(e)) for e in explanations}

    logger.debug(
        f"Validating phrase_id={phrase_id}: important={sorted(important_words)}, "
        f"explained={sorted(explained_words)}"
    )

    missing_words = []
    for token in important_tokens:
        if token.normalized not in explained_words:
            logger.debug(f"Missing explanation: '{token.normalized}' (original: '{token.original}')")
            missing_words.append(token.original)

    extra_words = []
    for explanation in explanations:
        word = explanation_word(explanation)
        if normalize_word(word) not in important_words:
            logger.debug(f"Extra explanation: '{word}' is not an important word of the sentence")
            extra_words.append(word)

    if important_tokens:
        explained_important = len(important_tokens) - len(missing_words)
        coverage = round(explained_important / len(important_tokens) * 100, 2)
    else:
        coverage = 100.0

    is_valid = coverage == 100 and not extra_words

    logger.info(
        f"Word explanation validation phrase_id={phrase_id}: important={len(important_tokens)}, "
        f"missing={len(missing_words)}, extra={len(extra_words)}, "
        f"coverage={coverage:.1f}%, valid={is_valid}"
    )

    return ValidationReport(
        phrase_id=phrase_id,
        sentence=sentence,
        language_code=language_code,
        total_important_words=len(important_tokens),
        explained_count=len(explanations),
        missing_words=missing_words,
        extra_words=extra_words,
        coverage_percent=coverage,
        is_valid=is_valid
    )
