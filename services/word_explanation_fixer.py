"""
Word Explanation Fixer - converges a phrase's word explanations toward exact coverage.

One repair pass:
1. Delete stored explanations for every extra word of the last report
2. Ask the generator for explanations of all missing words
3. Keep only complete candidates whose normalized word was requested
4. Insert them; an already-existing key counts as added, any other
   persistence error skips that candidate

ensure_word_explanation_coverage() alternates validation and repair for at
most max_passes validations (1 initial + max_passes-1 repairs) and stops as
soon as a report is valid. Running out of passes is not an error: the last
report is returned and the phrase keeps its partial coverage.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.phrase import Phrase
from services.explanation_context import ExplanationContext
from services.important_words import ImportantWordFilter, get_word_filter
from services.text_normalization import normalize_word
from services.word_explanation_generator import generate_missing_explanations
from services.word_explanation_store import ExplanationConflictError, WordExplanationStore
from services.word_explanation_validator import (
    ValidationReport,
    explanation_word,
    validate_word_explanations
)

logger = logging.getLogger(__name__)

# 1 initial validation + up to 2 repair-and-revalidate cycles
MAX_VALIDATION_PASSES = 3

GenerateMissing = Callable[[List[str], ExplanationContext], List[Any]]


def _field(candidate: Any, name: str) -> Any:
    if isinstance(candidate, dict):
        return candidate.get(name)
    return getattr(candidate, name, None)


def repair_word_explanations(
    context: ExplanationContext,
    report: ValidationReport,
    generate_missing: GenerateMissing = generate_missing_explanations,
    store: Optional[WordExplanationStore] = None
) -> Dict[str, int]:
    """
    Remove extra explanations and fill missing ones for one phrase.

    Args:
        context: Phrase sentence and language pair
        report: The latest validation report for the phrase
        generate_missing: Callable(missing_words, context) returning candidate
                          explanations (objects or dicts with word, translation,
                          explanation, examples)
        store: Explanation store (default: WordExplanationStore())

    Returns:
        dict: {"added": int, "removed": int}
    """
    store = store or WordExplanationStore()
    added = 0
    removed = 0

    if report.extra_words:
        logger.info(f"Removing {len(report.extra_words)} extra explanations for phrase_id={context.phrase_id}")

    for extra_word in report.extra_words:
        normalized = normalize_word(extra_word)
        try:
            count = store.delete_many(
                context.phrase_id,
                normalized,
                context.native_language_code,
                context.learning_language_code
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove explanation for '{normalized}': {e}", exc_info=True)
            continue

        if count:
            logger.info(f"Removed {count} explanation(s) for '{normalized}'")
        else:
            logger.warning(f"No stored explanation to remove for '{normalized}'")
        removed += count

    if not report.missing_words:
        return {"added": added, "removed": removed}

    missing = []
    for word in report.missing_words:
        normalized = normalize_word(word)
        if normalized and normalized not in missing:
            missing.append(normalized)

    logger.info(f"Generating {len(missing)} missing explanations for phrase_id={context.phrase_id}")

    try:
        candidates = generate_missing(missing, context) or []
    except Exception as e:
        # A failed attempt yields no candidates; the caller's next pass may retry
        logger.error(f"Explanation generator failed for phrase_id={context.phrase_id}: {e}", exc_info=True)
        candidates = []

    for candidate in candidates:
        word = normalize_word(explanation_word(candidate))
        translation = _field(candidate, 'translation')
        explanation = _field(candidate, 'explanation')

        if not word or not translation or not explanation:
            logger.warning(f"Skipping incomplete candidate explanation: {word!r}")
            continue

        if word not in missing:
            logger.warning(f"Skipping '{word}' - not in missing words list {missing}")
            continue

        try:
            store.create(
                phrase_id=context.phrase_id,
                word=word,
                native_language_code=context.native_language_code,
                learning_language_code=context.learning_language_code,
                translation=translation,
                explanation=explanation,
                examples=_field(candidate, 'examples')
            )
            logger.info(f"Added explanation for '{word}'")
        except ExplanationConflictError:
            logger.warning(f"Explanation for '{word}' already exists")
        except SQLAlchemyError as e:
            logger.error(f"Failed to add explanation for '{word}': {e}", exc_info=True)
            continue

        added += 1

    return {"added": added, "removed": removed}


def validate_phrase_word_explanations(
    phrase: Phrase,
    word_filter: Optional[ImportantWordFilter] = None,
    store: Optional[WordExplanationStore] = None
) -> ValidationReport:
    """Validate the stored explanations of a saved phrase"""
    store = store or WordExplanationStore()
    explanations = store.find_many(phrase.id, phrase.native_language_code, phrase.learning_language_code)
    return validate_word_explanations(
        phrase.explained_sentence,
        explanations,
        language_code=phrase.learning_language_code,
        word_filter=word_filter or get_word_filter(),
        phrase_id=phrase.id
    )


def ensure_word_explanation_coverage(
    context: ExplanationContext,
    store: Optional[WordExplanationStore] = None,
    generate_missing: GenerateMissing = generate_missing_explanations,
    word_filter: Optional[ImportantWordFilter] = None,
    max_passes: int = MAX_VALIDATION_PASSES
) -> Dict[str, Any]:
    """
    Validate a phrase's stored explanations and repair them until valid or out of passes.

    Args:
        context: Phrase sentence and language pair
        store: Explanation store (default: WordExplanationStore())
        generate_missing: Generator for missing words
        word_filter: Important-word filter (default: the app's filter)
        max_passes: Maximum number of validations, at least 1

    Returns:
        dict with keys:
            - report (ValidationReport): the last report, possibly invalid
            - passes (int): validations performed
            - added (int): explanations added over all repairs
            - removed (int): explanations removed over all repairs

    Raises:
        ValueError: If max_passes < 1
    """
    if max_passes < 1:
        raise ValueError(f"max_passes must be at least 1, got: {max_passes}")

    store = store or WordExplanationStore()
    word_filter = word_filter or get_word_filter()
    added = 0
    removed = 0

    for attempt in range(1, max_passes + 1):
        explanations = store.find_many(
            context.phrase_id,
            context.native_language_code,
            context.learning_language_code
        )
        report = validate_word_explanations(
            context.sentence,
            explanations,
            language_code=context.learning_language_code,
            word_filter=word_filter,
            phrase_id=context.phrase_id
        )

        if report.is_valid:
            logger.info(f"Word explanations valid for phrase_id={context.phrase_id} after {attempt} pass(es)")
            break

        if attempt == max_passes:
            logger.warning(
                f"Word explanations still invalid for phrase_id={context.phrase_id} after {attempt} passes: "
                f"coverage={report.coverage_percent}%, missing={len(report.missing_words)}, "
                f"extra={len(report.extra_words)}"
            )
            break

        result = repair_word_explanations(context, report, generate_missing=generate_missing, store=store)
        added += result["added"]
        removed += result["removed"]
        logger.info(
            f"Repair pass {attempt} for phrase_id={context.phrase_id}: "
            f"added={result['added']}, removed={result['removed']}"
        )

    return {
        "report": report,
        "passes": attempt,
        "added": added,
        "removed": removed
    }
