"""
Phrase Generation Service - LLM phrase generation with word explanation coverage

Workflow for one generation request:
1. Ask the LLM for N phrases (with situation, expected answer and candidate
   word explanations), excluding phrases that already exist
2. Drop generated phrases whose native text already exists
3. Persist each phrase and its candidate explanations
4. Validate and repair each phrase's explanations (bounded passes)
5. Return the created phrases with a per-phrase and batch validation summary

Phrase creation never waits on perfect coverage: a phrase whose explanations
are still invalid after the last pass is kept as is.
"""

import logging
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from models import db
from models.language import Language
from models.phrase import Phrase, CEFR_LEVELS, CEFR_DIFFICULTY
from services.explanation_context import ExplanationContext
from services.important_words import ImportantWordFilter
from services.llm_models.phrase_models import GeneratedPhrase, PhraseGenerationResponse
from services.llm_provider_factory import get_llm_client, LLMProviderFactory
from services.word_explanation_fixer import (
    GenerateMissing,
    MAX_VALIDATION_PASSES,
    ensure_word_explanation_coverage
)
from services.word_explanation_generator import EXPLANATION_GUIDE, SYSTEM_PROMPT, generate_missing_explanations
from services.word_explanation_store import ExplanationConflictError, WordExplanationStore
from services.word_explanation_validator import ValidationReport

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

MAX_PHRASES_PER_REQUEST = 50

# Existing phrases listed in the prompt as "do not repeat"
MAX_EXISTING_IN_PROMPT = 20


def _normalize_text(text: str) -> str:
    return (text or '').strip().lower()


def _existing_native_texts(
    native_language_code: str,
    learning_language_code: str,
    cefr_level: Optional[str] = None,
    category: Optional[str] = None
) -> List[str]:
    query = Phrase.query.filter_by(
        native_language_code=native_language_code,
        learning_language_code=learning_language_code
    )
    if cefr_level:
        query = query.filter_by(cefr_level=cefr_level)
    if category:
        query = query.filter_by(category=category)
    return [phrase.native_text for phrase in query.order_by(Phrase.created_at.desc()).all()]


def generate_phrases(
    native_language: Language,
    learning_language: Language,
    cefr_level: str,
    category: str,
    quantity: int,
    model: Optional[str] = None
) -> List[GeneratedPhrase]:
    """
    Ask the LLM for new practice phrases.

    Args:
        native_language: Learner's native language
        learning_language: Language being learned
        cefr_level: A1..C2
        category: Topic of the phrases (e.g. "restaurant")
        quantity: Number of phrases to request
        model: LLM model name (default: provider default)

    Returns:
        Generated phrases whose native text does not exist yet for this
        language pair, level and category (case/whitespace-insensitive)

    Raises:
        RuntimeError: If the provider cannot be created or the call fails
    """
    existing = _existing_native_texts(native_language.code, learning_language.code, cefr_level, category)
    existing_texts = {_normalize_text(text) for text in existing}

    existing_block = "\n".join(f'- "{text}"' for text in existing[:MAX_EXISTING_IN_PROMPT]) or "(none)"
    native_name = native_language.en_name
    learning_name = learning_language.en_name

    user_message = f"""Generate {quantity} phrases for translation practice.

Native language: {native_name}
Language being learned: {learning_name}
CEFR level: {cefr_level}
Topic category: {category}

REQUIREMENTS:
- Phrases must be appropriate for level {cefr_level} and related to the category "{category}"
- Phrases must be useful for practical learning and vary in grammar and vocabulary
- Translations must be accurate and natural
- For each phrase also write a short situation/question in {learning_name} (situation_text) that the
  learner answers, the expected answer in {learning_name}, and a one-sentence situation_explanation in {native_name}
- For each phrase explain EVERY word of situation_text in word_explanations, and no word that is not in it

{EXPLANATION_GUIDE.format(native_language=native_name, learning_language=learning_name)}
EXISTING PHRASES (DO NOT REPEAT):
{existing_block}

Respond ONLY with JSON in this exact format:
{{
  "phrases": [
    {{
      "native_text": "phrase in {native_name}",
      "learning_text": "translation in {learning_name}",
      "situation_text": "situation in {learning_name}",
      "expected_answer": "expected answer in {learning_name}",
      "situation_explanation": "what the situation asks for, in {native_name}",
      "word_explanations": [
        {{"word": "word", "translation": "translation", "explanation": "detailed explanation",
          "examples": [{{"learning_text": "example", "native_text": "translated example"}}]}}
      ]
    }}
  ]
}}

Generate exactly {quantity} new phrases that are NOT in the list of existing phrases."""

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_message}
    ]

    try:
        provider = get_llm_client()
        response = provider.create_structured_completion(
            messages=messages,
            response_model=PhraseGenerationResponse,
            model=model or LLMProviderFactory.get_default_model(),
            temperature=0.8,
            max_tokens=12000,
            timeout=120.0
        )
    except (ValueError, RuntimeError) as e:
        logger.error(f"Phrase generation failed: {e}", exc_info=True)
        raise RuntimeError(f"Failed to generate phrases: {e}")

    unique_phrases = []
    for phrase in response["parsed_object"].phrases:
        normalized = _normalize_text(phrase.native_text)
        if not normalized or not phrase.learning_text.strip():
            logger.warning(f"Skipping incomplete generated phrase: {phrase.native_text!r}")
            continue
        if normalized in existing_texts:
            logger.info(f"Skipping duplicate generated phrase: {phrase.native_text!r}")
            continue
        existing_texts.add(normalized)
        unique_phrases.append(phrase)

    logger.info(
        f"Generated {len(unique_phrases)} new phrases "
        f"({native_language.code}->{learning_language.code}, {cefr_level}, {category})"
    )
    return unique_phrases


def _store_initial_explanations(
    phrase: Phrase,
    generated: GeneratedPhrase,
    store: WordExplanationStore
) -> int:
    """Persist the candidate explanations that came with a generated phrase"""
    stored = 0
    for entry in generated.word_explanations:
        if not entry.is_complete():
            logger.warning(f"Skipping incomplete explanation for phrase_id={phrase.id}: {entry.word!r}")
            continue
        try:
            store.create(
                phrase_id=phrase.id,
                word=entry.word,
                native_language_code=phrase.native_language_code,
                learning_language_code=phrase.learning_language_code,
                translation=entry.translation,
                explanation=entry.explanation,
                examples=entry.examples
            )
            stored += 1
        except ExplanationConflictError:
            logger.debug(f"Duplicate initial explanation for '{entry.word}' on phrase_id={phrase.id}")
        except ValueError as e:
            logger.warning(f"Skipping explanation for phrase_id={phrase.id}: {e}")
    return stored


def summarize_validation(reports: List[ValidationReport]) -> Dict[str, Any]:
    """
    Reduce per-phrase reports to batch counts.

    Returns:
        dict: total_phrases, valid_phrases, invalid_phrases, average_coverage
              (rounded to 2 places, 0.0 for an empty batch)
    """
    total = len(reports)
    valid = sum(1 for report in reports if report.is_valid)
    average = round(sum(report.coverage_percent for report in reports) / total, 2) if total else 0.0
    return {
        "total_phrases": total,
        "valid_phrases": valid,
        "invalid_phrases": total - valid,
        "average_coverage": average
    }


def create_generated_phrases(
    native_language_code: str,
    learning_language_code: str,
    cefr_level: str,
    category: str,
    quantity: int,
    model: Optional[str] = None,
    max_passes: int = MAX_VALIDATION_PASSES,
    word_filter: Optional[ImportantWordFilter] = None,
    generate_missing: GenerateMissing = generate_missing_explanations,
    store: Optional[WordExplanationStore] = None
) -> Dict[str, Any]:
    """
    Generate, persist and validate a batch of phrases.

    Args:
        native_language_code: Code of the learner's native language
        learning_language_code: Code of the language being learned
        cefr_level: A1..C2 (also selects the difficulty)
        category: Topic category
        quantity: 1..50 phrases
        model: LLM model name (default: provider default)
        max_passes: Validation passes per phrase
        word_filter: Important-word filter (default: the app's filter)
        generate_missing: Generator used to repair missing explanations
        store: Explanation store (default: WordExplanationStore())

    Returns:
        dict with keys:
            - success (bool)
            - phrases (list): created phrase dicts
            - requested, created, duplicates (int)
            - validation (dict): batch summary plus a "phrases" list of
              {phrase_id, coverage_percent, missing_count, extra_count, is_valid, passes}
            - error (str): when nothing could be created

    Raises:
        ValueError: If the CEFR level, category or quantity is invalid
        LookupError: If either language does not exist
        RuntimeError: If the LLM call fails
    """
    if cefr_level not in CEFR_LEVELS:
        raise ValueError(f"Invalid CEFR level: {cefr_level}. Must be one of {', '.join(CEFR_LEVELS)}")

    if not category or not category.strip():
        raise ValueError("Category is required")

    if not isinstance(quantity, int) or isinstance(quantity, bool) or not 1 <= quantity <= MAX_PHRASES_PER_REQUEST:
        raise ValueError(f"Quantity must be between 1 and {MAX_PHRASES_PER_REQUEST}")

    native_language = Language.query.get(native_language_code)
    learning_language = Language.query.get(learning_language_code)
    if not native_language or not learning_language:
        raise LookupError(f"Languages not found: {native_language_code}, {learning_language_code}")

    category = category.strip()
    store = store or WordExplanationStore()

    generated_phrases = generate_phrases(native_language, learning_language, cefr_level, category, quantity, model=model)
    if not generated_phrases:
        return {
            "success": False,
            "error": "No new phrases could be generated. All possible phrases for this combination may already exist.",
            "requested": quantity,
            "created": 0
        }

    # Existing texts in the language pair across all levels/categories
    existing_texts = {
        _normalize_text(text)
        for text in _existing_native_texts(native_language_code, learning_language_code)
    }
    unique_phrases = [p for p in generated_phrases if _normalize_text(p.native_text) not in existing_texts]
    duplicates = len(generated_phrases) - len(unique_phrases)

    if not unique_phrases:
        return {
            "success": False,
            "error": "All generated phrases already exist in the database",
            "requested": quantity,
            "created": 0,
            "duplicates": duplicates
        }

    difficulty = CEFR_DIFFICULTY[cefr_level]
    created = []
    reports = []
    phrase_summaries = []

    for generated in unique_phrases:
        phrase = Phrase(
            native_language_code=native_language_code,
            learning_language_code=learning_language_code,
            native_text=generated.native_text,
            learning_text=generated.learning_text,
            situation_text=(generated.situation_text or '').strip() or None,
            expected_answer=(generated.expected_answer or '').strip() or None,
            situation_explanation=(generated.situation_explanation or '').strip() or None,
            difficulty=difficulty,
            cefr_level=cefr_level,
            category=category
        )
        db.session.add(phrase)
        db.session.commit()

        stored = _store_initial_explanations(phrase, generated, store)
        logger.info(f"Created phrase_id={phrase.id} with {stored} initial explanations")

        outcome = ensure_word_explanation_coverage(
            ExplanationContext.from_phrase(phrase),
            store=store,
            generate_missing=generate_missing,
            word_filter=word_filter,
            max_passes=max_passes
        )
        report = outcome["report"]
        reports.append(report)
        created.append(phrase.to_dict())
        phrase_summaries.append({
            "phrase_id": phrase.id,
            "coverage_percent": report.coverage_percent,
            "missing_count": len(report.missing_words),
            "extra_count": len(report.extra_words),
            "is_valid": report.is_valid,
            "passes": outcome["passes"]
        })

    summary = summarize_validation(reports)
    logger.info(
        f"Phrase generation complete: created={len(created)}, valid={summary['valid_phrases']}, "
        f"invalid={summary['invalid_phrases']}, average_coverage={summary['average_coverage']}%"
    )

    return {
        "success": True,
        "phrases": created,
        "requested": quantity,
        "created": len(created),
        "duplicates": duplicates,
        "validation": {**summary, "phrases": phrase_summaries}
    }
