"""
Answer Verification Service - Grades a learner's translation and records progress.

The LLM compares the learner's answer to the phrase's expected answer,
accepting synonyms and alternative valid structures. Every verification,
including the fallback result after an LLM failure, is stored as a
UserPhraseProgress row.
"""

import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from models import db
from models.phrase import Phrase
from models.user_phrase_progress import UserPhraseProgress
from services.llm_models.verification_models import AnswerVerification
from services.llm_provider_factory import get_llm_client, LLMProviderFactory
from services.word_explanation_generator import SYSTEM_PROMPT

# Configure logging
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

FALLBACK_FEEDBACK = "The answer could not be verified. Please try again."


def _clamp_score(score: Optional[int]) -> int:
    return max(0, min(100, int(score or 0)))


def _clean_words(words) -> Optional[list]:
    if not words:
        return None
    cleaned = [w.strip() for w in words if isinstance(w, str) and w.strip()]
    return cleaned or None


def grade_answer(
    original_phrase: str,
    user_answer: str,
    expected_answer: str,
    difficulty: str,
    model: Optional[str] = None
) -> Dict[str, Any]:
    """
    Ask the LLM whether a learner's answer is correct.

    Args:
        original_phrase: The phrase shown to the learner (native language)
        user_answer: The learner's answer
        expected_answer: Reference answer in the learning language
        difficulty: BEGINNER, INTERMEDIATE or ADVANCED
        model: LLM model name (default: provider default)

    Returns:
        dict: is_correct, feedback, accuracy_score (0-100), words_learned,
              words_forgotten. On LLM failure a fallback result with
              is_correct=False and accuracy_score=0.
    """
    user_message = f"""Evaluate whether the student's answer is correct by comparing it with the expected answer.

Original phrase: "{original_phrase}"
Expected answer: "{expected_answer}"
Student's answer: "{user_answer}"
Difficulty level: {difficulty}

Consider:
1. Grammatical correctness
2. Meaning and context
3. Acceptable variations (synonyms, different valid grammatical structures)
4. Minor errors versus serious errors

If the answer is correct or very close (acceptable variations), set is_correct to true.
accuracy_score reflects how precise the answer is (100 = perfect, 80-99 = very good with small errors,
50-79 = acceptable with errors, 0-49 = incorrect).
words_learned lists new words the student used correctly; words_forgotten lists words the student used incorrectly.

Respond ONLY with JSON:
{{"is_correct": true, "feedback": "...", "accuracy_score": 0, "words_learned": [...] or null, "words_forgotten": [...] or null}}"""

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_message}
    ]

    try:
        provider = get_llm_client()
        response = provider.create_structured_completion(
            messages=messages,
            response_model=AnswerVerification,
            model=model or LLMProviderFactory.get_default_model(),
            temperature=0.3,
            max_tokens=800
        )
        verification = response["parsed_object"]
    except (ValueError, RuntimeError) as e:
        logger.error(f"Answer verification failed: {e}", exc_info=True)
        return {
            "is_correct": False,
            "feedback": FALLBACK_FEEDBACK,
            "accuracy_score": 0,
            "words_learned": None,
            "words_forgotten": None
        }

    return {
        "is_correct": verification.is_correct,
        "feedback": verification.feedback,
        "accuracy_score": _clamp_score(verification.accuracy_score),
        "words_learned": _clean_words(verification.words_learned),
        "words_forgotten": _clean_words(verification.words_forgotten)
    }


def verify_phrase_answer(user_id: int, phrase_id: int, user_answer: str) -> Dict[str, Any]:
    """
    Verify a learner's answer for a phrase and store the attempt.

    Returns:
        dict: The grading result plus progress_id

    Raises:
        ValueError: If user_answer is empty or the phrase does not exist
        RuntimeError: If the attempt cannot be stored
    """
    if not user_answer or not user_answer.strip():
        raise ValueError("User answer cannot be empty")

    phrase = Phrase.query.get(phrase_id)
    if not phrase:
        raise ValueError(f"Phrase not found: {phrase_id}")

    result = grade_answer(
        original_phrase=phrase.native_text,
        user_answer=user_answer.strip(),
        expected_answer=phrase.answer_text,
        difficulty=phrase.difficulty
    )

    try:
        progress = UserPhraseProgress(
            user_id=user_id,
            phrase_id=phrase.id,
            user_answer=user_answer.strip(),
            ai_feedback=result["feedback"],
            is_correct=result["is_correct"],
            accuracy_score=result["accuracy_score"],
            words_learned_json=result["words_learned"],
            words_forgotten_json=result["words_forgotten"]
        )
        db.session.add(progress)
        db.session.commit()
    except Exception as e:
        logger.error(f"Failed to store progress for user {user_id}, phrase {phrase_id}: {e}", exc_info=True)
        db.session.rollback()
        raise RuntimeError(f"Failed to persist verification: {e}")

    logger.info(
        f"Verified answer: user_id={user_id}, phrase_id={phrase_id}, "
        f"correct={result['is_correct']}, score={result['accuracy_score']}"
    )

    return {**result, "progress_id": progress.id}
