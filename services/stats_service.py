"""Learning statistics for a user, computed from their verified attempts"""

import logging
from typing import Any, Dict

from sqlalchemy import func

from models import db
from models.phrase import Phrase
from models.user import User
from models.user_phrase_progress import UserPhraseProgress

logger = logging.getLogger(__name__)

RECENT_ATTEMPTS = 10


def get_user_stats(user: User) -> Dict[str, Any]:
    """
    Compute accuracy, learned phrases and word lists for a user.

    Learned phrases are phrases of the user's current language pair with at
    least one correct attempt.
    """
    progress = (UserPhraseProgress.query
                .filter_by(user_id=user.id)
                .order_by(UserPhraseProgress.created_at.desc(), UserPhraseProgress.id.desc())
                .all())

    total_attempts = len(progress)
    correct_attempts = sum(1 for p in progress if p.is_correct)
    accuracy = correct_attempts / total_attempts * 100 if total_attempts else 0

    scores = [p.accuracy_score for p in progress if p.accuracy_score is not None]
    average_score = sum(scores) / len(scores) if scores else 0

    learned_phrase_ids = {p.phrase_id for p in progress if p.is_correct}
    learned_count = 0
    if learned_phrase_ids:
        learned_count = Phrase.query.filter(
            Phrase.id.in_(learned_phrase_ids),
            Phrase.native_language_code == user.native_language_code,
            Phrase.learning_language_code == user.learning_language_code
        ).count()

    words_learned = []
    words_forgotten = []
    for p in progress:
        for word in p.words_learned_json or []:
            if word not in words_learned:
                words_learned.append(word)
        for word in p.words_forgotten_json or []:
            if word not in words_forgotten:
                words_forgotten.append(word)

    by_difficulty = (db.session.query(Phrase.difficulty, func.count(Phrase.id))
                     .filter(Phrase.native_language_code == user.native_language_code,
                             Phrase.learning_language_code == user.learning_language_code)
                     .group_by(Phrase.difficulty)
                     .all())

    return {
        "total_attempts": total_attempts,
        "correct_attempts": correct_attempts,
        "accuracy": round(accuracy, 2),
        "average_score": round(average_score, 2),
        "learned_phrases_count": learned_count,
        "words_learned": words_learned,
        "words_forgotten": words_forgotten,
        "phrases_by_difficulty": [
            {"difficulty": difficulty, "total": count} for difficulty, count in by_difficulty
        ],
        "recent_progress": [
            {
                "id": p.id,
                "phrase": p.phrase.native_text if p.phrase else None,
                "user_answer": p.user_answer,
                "is_correct": p.is_correct,
                "accuracy_score": p.accuracy_score,
                "created_at": p.created_at.isoformat() if p.created_at else None
            }
            for p in progress[:RECENT_ATTEMPTS]
        ]
    }
