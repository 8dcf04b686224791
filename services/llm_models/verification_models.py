"""
Verification Pydantic Models

Structured output model for grading a learner's translation.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class AnswerVerification(BaseModel):
    """
    Verification result from LLM.

    Accepts synonyms and valid alternative structures; minor errors lower
    accuracy_score without necessarily making the answer incorrect.

    Example:
    {
        "is_correct": true,
        "feedback": "Correct, 'einen' is the accusative article for 'Kaffee'.",
        "accuracy_score": 95,
        "words_learned": ["bestellen"],
        "words_forgotten": null
    }
    """
    is_correct: bool = Field(description="Whether the answer is correct or an acceptable variation")
    feedback: str = Field(description="Detailed feedback for the learner")
    accuracy_score: int = Field(description="0-100: 100 perfect, 80-99 minor errors, 50-79 acceptable, 0-49 incorrect")
    words_learned: Optional[List[str]] = Field(default=None, description="New words the learner used correctly")
    words_forgotten: Optional[List[str]] = Field(default=None, description="Words the learner used incorrectly")
