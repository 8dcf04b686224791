"""
Phrase Generation Pydantic Models

Structured output model for LLM phrase generation.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional

from .explanation_models import WordExplanationEntry, keep_objects


class GeneratedPhrase(BaseModel):
    """
    A practice phrase with its situation and candidate word explanations.

    Example:
    {
        "native_text": "¿Cómo pedirías un café?",
        "learning_text": "Wie würden Sie einen Kaffee bestellen?",
        "situation_text": "Wie würden Sie einen Kaffee bestellen?",
        "expected_answer": "Ich hätte gern einen Kaffee, bitte.",
        "situation_explanation": "Pedir una bebida de forma educada en una cafetería",
        "word_explanations": [{"word": "wie", "translation": "cómo", ...}]
    }
    """
    native_text: str = Field(description="Phrase in the native language")
    learning_text: str = Field(description="Natural translation in the learning language")
    situation_text: Optional[str] = Field(default=None, description="Situation/question in the learning language")
    expected_answer: Optional[str] = Field(default=None, description="Expected learner answer in the learning language")
    situation_explanation: Optional[str] = Field(default=None, description="What the situation asks for, in the native language")
    word_explanations: List[WordExplanationEntry] = Field(
        default_factory=list,
        description="One explanation per important word of situation_text"
    )

    @field_validator("word_explanations", mode="before")
    @classmethod
    def keep_entry_objects(cls, value: Any) -> Any:
        return keep_objects(value, WordExplanationEntry)


class PhraseGenerationResponse(BaseModel):
    """Structured response containing the generated phrases"""
    phrases: List[GeneratedPhrase] = Field(default_factory=list)
