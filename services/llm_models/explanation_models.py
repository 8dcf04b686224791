"""
Word Explanation Pydantic Models

Structured output models for word and grammar explanation operations.
Entry fields default to empty values so that one malformed entry does not
reject the whole response; callers drop incomplete entries themselves.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, List, Optional


def keep_objects(value: Any, model: type) -> list:
    """Drop list items that are not JSON objects; a non-list becomes empty"""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (dict, model))]


class WordExample(BaseModel):
    """An example sentence pair for a word"""
    learning_text: str = Field(default="", description="Example sentence in the learning language")
    native_text: str = Field(default="", description="Translation of the example in the native language")

    @field_validator("learning_text", "native_text", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class WordExplanationEntry(BaseModel):
    """
    Explanation of one word of a sentence.

    Example:
    {
        "word": "wie",
        "translation": "cómo",
        "explanation": "Interrogative word that opens the question ...",
        "examples": [{"learning_text": "Wie heißt du?", "native_text": "¿Cómo te llamas?"}]
    }
    """
    word: str = Field(default="", description="The word exactly as in the sentence, lowercase, no punctuation")
    translation: str = Field(default="", description="Translation into the native language")
    explanation: str = Field(default="", description="Grammatical role of the word in this sentence")
    examples: List[WordExample] = Field(default_factory=list, description="2-3 example sentence pairs")

    @field_validator("word", "translation", "explanation", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("examples", mode="before")
    @classmethod
    def keep_example_objects(cls, value: Any) -> Any:
        return keep_objects(value, WordExample)

    def is_complete(self) -> bool:
        return bool(self.word and self.translation and self.explanation)


class WordExplanationResponse(BaseModel):
    """Structured response with explanations for the requested words"""
    word_explanations: List[WordExplanationEntry] = Field(
        default_factory=list,
        description="One entry per requested word"
    )

    @field_validator("word_explanations", mode="before")
    @classmethod
    def keep_entry_objects(cls, value: Any) -> Any:
        return keep_objects(value, WordExplanationEntry)


class GrammarExplanationResponse(BaseModel):
    """Grammar analysis of a sentence centred on one word"""
    grammar_explanation: str = Field(description="Structure, word order and inflection of the sentence and the word's role in it")
    word_role: Optional[str] = Field(default=None, description="Short label of the word's grammatical role")
