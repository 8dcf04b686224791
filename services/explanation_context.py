"""Sentence context handed to explanation generators"""

from typing import Optional

from pydantic import BaseModel

from models.phrase import Phrase


class ExplanationContext(BaseModel):
    """A phrase's explained sentence, its answer and language pair"""
    phrase_id: int
    sentence: str
    expected_answer: str
    situation_explanation: Optional[str] = None
    native_text: Optional[str] = None
    native_language_code: str
    learning_language_code: str
    native_language_name: Optional[str] = None
    learning_language_name: Optional[str] = None

    @property
    def native_language(self) -> str:
        return self.native_language_name or self.native_language_code

    @property
    def learning_language(self) -> str:
        return self.learning_language_name or self.learning_language_code

    @classmethod
    def from_phrase(cls, phrase: Phrase) -> 'ExplanationContext':
        return cls(
            phrase_id=phrase.id,
            sentence=phrase.explained_sentence,
            expected_answer=phrase.answer_text,
            situation_explanation=phrase.situation_explanation,
            native_text=phrase.native_text,
            native_language_code=phrase.native_language_code,
            learning_language_code=phrase.learning_language_code,
            native_language_name=phrase.native_language.en_name if phrase.native_language else None,
            learning_language_name=phrase.learning_language.en_name if phrase.learning_language else None
        )
