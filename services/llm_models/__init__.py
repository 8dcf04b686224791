"""
LLM Pydantic Models

Structured output models for LLM operations:
- Word explanation models (WordExample, WordExplanationEntry, WordExplanationResponse,
  GrammarExplanationResponse)
- Phrase generation models (GeneratedPhrase, PhraseGenerationResponse)
- Verification models (AnswerVerification)
"""

from .explanation_models import (
    WordExample,
    WordExplanationEntry,
    WordExplanationResponse,
    GrammarExplanationResponse
)
from .phrase_models import GeneratedPhrase, PhraseGenerationResponse
from .verification_models import AnswerVerification

__all__ = [
    'WordExample',
    'WordExplanationEntry',
    'WordExplanationResponse',
    'GrammarExplanationResponse',
    'GeneratedPhrase',
    'PhraseGenerationResponse',
    'AnswerVerification'
]
