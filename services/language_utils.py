"""Language utility functions for looking up supported languages"""
from typing import Optional
from models.language import Language


def get_language(language_code: str) -> Optional[Language]:
    """Language by ISO 639-1 code, or None"""
    if not language_code:
        return None
    return Language.query.get(language_code)


def is_supported_code(language_code: str) -> bool:
    """Check if a language code exists in the database."""
    return get_language(language_code) is not None
