"""
Important-word filter for word explanation coverage.

A sentence word must carry an explanation when its normalized form is longer
than MIN_WORD_LENGTH characters, or when it is one of the short but
grammatically significant forms listed for the sentence's language
(question words, pronouns, articles, copulas/auxiliaries, conjunctions,
prepositions and particles).

The per-language allow-lists are data: the built-in table below can be
extended with a JSON file ({"nl": ["de", "het", ...]}) named by the
IMPORTANT_WORDS_FILE setting. The filter is built once at app start-up and
is read-only afterwards. A language with no allow-list only counts long words.
"""

import json
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from flask import current_app, has_app_context

from services.text_normalization import normalize_word

logger = logging.getLogger(__name__)

# Words with more characters than this are always important
MIN_WORD_LENGTH = 2

DEFAULT_SHORT_WORDS: Dict[str, list] = {
    'de': [
        # Question words
        'wie', 'was', 'wo', 'wann', 'warum', 'wer', 'wohin', 'woher',
        # Pronouns
        'sie', 'er', 'es', 'du', 'ihr', 'ihm', 'ihn', 'uns', 'mir', 'dir',
        # Articles
        'der', 'die', 'das', 'ein', 'eine', 'den', 'dem', 'des',
        # Copulas and auxiliaries
        'ist', 'sind', 'hat', 'haben', 'bin', 'bist', 'seid',
        # Conjunctions
        'und', 'oder', 'aber',
        # Prepositions and particles
        'zu', 'an', 'in', 'am', 'im', 'zum', 'zur', 'auf', 'um', 'von', 'mit', 'für',
        'vor', 'nach', 'über', 'unter', 'durch', 'bei', 'seit', 'bis',
    ],
    'en': [
        'what', 'how', 'where', 'when', 'why', 'who', 'which',
        'i', 'he', 'she', 'it', 'we', 'they', 'you', 'me', 'us', 'him', 'her',
        'the', 'a', 'an',
        'is', 'are', 'has', 'have', 'am', 'was', 'were', 'be', 'do',
        'and', 'or', 'but',
        'to', 'in', 'on', 'at', 'of', 'for', 'with', 'by', 'from', 'up', 'as',
    ],
    'es': [
        'qué', 'cómo', 'dónde', 'cuándo', 'quién',
        'yo', 'tú', 'él', 'me', 'te', 'se', 'le', 'lo', 'nos', 'mi', 'tu', 'su',
        'el', 'la', 'los', 'las', 'un', 'una',
        'es', 'soy', 'eres', 'ha', 'he', 'va',
        'y', 'e', 'o', 'u', 'ni', 'si', 'no',
        'a', 'al', 'de', 'del', 'en', 'con', 'por',
    ],
    'fr': [
        'qui', 'que', 'où', 'quoi',
        'je', 'tu', 'il', 'on', 'me', 'te', 'se', 'ma', 'ta', 'sa', 'ce',
        'le', 'la', 'les', 'un', 'une', 'l',
        'es', 'est', 'a', 'as', 'ai',
        'et', 'ou', 'ni', 'si', 'ne',
        'à', 'au', 'de', 'du', 'en', 'y',
    ],
    'it': [
        'chi', 'che', 'dove',
        'io', 'tu', 'lui', 'lei', 'mi', 'ti', 'si', 'ci', 'vi', 'ne',
        'il', 'lo', 'la', 'le', 'gli', 'un', 'una',
        'è', 'ha', 'ho', 'hai',
        'e', 'ed', 'o',
        'a', 'di', 'da', 'in', 'su', 'al', 'del',
    ],
    'pt': [
        'que', 'quem', 'onde',
        'eu', 'tu', 'ele', 'me', 'te', 'se', 'nos',
        'o', 'a', 'os', 'as', 'um', 'uma',
        'é', 'há', 'sou', 'são',
        'e', 'ou',
        'de', 'do', 'da', 'em', 'no', 'na', 'ao', 'à',
    ],
}


class ImportantWordFilter:
    """Decides which normalized words of a sentence require an explanation"""

    def __init__(self, allow_lists: Mapping[str, Iterable[str]]):
        self._allow_lists = MappingProxyType({
            code.strip().lower(): frozenset(normalize_word(word) for word in words if normalize_word(word))
            for code, words in allow_lists.items()
        })

    @property
    def languages(self) -> FrozenSet[str]:
        return frozenset(self._allow_lists)

    def allowed_short_words(self, language_code: Optional[str]) -> FrozenSet[str]:
        """
        Allow-list for a language code.

        Falls back from a regional code (e.g. 'de-AT') to its base language,
        and to an empty set when the language is not configured.
        """
        if not language_code:
            return frozenset()

        code = language_code.strip().lower()
        if code in self._allow_lists:
            return self._allow_lists[code]

        base_code = code.split('-')[0]
        return self._allow_lists.get(base_code, frozenset())

    def is_important(self, normalized_word: str, language_code: Optional[str]) -> bool:
        if len(normalized_word) > MIN_WORD_LENGTH:
            return True
        return normalized_word in self.allowed_short_words(language_code)


def load_important_word_filter(path: Optional[str] = None) -> ImportantWordFilter:
    """
    Build the filter from the built-in table, extended with a JSON file if given.

    Words listed in the file are added to (not substituted for) the built-in
    words of the same language.

    Raises:
        ValueError: If the file cannot be read or is not a mapping of
                    language codes to word lists
    """
    allow_lists = {code: set(words) for code, words in DEFAULT_SHORT_WORDS.items()}

    if path:
        try:
            with open(path, encoding='utf-8') as f:
                extra = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load important words file {path}: {e}")
            raise ValueError(f"Invalid important words file {path}: {e}")

        if not isinstance(extra, dict):
            raise ValueError(f"Important words file {path} must contain a JSON object")

        for code, words in extra.items():
            if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
                raise ValueError(f"Important words for '{code}' must be a list of strings")
            allow_lists.setdefault(code.strip().lower(), set()).update(words)

        logger.info(f"Loaded important words from {path} for languages: {sorted(extra)}")

    return ImportantWordFilter(allow_lists)


# Filter over the built-in table, for use outside an application context
default_word_filter = ImportantWordFilter(DEFAULT_SHORT_WORDS)


def get_word_filter() -> ImportantWordFilter:
    """The application's filter inside an app context, the built-in one otherwise"""
    if has_app_context():
        return current_app.extensions.get('important_word_filter', default_word_filter)
    return default_word_filter
