"""
Word normalization and tokenization shared by explanation storage and validation.

normalize_word() is the single definition of word identity: every word that is
stored, looked up or compared against a sentence goes through it.
"""

import re
from typing import List, NamedTuple

# . , ! ? ; : ( )
_PUNCTUATION_RE = re.compile(r'[.,!?;:()]')


class Token(NamedTuple):
    original: str
    normalized: str


def normalize_word(word: str) -> str:
    """Strip punctuation, trim whitespace and lowercase a word"""
    if not word:
        return ''
    return _PUNCTUATION_RE.sub('', word).strip().lower()


def tokenize(sentence: str) -> List[Token]:
    """
    Split a sentence on whitespace into tokens, in order.

    Tokens that normalize to an empty string (e.g. a lone "?") are dropped.
    Repeated words are kept; deduplication is up to the caller.

    Examples:
        >>> tokenize("Wie geht's, Anna?")
        [Token(original='Wie', normalized='wie'), Token(original="geht's,", normalized="geht's"),
         Token(original='Anna?', normalized='anna')]
    """
    if not sentence:
        return []

    tokens = []
    for raw in sentence.split():
        normalized = normalize_word(raw)
        if normalized:
            tokens.append(Token(original=raw, normalized=normalized))
    return tokens


def unique_tokens(sentence: str) -> List[Token]:
    """Tokenize and keep only the first occurrence of each normalized word"""
    seen = {}
    for token in tokenize(sentence):
        if token.normalized not in seen:
            seen[token.normalized] = token
    return list(seen.values())
