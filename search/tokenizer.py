"""
Tokenizer for BM25 indexing.

Lower-cases text, splits on any non-alphanumeric character and drops
short tokens and a small closed set of English stopwords. Token length is
measured in UTF-8 bytes, so two-character words in most non-Latin scripts
are kept.
"""

import re
from typing import FrozenSet, Iterable, List, Optional

from core.config import DEFAULT_STOPWORDS

# Letters and digits in any script; underscore is a separator.
TOKEN_SPLIT_RE = re.compile(r"[\W_]+")

DEFAULT_MIN_TOKEN_LENGTH = 3


class Tokenizer:
    """Deterministic, order-preserving text analyzer."""

    def __init__(
        self,
        stopwords: Optional[Iterable[str]] = None,
        min_length: int = DEFAULT_MIN_TOKEN_LENGTH
    ):
        self.stopwords: FrozenSet[str] = (
            DEFAULT_STOPWORDS if stopwords is None else frozenset(stopwords)
        )
        self.min_length = min_length

    def tokenize(self, text: str) -> List[str]:
        """Split text into lower-cased terms of at least ``min_length`` UTF-8 bytes."""
        return [
            token for token in TOKEN_SPLIT_RE.split(text.lower())
            if len(token.encode("utf-8")) >= self.min_length
        ]

    def is_stopword(self, word: str) -> bool:
        return word in self.stopwords

    def remove_stopwords(self, terms: Iterable[str]) -> List[str]:
        return [t for t in terms if t not in self.stopwords]

    def analyze(self, text: str) -> List[str]:
        """Tokenize and drop stopwords."""
        return self.remove_stopwords(self.tokenize(text))


_default = Tokenizer()


def tokenize(text: str) -> List[str]:
    return _default.tokenize(text)


def remove_stopwords(terms: Iterable[str]) -> List[str]:
    return _default.remove_stopwords(terms)


def is_stopword(word: str) -> bool:
    return _default.is_stopword(word)
