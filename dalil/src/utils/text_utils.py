"""
Dalil - Text & Vector Utilities
================================
Stateless helpers shared by detection, retrieval and ingestion:

  • query normalisation and tokenisation
  • cosine similarity / distance over plain float sequences
  • slug generation for catalog rows that arrive without one
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Sequence

import numpy as np

# Zero-width and formatting characters that survive copy/paste from chat clients
_NON_PRINTABLE_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufeff\u200b\u200c\u200d\u200e\u200f\u00ad\u2060]")
_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def normalize_query(text: str) -> str:
    """
    Lowercase, NFC-normalise and collapse whitespace.

    Substring checks in the detector run against this form, so every
    stage sees the same string for the same user input.
    """
    text = unicodedata.normalize("NFC", text or "")
    text = _NON_PRINTABLE_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip().lower()


def tokenize(text: str) -> list[str]:
    """Split already-normalised text on whitespace."""
    return [t for t in text.split(" ") if t]


def meaningful_words(text: str, stopwords: Iterable[str], min_length: int = 3) -> list[str]:
    """Tokens of at least *min_length* characters that are not stopwords."""
    stop = stopwords if isinstance(stopwords, (set, frozenset)) else set(stopwords)
    return [t for t in tokenize(normalize_query(text)) if len(t) >= min_length and t not in stop]


def contains_word(text: str, word: str) -> bool:
    """Whole-word, case-insensitive containment."""
    return re.search(rf"(?<![a-z0-9]){re.escape(word.lower())}(?![a-z0-9])", text.lower()) is not None


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    ``dot(a, b) / (|a| * |b|)``.

    Returns ``0.0`` when the vectors differ in length, are empty, or
    either has zero magnitude.  The result is clipped to ``[-1, 1]`` to
    absorb floating-point overshoot.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(va, vb) / norm, -1.0, 1.0))


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    return 1.0 - cosine_similarity(a, b)


def slugify(text: str) -> str:
    """``"Nikki Beach Dubai"`` → ``"nikki-beach-dubai"``."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _SLUG_RE.sub("-", ascii_text.lower()).strip("-")
