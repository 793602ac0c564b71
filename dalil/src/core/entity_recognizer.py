"""
Dalil - EntityRecognizer
=========================
Heuristic check for queries that name a specific catalog item
("Tell me about Atlantis Aquaventure") as opposed to browsing a
category ("show me beach clubs to chill").

Signals:
  • **Proper nouns** — capitalised words of 3+ letters that do not open a
    sentence.
  • **Type pattern** — ``<name> <venue noun>`` such as "Zuma restaurant",
    where the name is not a stopword, a generic qualifier or a taxonomy
    term.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dalil.config.taxonomy import GENERIC_QUALIFIERS
from dalil.src.core.taxonomy_index import TaxonomyIndex
from dalil.src.utils.text_utils import normalize_query

_WORD_RE = re.compile(r"[^\W\d_]+(?:['’&-][^\W\d_]+)*")
_SENTENCE_BREAKS = ".?!\n"


@dataclass(frozen=True, slots=True)
class _Word:
    text: str
    sentence_start: bool

    @property
    def lower(self) -> str:
        return self.text.lower()

    @property
    def is_capitalized(self) -> bool:
        return self.text[0].isupper()


def _split_words(text: str) -> list[_Word]:
    words: list[_Word] = []
    for match in _WORD_RE.finditer(text):
        prefix = text[:match.start()].rstrip(" \t\"'(")
        words.append(_Word(match.group(), not prefix or prefix[-1] in _SENTENCE_BREAKS))
    return words


class EntityRecognizer:
    """Decides whether a query targets a named item, and extracts the names."""

    __slots__ = ("_taxonomy",)

    def __init__(self, taxonomy: TaxonomyIndex) -> None:
        self._taxonomy = taxonomy


    def is_entity_query(self, query: str) -> bool:
        words = _split_words(query or "")
        if not words:
            return False

        proper_nouns = self._proper_nouns(words)
        if any(not self._taxonomy.is_taxonomy_term(w.lower) for w in proper_nouns):
            return True
        if self._type_pattern_names(words):
            return True
        return bool(proper_nouns) and self._taxonomy.count_taxonomy_terms(normalize_query(query)) <= 1


    def extract_entities(self, query: str) -> list[str]:
        """
        Candidate names, most specific first:

        1. runs of two or more capitalised words ("Atlantis Aquaventure"),
        2. remaining proper nouns that are not taxonomy terms or stopwords,
        3. the word in front of a venue noun ("zuma" in "zuma restaurant").
        """
        words = _split_words(query or "")
        entities: list[str] = []
        seen: set[str] = set()

        def add(candidate: str) -> None:
            key = candidate.lower()
            if key in seen or any(key in s for s in seen):
                return
            seen.add(key)
            entities.append(candidate)

        for phrase in self._capitalized_phrases(words):
            add(phrase)
        for word in self._proper_nouns(words):
            if not self._taxonomy.is_taxonomy_term(word.lower):
                add(word.text)
        for name in self._type_pattern_names(words):
            add(name)
        return entities

    # ── Helpers ────────────────────────────────────────────────────────

    def _proper_nouns(self, words: list[_Word]) -> list[_Word]:
        return [
            w for w in words
            if w.is_capitalized and not w.sentence_start and len(w.text) >= 3 and w.lower not in self._taxonomy.stopwords
        ]


    def _capitalized_phrases(self, words: list[_Word]) -> list[str]:
        phrases: list[str] = []
        run: list[_Word] = []
        for word in words + [_Word("x", True)]:
            if word.is_capitalized and not (word.sentence_start and run):
                run.append(word)
                continue
            # Leading words such as "Tell" or "The" are not part of the name
            while run and run[0].lower in self._taxonomy.stopwords:
                run.pop(0)
            if len(run) >= 2:
                phrases.append(" ".join(w.text for w in run))
            run = [word] if word.is_capitalized else []
        return phrases


    def _type_pattern_names(self, words: list[_Word]) -> list[str]:
        names: list[str] = []
        for first, second in zip(words, words[1:]):
            name = first.lower
            if not self._taxonomy.is_entity_type(second.lower) or len(name) < 3:
                continue
            if name in self._taxonomy.stopwords or name in GENERIC_QUALIFIERS or self._taxonomy.is_taxonomy_term(name):
                continue
            names.append(first.text)
        return names
