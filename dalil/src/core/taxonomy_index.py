"""
Dalil - TaxonomyIndex
======================
Immutable lookup tables derived once from ``dalil.config.taxonomy``
(and, optionally, a JSON export of the catalog's taxonomy):

``mappings``
    Ordered ``CategoryMapping`` records (phrase → category/subcategory).
``keyword_rules``
    Ordered ``KeywordRule`` records; evaluation order is declaration order.
``taxonomy_terms``
    Category names plus every subcategory word longer than 3 characters
    that is not a stopword.
``entity_types``
    Venue nouns (``beach``, ``hotel``, ...) plus every taxonomy term that
    embeds one (``clubs``, ``lounges``, ``beachfront``).

No I/O after construction; every method is deterministic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from dalil.config.settings import settings
from dalil.config.taxonomy import CATEGORY_MAPPINGS, ENTITY_TYPE_SEEDS, KEYWORD_RULES, STOPWORDS
from dalil.src.utils.logger import get_logger
from dalil.src.utils.text_utils import meaningful_words

logger = get_logger(__name__)

TaxonomyPair = tuple[str, str]


@dataclass(frozen=True, slots=True)
class CategoryMapping:
    phrase: str
    category: str
    subcategory: str | None = None


@dataclass(frozen=True, slots=True)
class KeywordRule:
    triggers: frozenset[str]
    category: str
    subcategory: str | None = None


class TaxonomyIndex:
    """
    Static taxonomy vocabulary shared by the detector and the recognizer.

    Parameters
    ----------
    mappings
        ``(phrase, category, subcategory)`` triples.  Defaults to the
        built-in table.
    keyword_rules
        ``(trigger_words, category, subcategory)`` triples, in order.
    taxonomy_pairs
        Extra known ``(category, subcategory)`` pairs, e.g. loaded from a
        catalog taxonomy export.  Pairs already implied by the mappings
        and rules are always included.
    stopwords
        Words ignored during tokenisation.
    """

    __slots__ = ("mappings", "keyword_rules", "stopwords", "categories", "subcategories", "taxonomy_terms", "entity_types")

    def __init__(self, mappings: tuple[tuple[str, str, str], ...] = CATEGORY_MAPPINGS, keyword_rules: tuple[tuple[tuple[str, ...], str, str], ...] = KEYWORD_RULES, taxonomy_pairs: list[TaxonomyPair] | None = None, stopwords: frozenset[str] = STOPWORDS) -> None:
        self.stopwords: frozenset[str] = frozenset(stopwords)
        self.mappings: tuple[CategoryMapping, ...] = tuple(CategoryMapping(phrase.lower().strip(), category, subcategory) for phrase, category, subcategory in mappings)
        self.keyword_rules: tuple[KeywordRule, ...] = tuple(KeywordRule(frozenset(w.lower() for w in words), category, subcategory) for words, category, subcategory in keyword_rules)

        pairs: list[TaxonomyPair] = [(m.category, m.subcategory or "") for m in self.mappings]
        pairs += [(r.category, r.subcategory or "") for r in self.keyword_rules]
        pairs += list(taxonomy_pairs or [])

        self.categories: frozenset[str] = frozenset(c.lower() for c, _ in pairs if c)
        self.subcategories: frozenset[str] = frozenset(s.lower() for _, s in pairs if s)

        terms: set[str] = set(self.categories)
        for subcategory in self.subcategories:
            terms.update(meaningful_words(subcategory, self.stopwords, min_length=4))
        self.taxonomy_terms: frozenset[str] = frozenset(terms)

        entity_types = set(ENTITY_TYPE_SEEDS)
        entity_types.update(t for t in self.taxonomy_terms if any(seed in t for seed in ENTITY_TYPE_SEEDS))
        self.entity_types: frozenset[str] = frozenset(entity_types)

        logger.debug("[TAXONOMY] %d mappings, %d rules, %d categories, %d subcategories, %d terms, %d entity types", len(self.mappings), len(self.keyword_rules), len(self.categories), len(self.subcategories), len(self.taxonomy_terms), len(self.entity_types))


    @classmethod
    def from_json(cls, path: Path) -> TaxonomyIndex:
        """
        Build an index whose vocabulary also covers a taxonomy export.

        The file is a JSON list of ``{"category": ..., "subcategory": ...}``
        objects.  A missing file falls back to the built-in vocabulary.
        """
        if not path.exists():
            logger.warning("[TAXONOMY] Export not found at %s; using built-in vocabulary.", path)
            return cls()
        rows = json.loads(path.read_text(encoding="utf-8"))
        pairs = [(str(r.get("category", "")), str(r.get("subcategory", ""))) for r in rows]
        logger.info("[TAXONOMY] Loaded %d taxonomy pairs from %s", len(pairs), path)
        return cls(taxonomy_pairs=pairs)


    @classmethod
    def from_settings(cls) -> TaxonomyIndex:
        """Built-in vocabulary, extended by ``settings.TAXONOMY_PATH`` when it is set."""
        if settings.TAXONOMY_PATH is None:
            return cls()
        return cls.from_json(settings.TAXONOMY_PATH)


    def meaningful_words(self, text: str) -> list[str]:
        """Query words longer than 2 characters that are not stopwords."""
        return meaningful_words(text, self.stopwords, min_length=3)


    def is_taxonomy_term(self, word: str) -> bool:
        return word.lower() in self.taxonomy_terms


    def is_entity_type(self, word: str) -> bool:
        """True for ``club``/``clubs`` style venue nouns."""
        w = word.lower()
        return w in self.entity_types or (w.endswith("s") and w[:-1] in self.entity_types)


    def count_taxonomy_terms(self, normalized_query: str) -> int:
        """How many distinct taxonomy terms occur (as substrings) in the query."""
        return sum(1 for term in self.taxonomy_terms if term in normalized_query)
