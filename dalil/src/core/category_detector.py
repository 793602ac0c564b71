"""
Dalil - CategoryDetector
=========================
Maps a free-text query onto the catalog taxonomy without a trained model.

Three stages, each short-circuiting on a positive result:

1. **Mapping score** — every predefined phrase is scored against the
   query (substring = 3, all phrase words = 2, some = 1) plus a bonus for
   query words found in the mapped subcategory.  Highest total wins;
   ties prefer the longer phrase.
2. **Catalog scan** — distinct categories and (category, subcategory)
   pairs are read from the live catalog.  The longest subcategory
   (> 3 chars) contained in the query wins; otherwise the longest
   contained category, without a subcategory.
3. **Keyword rules** — the first rule (declared order) with a trigger
   word present in the query.

Usage:
    detector = CategoryDetector(TaxonomyIndex(), catalog)
    result = await detector.detect("show me beach clubs to chill")
    result.category, result.subcategory   # ("places", "beach clubs to chill")
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Literal

from dalil.src.core.taxonomy_index import CategoryMapping, TaxonomyIndex
from dalil.src.database.catalog_store import CatalogQuery
from dalil.src.utils.logger import get_logger
from dalil.src.utils.text_utils import contains_word, normalize_query, tokenize

logger = get_logger(__name__)

DetectionSource = Literal["mapping", "catalog", "keyword"]


@dataclass(frozen=True, slots=True)
class DetectionResult:
    category: str | None = None
    subcategory: str | None = None
    source: DetectionSource | None = None

    @property
    def is_empty(self) -> bool:
        return self.category is None


@dataclass(frozen=True, slots=True)
class MappingScore:
    mapping: CategoryMapping
    base: int
    bonus: int

    @property
    def total(self) -> int:
        return self.base + self.bonus


_EMPTY = DetectionResult()


class CategoryDetector:
    """
    Query → ``DetectionResult`` via the three-stage waterfall.

    Parameters
    ----------
    taxonomy
        Static mapping table, keyword rules and stopwords.
    catalog
        Live catalog, used by stage 2 for its distinct taxonomy.
    """

    __slots__ = ("_taxonomy", "_catalog")

    def __init__(self, taxonomy: TaxonomyIndex, catalog: CatalogQuery) -> None:
        self._taxonomy = taxonomy
        self._catalog = catalog


    async def detect(self, query: str) -> DetectionResult:
        normalized = normalize_query(query)
        if not normalized:
            return _EMPTY

        scored = self.score_match(normalized)
        if scored:
            best = scored[0].mapping
            logger.debug("[DETECT] Mapping '%s' (score %d) → %s / %s", best.phrase, scored[0].total, best.category, best.subcategory)
            return DetectionResult(best.category, best.subcategory, "mapping")

        from_catalog = await self._match_catalog(normalized)
        if not from_catalog.is_empty:
            logger.debug("[DETECT] Catalog taxonomy → %s / %s", from_catalog.category, from_catalog.subcategory)
            return from_catalog

        from_keywords = self.match_keywords(normalized)
        if not from_keywords.is_empty:
            logger.debug("[DETECT] Keyword rule → %s / %s", from_keywords.category, from_keywords.subcategory)
        return from_keywords

    # ── Stage 1: predefined mappings ───────────────────────────────────

    def score_match(self, query: str) -> list[MappingScore]:
        """All mappings with a positive base score, best first."""
        normalized = normalize_query(query)
        query_words = self._taxonomy.meaningful_words(normalized)
        scored: list[MappingScore] = []

        for mapping in self._taxonomy.mappings:
            base = self._base_score(mapping.phrase, normalized)
            if base == 0:
                continue
            scored.append(MappingScore(mapping, base, self._subcategory_bonus(query_words, mapping.subcategory)))

        scored.sort(key=lambda s: (-s.total, -len(s.mapping.phrase)))
        return scored


    @staticmethod
    def _base_score(phrase: str, query: str) -> int:
        if phrase in query:
            return 3
        words = [w for w in tokenize(phrase) if len(w) >= 3]
        found = sum(1 for w in words if w in query)
        if not found:
            return 0
        return 2 if found == len(words) else 1


    @staticmethod
    def _subcategory_bonus(query_words: list[str], subcategory: str | None) -> int:
        if not subcategory:
            return 0
        sub = subcategory.lower()
        sub_tokens = set(tokenize(sub))
        bonus = 0
        for word in query_words:
            if word in sub_tokens:
                bonus += 2
            elif word in sub:
                bonus += 1
        return bonus

    # ── Stage 2: live catalog taxonomy ─────────────────────────────────

    async def _match_catalog(self, query: str) -> DetectionResult:
        try:
            categories, pairs = await asyncio.gather(
                self._catalog.distinct_categories(),
                self._catalog.distinct_category_subcategory_pairs(),
            )
        except Exception:
            logger.exception("[DETECT] Catalog taxonomy lookup failed; skipping catalog stage.")
            return _EMPTY

        best_pair: tuple[str, str] | None = None
        for category, subcategory in pairs:
            if not subcategory:
                continue
            sub = subcategory.lower()
            if len(sub) > 3 and sub in query and (best_pair is None or len(sub) > len(best_pair[1])):
                best_pair = (category, subcategory)
        if best_pair is not None:
            return DetectionResult(best_pair[0], best_pair[1], "catalog")

        matching = [c for c in categories if c and c.lower() in query]
        if matching:
            return DetectionResult(max(matching, key=len), None, "catalog")
        return _EMPTY

    # ── Stage 3: keyword rules ─────────────────────────────────────────

    def match_keywords(self, query: str) -> DetectionResult:
        normalized = normalize_query(query)
        for rule in self._taxonomy.keyword_rules:
            if any(contains_word(normalized, trigger) for trigger in rule.triggers):
                return DetectionResult(rule.category, rule.subcategory, "keyword")
        return _EMPTY
