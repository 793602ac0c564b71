"""
Dalil - In-Memory Catalog
==========================
``CatalogQuery`` implementation over a plain list of ``CatalogItem``.

Used by tests and small deployments that load the catalog JSON at
startup instead of maintaining a LanceDB table.  Cosine distance is
computed directly with numpy; items whose embedding is missing or has a
different width from the query are never vector-scored.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from dalil.src.database.catalog_store import TaxonomyPair
from dalil.src.models.catalog import CatalogItem, ScoredItem


def _eq(value: str | None, expected: str | None) -> bool:
    return expected is None or (value or "").lower() == expected.lower()


class InMemoryCatalog:
    """List-backed catalog with case-insensitive taxonomy filters."""

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[CatalogItem] = ()) -> None:
        self._items: list[CatalogItem] = list(items)


    def add_items(self, items: list[CatalogItem]) -> int:
        """Upsert keyed on ``id``: a re-added item replaces the stored one in place."""
        position = {item.id: i for i, item in enumerate(self._items)}
        for item in items:
            if item.id in position:
                self._items[position[item.id]] = item
            else:
                position[item.id] = len(self._items)
                self._items.append(item)
        return len(items)


    def existing_ids(self) -> set[str]:
        return {item.id for item in self._items}


    @property
    def items(self) -> list[CatalogItem]:
        return list(self._items)


    async def count_items(self) -> int:
        return len(self._items)


    async def distinct_categories(self) -> list[str]:
        return list(dict.fromkeys(item.category for item in self._items if item.category))


    async def distinct_category_subcategory_pairs(self) -> list[TaxonomyPair]:
        return list(dict.fromkeys((item.category, item.subcategory) for item in self._items if item.category and item.subcategory))


    async def search_by_category_subcategory(self, category: str, subcategory: str | None = None, limit: int = 50) -> list[CatalogItem]:
        matches = [item for item in self._items if _eq(item.category, category) and _eq(item.subcategory, subcategory)]
        return matches[:limit]


    async def search_by_vector(self, embedding: Sequence[float], limit: int, category: str | None = None, subcategory: str | None = None) -> list[ScoredItem]:
        candidates = [
            item for item in self._items
            if item.embedding and len(item.embedding) == len(embedding) and _eq(item.category, category) and _eq(item.subcategory, subcategory)
        ]
        if not candidates or not len(embedding):
            return []

        query = np.asarray(embedding, dtype=np.float64)
        matrix = np.asarray([item.embedding for item in candidates], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarity = np.where(norms > 0, matrix @ query / norms, 0.0)
        distances = 1.0 - np.clip(similarity, -1.0, 1.0)

        order = np.argsort(distances, kind="stable")[:limit]
        return [ScoredItem(candidates[i], float(distances[i])) for i in order]


    async def search_by_text_match(self, patterns: Sequence[str], fields: Sequence[str], limit: int) -> list[CatalogItem]:
        needles = [p.lower() for p in patterns if p]
        if not needles:
            return []
        matches: list[CatalogItem] = []
        for item in self._items:
            haystacks = [str(getattr(item, f) or "").lower() for f in fields]
            if any(n in h for n in needles for h in haystacks):
                matches.append(item)
                if len(matches) >= limit:
                    break
        return matches


    async def search_by_fuzzy_taxonomy(self, subcategory_patterns: Sequence[str], category: str | None, limit: int) -> list[CatalogItem]:
        needles = [p.lower() for p in subcategory_patterns if p]
        if not needles:
            return []
        cat = category.lower() if category else None
        matches = [
            item for item in self._items
            if any(n in (item.subcategory or "").lower() for n in needles) and (cat is None or cat in item.category.lower())
        ]
        return matches[:limit]


    def __repr__(self) -> str:
        return f"InMemoryCatalog(items={len(self._items)})"
