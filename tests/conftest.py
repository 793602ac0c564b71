"""Shared fixtures: hand-built catalog items, a call-counting catalog and a settable clock."""

import os

# Settings require an API key at import time
os.environ.setdefault("GOOGLE_API_KEY", "test-key")

import asyncio
import json
from collections import Counter

import pytest

from dalil.src.core.taxonomy_index import TaxonomyIndex
from dalil.src.database.memory_catalog import InMemoryCatalog
from dalil.src.models.catalog import CatalogItem

E1 = [1.0, 0.0, 0.0, 0.0]
E2 = [0.0, 1.0, 0.0, 0.0]
E3 = [0.0, 0.0, 1.0, 0.0]
NEAR_E1 = [0.99, 0.05, 0.0, 0.0]


def make_item(item_id, name, category, subcategory=None, embedding=None, **extra):
    return CatalogItem(id=item_id, original_id=extra.pop("original_id", item_id), name=name, category=category, subcategory=subcategory, embedding=embedding, **extra)




# Nested export: two categories, one unnamed activity, one activity without a source id
EXPORT = {
    "places": {
        "subcategories": {
            "beach clubs to chill": {
                "activities": [
                    {"id": 101, "name": "Nikki Beach", "description": "Mediterranean beach club.", "timing_content": "10am - 8pm", "pricing_content": "AED 200 min spend"},
                    {"id": 102, "name": "  ", "description": "No name, skipped."},
                ],
            },
            "pool clubs to chill": {
                "activities": [{"id": 103, "name": "Cove Pool Club", "slug": "cove"}],
            },
        },
    },
    "dining": {
        "subcategories": {
            "lebanese": {"activities": [{"name": "Al Nafoorah", "address": "Jumeirah Emirates Towers"}]},
        },
    },
}


def write_export(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def export_path(tmp_path):
    return write_export(tmp_path / "nested_data.json", EXPORT)


class FixedClock:
    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeCatalog(InMemoryCatalog):
    """InMemoryCatalog that counts calls and can be told to fail."""

    def __init__(self, items=(), fail_on=(), count_delay=0.0):
        super().__init__(items)
        self.calls = Counter()
        self.fail_on = set(fail_on)
        self.count_delay = count_delay

    def _record(self, name):
        self.calls[name] += 1
        if name in self.fail_on:
            raise ConnectionError(f"{name} unavailable")

    async def count_items(self):
        self._record("count_items")
        if self.count_delay:
            await asyncio.sleep(self.count_delay)
        return await super().count_items()

    async def distinct_categories(self):
        self._record("distinct_categories")
        return await super().distinct_categories()

    async def distinct_category_subcategory_pairs(self):
        self._record("distinct_category_subcategory_pairs")
        return await super().distinct_category_subcategory_pairs()

    async def search_by_category_subcategory(self, category, subcategory=None, limit=50):
        self._record("search_by_category_subcategory")
        return await super().search_by_category_subcategory(category, subcategory, limit)

    async def search_by_vector(self, embedding, limit, category=None, subcategory=None):
        self._record("search_by_vector")
        return await super().search_by_vector(embedding, limit, category, subcategory)

    async def search_by_text_match(self, patterns, fields, limit):
        self._record("search_by_text_match")
        return await super().search_by_text_match(patterns, fields, limit)

    async def search_by_fuzzy_taxonomy(self, subcategory_patterns, category, limit):
        self._record("search_by_fuzzy_taxonomy")
        return await super().search_by_fuzzy_taxonomy(subcategory_patterns, category, limit)


class FakeEmbedder:
    """Deterministic ``Embedder``: known texts map to fixed vectors, everything else to E3."""

    def __init__(self, vectors=None, fail=False):
        self.vectors = vectors or {}
        self.fail = fail
        self.query_calls = []
        self.document_batches = []

    def embed_query(self, text):
        self.query_calls.append(text)
        if self.fail:
            raise RuntimeError("embedding provider down")
        return list(self.vectors.get(text.lower(), E3))

    def embed_documents(self, texts):
        self.document_batches.append(list(texts))
        if self.fail:
            raise RuntimeError("embedding provider down")
        return [[float(len(t)), 1.0, 0.0, 0.0] for t in texts]


@pytest.fixture
def taxonomy():
    return TaxonomyIndex()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def nikki_beach():
    return make_item("a1", "Nikki Beach", "places", "beach clubs to chill", E1, description="Mediterranean beach club on Pearl Jumeira.")


@pytest.fixture
def pool_club():
    return make_item("a2", "Cove Pool Club", "places", "pool clubs to chill", E2, description="Infinity pool and day beds.")


@pytest.fixture
def catalog(nikki_beach, pool_club):
    return FakeCatalog([nikki_beach, pool_club])
