"""
Dalil - Catalog Store (LanceDB)
================================
OOP wrapper around LanceDB exposing the catalog query interface the
retrieval engine consumes:

  • row count (readiness check)
  • distinct categories / (category, subcategory) pairs
  • exact taxonomy filters, optionally ranked by cosine distance
  • case-insensitive "contains" text matching and fuzzy taxonomy matching
  • batched insertion for the ingestion pipeline

Design decisions:
  • **Singleton DB connection** — ``_get_connection()`` caches one
    ``lancedb.DBConnection`` per path to avoid file-lock contention.
  • **Async facade** — LanceDB calls block, so every ``CatalogQuery``
    method hands its work to ``asyncio.to_thread``.
  • **Fixed-size vectors** — rows without an embedding store a zero
    vector with ``has_embedding = false`` and are filtered out of every
    vector search.

Usage:
    from dalil.src.database.catalog_store import LanceCatalogStore
    store = LanceCatalogStore()
    hits = await store.search_by_vector(query_vector, limit=10, category="places")
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import lancedb
import pyarrow as pa
import pyarrow.compute as pc

from dalil.config.settings import settings
from dalil.src.models.catalog import CatalogItem, ScoredItem
from dalil.src.utils.logger import get_logger

logger = get_logger(__name__)

TaxonomyPair = tuple[str, str]

_SEARCHABLE_FIELDS = frozenset({"name", "description", "information", "category", "subcategory", "address"})
_DB_LOCK = threading.Lock()
_db_connection_cache: dict[str, lancedb.DBConnection] = {}


# ── Catalog Query Protocol ────────────────────────────────────────────

@runtime_checkable
class CatalogQuery(Protocol):
    """Structural type for anything the retrieval engine can search."""

    async def count_items(self) -> int: ...

    async def distinct_categories(self) -> list[str]: ...

    async def distinct_category_subcategory_pairs(self) -> list[TaxonomyPair]: ...

    async def search_by_category_subcategory(self, category: str, subcategory: str | None = None, limit: int = 50) -> list[CatalogItem]: ...

    async def search_by_vector(self, embedding: Sequence[float], limit: int, category: str | None = None, subcategory: str | None = None) -> list[ScoredItem]: ...

    async def search_by_text_match(self, patterns: Sequence[str], fields: Sequence[str], limit: int) -> list[CatalogItem]: ...

    async def search_by_fuzzy_taxonomy(self, subcategory_patterns: Sequence[str], category: str | None, limit: int) -> list[CatalogItem]: ...


# ── LanceDB Table Schema ──────────────────────────────────────────────

def build_catalog_schema(dim: int) -> pa.Schema:
    """Catalog schema with a fixed-size ``vector`` column of width *dim*."""
    return pa.schema([
        pa.field("id", pa.utf8()),
        pa.field("original_id", pa.utf8()),
        pa.field("name", pa.utf8()),
        pa.field("slug", pa.utf8()),
        pa.field("category", pa.utf8()),
        pa.field("subcategory", pa.utf8()),
        pa.field("description", pa.utf8()),
        pa.field("information", pa.utf8()),
        pa.field("timing", pa.utf8()),
        pa.field("pricing", pa.utf8()),
        pa.field("booking_type", pa.utf8()),
        pa.field("address", pa.utf8()),
        pa.field("redirect_url", pa.utf8()),
        pa.field("has_embedding", pa.bool_()),
        pa.field("vector", pa.list_(pa.float32(), dim)),
    ])


def _get_connection(db_path: str) -> lancedb.DBConnection:
    """Return a **singleton** ``lancedb.DBConnection`` for *db_path* (thread-safe)."""
    if db_path not in _db_connection_cache:
        with _DB_LOCK:
            if db_path not in _db_connection_cache:
                logger.info("Opening new LanceDB connection: %s", db_path)
                _db_connection_cache[db_path] = lancedb.connect(db_path)
    return _db_connection_cache[db_path]


def _sql_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _taxonomy_clause(category: str | None, subcategory: str | None) -> str:
    clauses = ["has_embedding = true"]
    if category:
        clauses.append(f"lower(category) = {_sql_literal(category.lower())}")
    if subcategory:
        clauses.append(f"lower(subcategory) = {_sql_literal(subcategory.lower())}")
    return " AND ".join(clauses)


class LanceCatalogStore:
    """
    Catalog table backed by a local LanceDB database.

    Parameters
    ----------
    db_path
        Override the database directory.  Defaults to ``settings.LANCEDB_PATH``.
    table_name
        Override the table name.  Defaults to ``settings.LANCEDB_TABLE_NAME``.
    embedding_dim
        Width of the vector column.  Defaults to ``settings.EMBEDDING_DIM``.
    """

    __slots__ = ("_db_path", "_table_name", "_dim", "db", "table")

    def __init__(self, db_path: str | None = None, table_name: str | None = None, embedding_dim: int | None = None) -> None:
        self._db_path: str = str(db_path or settings.LANCEDB_PATH)
        self._table_name: str = table_name or settings.LANCEDB_TABLE_NAME
        self._dim: int = embedding_dim or settings.EMBEDDING_DIM
        self.db: lancedb.DBConnection | None = None
        self.table: lancedb.table.Table | None = None
        self._connect()


    @property
    def embedding_dim(self) -> int:
        return self._dim


    def _connect(self) -> None:
        """Open (or re-use) the LanceDB connection and initialise the table."""
        try:
            self.db = _get_connection(self._db_path)
            if self._table_name in self.db.table_names():
                self.table = self.db.open_table(self._table_name)
                logger.info("Opened existing table '%s' (%d rows).", self._table_name, self.table.count_rows())
            else:
                self.table = self.db.create_table(self._table_name, schema=build_catalog_schema(self._dim))
                logger.info("Created new table '%s' (dim=%d).", self._table_name, self._dim)
        except OSError as exc:
            logger.error("LanceDB filesystem error at %s: %s", self._db_path, exc)
            raise


    def _require_table(self) -> lancedb.table.Table:
        if self.table is None:
            raise RuntimeError("Catalog table is not initialised. Call _connect() first.")
        return self.table

    # ══════════════════════════════════════════════════════════════════
    #  WRITE PATH (ingestion)
    # ══════════════════════════════════════════════════════════════════

    def add_items(self, items: list[CatalogItem]) -> int:
        """Upsert catalog items keyed on ``id``; returns the number of rows written."""
        table = self._require_table()
        if not items:
            return 0
        records = pa.Table.from_pylist([item.to_record(self._dim) for item in items], schema=table.schema)
        try:
            table.merge_insert("id").when_matched_update_all().when_not_matched_insert_all().execute(records)
        except OSError as exc:
            logger.error("Failed to write %d catalog rows: %s", records.num_rows, exc)
            raise
        logger.info("Upserted %d items. Table '%s' now has %d rows.", records.num_rows, self._table_name, table.count_rows())
        return records.num_rows


    def existing_ids(self) -> set[str]:
        """Row ids already stored (ingestion skips them unless forced)."""
        table = self._require_table()
        column = table.to_arrow().column("id")
        return {v for v in pc.unique(column).to_pylist() if v}


    def count(self) -> int:
        return self.table.count_rows() if self.table is not None else 0


    def drop_table(self) -> None:
        """Drop the catalog table (re-ingestion / tests)."""
        if self.db is None:
            logger.warning("No database connection; nothing to drop.")
            return
        try:
            self.db.drop_table(self._table_name)
            self.table = None
            logger.info("Dropped table '%s'.", self._table_name)
        except ValueError:
            logger.warning("Table '%s' does not exist; nothing to drop.", self._table_name)

    # ══════════════════════════════════════════════════════════════════
    #  CATALOG QUERY INTERFACE
    # ══════════════════════════════════════════════════════════════════

    async def count_items(self) -> int:
        return await asyncio.to_thread(self._require_table().count_rows)


    async def distinct_categories(self) -> list[str]:
        return await asyncio.to_thread(self._distinct_categories)


    async def distinct_category_subcategory_pairs(self) -> list[TaxonomyPair]:
        return await asyncio.to_thread(self._distinct_pairs)


    async def search_by_category_subcategory(self, category: str, subcategory: str | None = None, limit: int = 50) -> list[CatalogItem]:
        clause = f"lower(category) = {_sql_literal(category.lower())}"
        if subcategory:
            clause += f" AND lower(subcategory) = {_sql_literal(subcategory.lower())}"
        return await asyncio.to_thread(self._filter, clause, limit)


    async def search_by_vector(self, embedding: Sequence[float], limit: int, category: str | None = None, subcategory: str | None = None) -> list[ScoredItem]:
        if len(embedding) != self._dim:
            logger.warning("[CATALOG] Query vector has %d dims, table expects %d — no results.", len(embedding), self._dim)
            return []
        return await asyncio.to_thread(self._vector_search, list(embedding), limit, _taxonomy_clause(category, subcategory))


    async def search_by_text_match(self, patterns: Sequence[str], fields: Sequence[str], limit: int) -> list[CatalogItem]:
        unknown = set(fields) - _SEARCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Unsupported search fields: {sorted(unknown)}")
        conditions = [f"lower({field}) LIKE {_sql_literal('%' + p.lower() + '%')}" for p in patterns if p for field in fields]
        if not conditions:
            return []
        return await asyncio.to_thread(self._filter, " OR ".join(conditions), limit)


    async def search_by_fuzzy_taxonomy(self, subcategory_patterns: Sequence[str], category: str | None, limit: int) -> list[CatalogItem]:
        sub_conditions = [f"lower(subcategory) LIKE {_sql_literal('%' + p.lower() + '%')}" for p in subcategory_patterns if p]
        if not sub_conditions:
            return []
        clause = "(" + " OR ".join(sub_conditions) + ")"
        if category:
            cat = category.lower()
            clause += f" AND (lower(category) = {_sql_literal(cat)} OR lower(category) LIKE {_sql_literal('%' + cat + '%')})"
        return await asyncio.to_thread(self._filter, clause, limit)

    # ── Blocking helpers (run in worker threads) ───────────────────────

    def _distinct_categories(self) -> list[str]:
        column = self._require_table().to_arrow().column("category")
        return [c for c in pc.unique(column).to_pylist() if c]


    def _distinct_pairs(self) -> list[TaxonomyPair]:
        taxonomy = self._require_table().to_arrow().select(["category", "subcategory"])
        grouped = taxonomy.group_by(["category", "subcategory"]).aggregate([])
        return [(row["category"], row["subcategory"]) for row in grouped.to_pylist() if row["category"] and row["subcategory"]]


    def _filter(self, clause: str, limit: int) -> list[CatalogItem]:
        rows = self._require_table().search().where(clause).limit(limit).to_list()
        logger.debug("[CATALOG] Filter returned %d rows: %s", len(rows), clause)
        return [CatalogItem.from_record(r) for r in rows]


    def _vector_search(self, vector: list[float], limit: int, clause: str) -> list[ScoredItem]:
        query = self._require_table().search(vector, vector_column_name="vector").distance_type("cosine").where(clause, prefilter=True).limit(limit)
        rows = query.to_list()
        logger.debug("[CATALOG] Vector search (%s) returned %d rows.", clause, len(rows))
        return [ScoredItem(CatalogItem.from_record(r), float(r["_distance"])) for r in rows]


    def __repr__(self) -> str:
        return f"LanceCatalogStore(db='{self._db_path}', table='{self._table_name}', rows={self.count()})"
