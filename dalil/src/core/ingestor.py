"""
Dalil - CatalogIngestor
========================
Loads the nested catalog export into a catalog store, embedding every
activity on the way.

Source format::

    {
      "<category>": {
        "subcategories": {
          "<subcategory>": {"activities": [{"id": ..., "name": ..., ...}, ...]}
        }
      }
    }

Key design decisions:
    • **Dependency Injection** – receives the store + ``EmbeddingService``.
    • **Idempotent** – row ids are derived from category, subcategory and
      source id (or name), so stored activities are skipped unless
      ``force=True``; a forced run overwrites them in place.
    • **Concurrency** – embedding batches run in parallel via
      ``ThreadPoolExecutor`` (Gemini API calls are I/O-bound).
    • **Caching** – an MD5 hash of the export skips unchanged files.
    • **Partial failure** – a failed batch is recorded and the run
      continues with the next one.

Usage:
    from dalil.src.core.ingestor import CatalogIngestor
    ingestor = CatalogIngestor(store, EmbeddingService(build_default_embedder()))
    summary  = ingestor.run()
"""

from __future__ import annotations

import hashlib
import json
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Protocol

from dalil.config.settings import settings
from dalil.src.core.embeddings import EmbeddingService
from dalil.src.models.catalog import CatalogItem
from dalil.src.utils.logger import get_logger
from dalil.src.utils.text_utils import slugify

logger = get_logger(__name__)

# Activity fields → CatalogItem fields
_FIELD_MAP: dict[str, str] = {
    "name": "name",
    "slug": "slug",
    "address": "address",
    "description": "description",
    "information": "information",
    "timing_content": "timing",
    "pricing_content": "pricing",
    "booking_type": "booking_type",
    "redirect_url": "redirect_url",
}


class CatalogWriter(Protocol):
    def add_items(self, items: list[CatalogItem]) -> int: ...

    def existing_ids(self) -> set[str]: ...


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_catalog(data: dict[str, Any]) -> list[CatalogItem]:
    """Flatten the nested export into ``CatalogItem`` rows (no embeddings yet)."""
    items: list[CatalogItem] = []
    for category, category_data in data.items():
        subcategories = (category_data or {}).get("subcategories") or {}
        for subcategory, subcategory_data in subcategories.items():
            for activity in (subcategory_data or {}).get("activities") or []:
                name = _text(activity.get("name"))
                if not name:
                    logger.warning("Skipping unnamed activity in %s / %s.", category, subcategory)
                    continue
                original_id = _text(activity.get("id"))
                fields = {target: _text(activity.get(source)) for source, target in _FIELD_MAP.items()}
                fields["slug"] = fields["slug"] or slugify(name)
                item_id = str(uuid.uuid5(uuid.NAMESPACE_URL, f"{category}|{subcategory}|{original_id or name}"))
                items.append(CatalogItem(id=item_id, original_id=original_id, category=category, subcategory=subcategory, **fields))
    return items


class CatalogIngestor:
    """
    End-to-end catalog ingestion: read → parse → embed → store.

    Parameters
    ----------
    store
        Destination exposing ``add_items`` and ``existing_ids``.
    embeddings
        Batched document embedder.
    source_path
        Override the export path.  Defaults to ``settings.CATALOG_JSON_PATH``.
    hash_cache_path
        Where the export's MD5 is remembered between runs.
    max_workers
        Number of embedding batches processed in parallel.
    """

    def __init__(self, store: CatalogWriter, embeddings: EmbeddingService, source_path: Path | None = None, hash_cache_path: Path | None = None, max_workers: int | None = None) -> None:
        self._store = store
        self._embeddings = embeddings
        self._source_path = Path(source_path or settings.CATALOG_JSON_PATH)
        self._hash_cache_path = Path(hash_cache_path or settings.DATA_DIR / "processed" / "ingestion_hashes.json")
        self._max_workers = max_workers or settings.MAX_WORKERS
        self._batch_size = settings.EMBED_BATCH_SIZE

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC ENTRY POINT
    # ══════════════════════════════════════════════════════════════════

    def run(self, force: bool = False) -> dict[str, Any]:
        """
        Execute the ingestion.

        Returns
        -------
        dict
            ``total``, ``processed``, ``skipped``, ``failed``,
            ``failed_entries``, ``source_unchanged``, ``elapsed_seconds``.
        """
        t_start = time.perf_counter()

        if not self._source_path.exists():
            logger.warning("Catalog export does not exist: %s", self._source_path)
            return self._summary(0, 0, 0, [], False, time.perf_counter() - t_start)

        file_hash = self._compute_file_hash(self._source_path)
        hash_cache = self._load_hash_cache()
        if not force and hash_cache.get(self._source_path.name) == file_hash:
            logger.info("CACHE_HIT — Catalog export unchanged: %s", self._source_path.name)
            return self._summary(0, 0, 0, [], True, time.perf_counter() - t_start)

        data = json.loads(self._source_path.read_text(encoding="utf-8"))
        items = parse_catalog(data)
        logger.info("Found %d activities in %s", len(items), self._source_path.name)

        existing = set() if force else self._store.existing_ids()
        pending = [item for item in items if item.id not in existing]
        skipped = len(items) - len(pending)
        logger.info("%d already stored, %d to embed.", skipped, len(pending))

        processed, failed_entries = self._ingest(pending)

        if not failed_entries:
            hash_cache[self._source_path.name] = file_hash
            self._save_hash_cache(hash_cache)

        elapsed = time.perf_counter() - t_start
        logger.info("Ingestion complete — %d processed, %d skipped, %d failed in %.2fs.", processed, skipped, len(failed_entries), elapsed)
        if failed_entries:
            logger.warning("Failed entries: %s", json.dumps(failed_entries, ensure_ascii=False))
        return self._summary(len(items), processed, skipped, failed_entries, False, elapsed)

    # ══════════════════════════════════════════════════════════════════
    #  EMBED + STORE
    # ══════════════════════════════════════════════════════════════════

    def _ingest(self, items: list[CatalogItem]) -> tuple[int, list[dict[str, str | None]]]:
        batches = [items[i:i + self._batch_size] for i in range(0, len(items), self._batch_size)]
        processed = 0
        failed_entries: list[dict[str, str | None]] = []

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            future_to_batch = {pool.submit(self._embed_batch, batch): batch for batch in batches}

            for future in as_completed(future_to_batch):
                batch = future_to_batch[future]
                try:
                    embedded = future.result()
                    processed += self._store.add_items(embedded)
                except Exception as exc:
                    logger.exception("Failed to ingest batch of %d activities.", len(batch))
                    failed_entries.extend({"id": item.original_id, "category": item.category, "subcategory": item.subcategory, "error": str(exc)} for item in batch)

        return processed, failed_entries


    def _embed_batch(self, batch: list[CatalogItem]) -> list[CatalogItem]:
        t_embed = time.perf_counter()
        vectors = self._embeddings.embed_documents([item.embedding_text() for item in batch])
        logger.debug("Embedded %d activities in %.1fms.", len(batch), (time.perf_counter() - t_embed) * 1000)
        return [item.model_copy(update={"embedding": [float(v) for v in vector]}) for item, vector in zip(batch, vectors)]

    # ══════════════════════════════════════════════════════════════════
    #  MD5 CACHING
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _compute_file_hash(filepath: Path) -> str:
        """Return the MD5 hex digest of a file's contents."""
        hasher = hashlib.md5()
        with open(filepath, "rb") as f:
            for block in iter(lambda: f.read(8192), b""):
                hasher.update(block)
        return hasher.hexdigest()


    def _load_hash_cache(self) -> dict[str, str]:
        if self._hash_cache_path.exists():
            try:
                return json.loads(self._hash_cache_path.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError):
                logger.warning("Corrupt hash cache — starting fresh.")
        return {}


    def _save_hash_cache(self, cache: dict[str, str]) -> None:
        self._hash_cache_path.parent.mkdir(parents=True, exist_ok=True)
        self._hash_cache_path.write_text(json.dumps(cache, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Hash cache saved to %s", self._hash_cache_path)


    def clear_hash_cache(self) -> bool:
        """Forget the stored export hash.  Returns True if a cache file was removed."""
        if self._hash_cache_path.exists():
            self._hash_cache_path.unlink()
            return True
        return False

    # ── Summary helper ─────────────────────────────────────────────────

    @staticmethod
    def _summary(total: int, processed: int, skipped: int, failed_entries: list[dict[str, str | None]], source_unchanged: bool, elapsed: float) -> dict[str, Any]:
        return {
            "total": total,
            "processed": processed,
            "skipped": skipped,
            "failed": len(failed_entries),
            "failed_entries": failed_entries,
            "source_unchanged": source_unchanged,
            "elapsed_seconds": round(elapsed, 2),
        }
