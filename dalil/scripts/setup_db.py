"""
Dalil - setup_db
=================
Create (or open) the LanceDB catalog table and ingest the nested catalog
export, embedding every activity with Gemini.

    python -m dalil.scripts.setup_db                   # ingest new activities
    python -m dalil.scripts.setup_db --drop            # drop the table, re-ingest everything
    python -m dalil.scripts.setup_db --drop-only       # drop the table and stop
    python -m dalil.scripts.setup_db --force           # re-embed even if unchanged
    python -m dalil.scripts.setup_db --source x.json   # ingest another export

Exit status: 0 on success, 1 when settings or startup fail, 2 when at
least one embedding batch failed.
"""

from __future__ import annotations

import argparse
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

EXIT_OK = 0
EXIT_STARTUP_ERROR = 1
EXIT_PARTIAL_FAILURE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dalil-setup-db", description="Load the Dalil catalog export into LanceDB.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--drop", action="store_true", help="drop the catalog table first, then ingest everything")
    mode.add_argument("--drop-only", action="store_true", help="drop the catalog table and exit")
    parser.add_argument("--force", action="store_true", help="re-embed activities that are already stored")
    parser.add_argument("--source", type=Path, default=None, help="catalog export to ingest (default: CATALOG_JSON_PATH)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log at DEBUG level")
    return parser


@contextmanager
def _phase(timings: dict[str, float], name: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        timings[name] = timings.get(name, 0.0) + time.perf_counter() - start


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    timings: dict[str, float] = {}
    started = time.perf_counter()

    with _phase(timings, "settings"):
        try:
            from dalil.config.settings import settings
        except Exception as exc:
            print(f"\n[FATAL] Could not load settings; is GOOGLE_API_KEY set in dalil/.env?\n  {exc}\n", file=sys.stderr)
            return EXIT_STARTUP_ERROR

    from dalil.src.utils.logger import get_logger, set_level

    if args.verbose:
        set_level("DEBUG")
    logger = get_logger("dalil.scripts.setup_db")

    from dalil.src.core.embeddings import EmbeddingService, build_default_embedder
    from dalil.src.core.ingestor import CatalogIngestor
    from dalil.src.database.catalog_store import LanceCatalogStore

    source = args.source or settings.CATALOG_JSON_PATH
    _print_banner(settings, source, args)

    try:
        with _phase(timings, "embedder"):
            embeddings = EmbeddingService(build_default_embedder())
        with _phase(timings, "lancedb"):
            store = LanceCatalogStore()
    except Exception:
        logger.exception("Startup failed.")
        return EXIT_STARTUP_ERROR

    if args.drop or args.drop_only:
        logger.warning("Dropping table '%s'.", settings.LANCEDB_TABLE_NAME)
        store.drop_table()
        if CatalogIngestor(store, embeddings, source_path=source).clear_hash_cache():
            logger.info("Forgot the stored export hash.")
        if args.drop_only:
            _print_summary(None, timings, time.perf_counter() - started)
            return EXIT_OK
        with _phase(timings, "lancedb"):
            store = LanceCatalogStore()

    logger.info("Table '%s' holds %d row(s) before ingestion.", settings.LANCEDB_TABLE_NAME, store.count())
    with _phase(timings, "ingestion"):
        summary = CatalogIngestor(store, embeddings, source_path=source).run(force=args.force)

    _print_summary(summary, timings, time.perf_counter() - started)
    return EXIT_PARTIAL_FAILURE if summary["failed"] else EXIT_OK


# ── Console output ────────────────────────────────────────────────────

def _mode(args: argparse.Namespace) -> str:
    if args.drop_only:
        return "drop only"
    mode = "drop + full ingest" if args.drop else "incremental ingest"
    return f"{mode} (forced)" if args.force else mode


def _print_banner(settings: Any, source: Path, args: argparse.Namespace) -> None:
    key = settings.GOOGLE_API_KEY.get_secret_value()
    _print_table("DALIL :: catalog setup", [
        ("Environment", settings.ENV),
        ("Embedding model", f"{settings.EMBEDDING_MODEL} ({settings.EMBEDDING_DIM} dims)"),
        ("LanceDB", f"{settings.LANCEDB_PATH} :: {settings.LANCEDB_TABLE_NAME}"),
        ("Export", source),
        ("Batching", f"{settings.EMBED_BATCH_SIZE} texts x {settings.MAX_WORKERS} workers"),
        ("Mode", _mode(args)),
        ("API key", f"****{key[-4:]}" if len(key) > 4 else "****"),
    ])


def _print_summary(summary: dict[str, Any] | None, timings: dict[str, float], elapsed: float) -> None:
    rows: list[tuple[str, object]] = []
    if summary is not None:
        rows += [
            ("Activities in export", summary["total"]),
            ("Embedded + stored", summary["processed"]),
            ("Already stored", summary["skipped"]),
            ("Failed", summary["failed"]),
        ]
        if summary.get("source_unchanged"):
            rows.append(("Note", "export unchanged since last run (use --force)"))
    rows += [(f"{name.capitalize()} time", f"{seconds:.2f}s") for name, seconds in timings.items()]
    rows.append(("Total elapsed", f"{elapsed:.2f}s"))
    _print_table("Summary", rows)


def _print_table(title: str, rows: list[tuple[str, object]]) -> None:
    width = max(len(label) for label, _ in rows)
    print()
    print("=" * 64)
    print(f"  {title}")
    print("-" * 64)
    for label, value in rows:
        print(f"  {label:<{width}} : {value}")
    print("=" * 64)
    print()


if __name__ == "__main__":
    sys.exit(main())
