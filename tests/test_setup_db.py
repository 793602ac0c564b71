import re

import pytest
from conftest import FakeEmbedder

from dalil.config.settings import settings
from dalil.scripts import setup_db
from dalil.src.core import embeddings
from dalil.src.database.catalog_store import LanceCatalogStore


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATA_DIR", tmp_path / "data")
    monkeypatch.setattr(settings, "LANCEDB_PATH", tmp_path / "lancedb")
    monkeypatch.setattr(settings, "EMBEDDING_DIM", 4)
    monkeypatch.setattr(embeddings, "build_default_embedder", FakeEmbedder)
    return tmp_path


def stored_rows(workspace):
    return LanceCatalogStore(db_path=str(workspace / "lancedb"), embedding_dim=4).count()


def test_ingest_then_rerun_reports_unchanged_export(workspace, export_path, capsys):
    assert setup_db.main(["--source", str(export_path)]) == setup_db.EXIT_OK
    out = capsys.readouterr().out
    assert re.search(r"Embedded \+ stored\s+: 3", out)
    assert "API key" in out
    assert stored_rows(workspace) == 3

    assert setup_db.main(["--source", str(export_path)]) == setup_db.EXIT_OK
    assert "export unchanged since last run" in capsys.readouterr().out
    assert stored_rows(workspace) == 3


def test_force_overwrites_rows_in_place(workspace, export_path, capsys):
    setup_db.main(["--source", str(export_path)])
    capsys.readouterr()

    assert setup_db.main(["--force", "--source", str(export_path)]) == setup_db.EXIT_OK
    assert re.search(r"Embedded \+ stored\s+: 3", capsys.readouterr().out)
    assert stored_rows(workspace) == 3


def test_drop_only_empties_the_table(workspace, export_path, capsys):
    setup_db.main(["--source", str(export_path)])

    assert setup_db.main(["--drop-only", "--source", str(export_path)]) == setup_db.EXIT_OK
    assert "drop only" in capsys.readouterr().out
    assert stored_rows(workspace) == 0


def test_drop_reingests_everything(workspace, export_path, capsys):
    setup_db.main(["--source", str(export_path)])

    assert setup_db.main(["--drop", "--source", str(export_path)]) == setup_db.EXIT_OK
    assert re.search(r"Embedded \+ stored\s+: 3", capsys.readouterr().out)
    assert stored_rows(workspace) == 3


def test_failed_embeddings_exit_with_partial_failure(workspace, export_path, monkeypatch):
    monkeypatch.setattr(embeddings, "build_default_embedder", lambda: FakeEmbedder(fail=True))

    assert setup_db.main(["--source", str(export_path)]) == setup_db.EXIT_PARTIAL_FAILURE
    assert stored_rows(workspace) == 0


def test_startup_failure_exits_with_startup_error(workspace, export_path, monkeypatch):
    def broken():
        raise RuntimeError("no credentials")

    monkeypatch.setattr(embeddings, "build_default_embedder", broken)

    assert setup_db.main(["--source", str(export_path)]) == setup_db.EXIT_STARTUP_ERROR


def test_drop_flags_are_mutually_exclusive():
    with pytest.raises(SystemExit):
        setup_db.build_parser().parse_args(["--drop", "--drop-only"])
