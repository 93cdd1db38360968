"""
Tests for the fy_transfer command-line tool.

Each test runs main() against a file-backed SQLite store so that the
command's own transaction really commits or rolls back.
"""

import json
from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from budget_kernel.db.engine import build_engine, create_tables, reset_engine
from budget_kernel.domain.aggregate import EntityKind
from budget_kernel.services.fiscal_year_service import FiscalYearService
from budget_kernel.services.repositories import RepositoryRegistry
from scripts.fy_transfer import EXIT_FATAL, EXIT_OK, EXIT_PARTIAL, actor_id_for, main
from tests.builders import TEST_ACTOR_ID, aggregate_counts, populate_fiscal_year


@dataclass
class SeededStore:
    url: str
    rc_id: UUID
    fiscal_year_id: UUID
    empty_fiscal_year_id: UUID

    def counts(self, fiscal_year_id: UUID):
        engine = build_engine(self.url)
        try:
            with Session(engine) as session:
                return aggregate_counts(session, fiscal_year_id)
        finally:
            engine.dispose()

    def fiscal_year_names(self, rc_id: UUID | None = None) -> list[str]:
        engine = build_engine(self.url)
        try:
            with Session(engine) as session:
                service = FiscalYearService(session, RepositoryRegistry(session))
                return [fy.get("name") for fy in service.list_fiscal_years(rc_id or self.rc_id)]
        finally:
            engine.dispose()


@pytest.fixture
def store(tmp_path, monkeypatch) -> SeededStore:
    url = f"sqlite+pysqlite:///{tmp_path / 'budget.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.delenv("BUDGET_SETTINGS_FILE", raising=False)
    monkeypatch.delenv("BUDGET_LOG_LEVEL", raising=False)

    engine = build_engine(url)
    create_tables(engine)
    with Session(engine, expire_on_commit=False) as session:
        service = FiscalYearService(session, RepositoryRegistry(session))
        centre = service.create_responsibility_centre("Corporate Finance", TEST_ACTOR_ID)
        sample = populate_fiscal_year(session, centre.id)
        empty = service.create_fiscal_year(centre.id, "FY 2026-2027", TEST_ACTOR_ID)
        session.commit()
    engine.dispose()

    yield SeededStore(url, centre.id, sample.fiscal_year_id, empty.id)
    reset_engine()


def _partial_snapshot() -> dict:
    return {
        "metadata": {"version": "1.0.0"},
        "fundingItems": [
            {"item": {"name": "Grant"}},
            {"item": {"name": "Grant"}},
        ],
    }


class TestExport:
    def test_export_to_stdout(self, store, capsys):
        code = main(["export", "--fiscal-year-id", str(store.fiscal_year_id)])

        assert code == EXIT_OK
        document = json.loads(capsys.readouterr().out)
        assert document["metadata"]["sourceFyName"] == "FY 2025-2026"
        assert document["metadata"]["exportedBy"] == "fy_transfer"
        assert len(document["fundingItems"]) == 1

    def test_export_to_file(self, store, tmp_path, capsys):
        output = tmp_path / "fy.json"
        code = main([
            "--actor", "analyst",
            "export", "--fiscal-year-id", str(store.fiscal_year_id), "--output", str(output),
        ])

        assert code == EXIT_OK
        assert str(output) in capsys.readouterr().out
        assert json.loads(output.read_text(encoding="utf-8"))["metadata"]["exportedBy"] == "analyst"

    def test_unknown_fiscal_year(self, store, capsys):
        code = main(["export", "--fiscal-year-id", str(uuid4())])
        assert code == EXIT_FATAL
        assert "ERROR [FISCAL_YEAR_NOT_FOUND]" in capsys.readouterr().err


class TestImport:
    def test_export_then_import(self, store, tmp_path):
        snapshot = tmp_path / "fy.json"
        assert main([
            "export", "--fiscal-year-id", str(store.fiscal_year_id), "--output", str(snapshot),
        ]) == EXIT_OK

        code = main([
            "import",
            "--rc-id", str(store.rc_id),
            "--fiscal-year-id", str(store.empty_fiscal_year_id),
            "--input", str(snapshot),
        ])

        assert code == EXIT_OK
        assert store.counts(store.empty_fiscal_year_id) == store.counts(store.fiscal_year_id)

    def test_partial_import_reports_errors(self, store, tmp_path, capsys):
        snapshot = tmp_path / "partial.json"
        snapshot.write_text(json.dumps(_partial_snapshot()), encoding="utf-8")

        code = main([
            "import",
            "--rc-id", str(store.rc_id),
            "--fiscal-year-id", str(store.empty_fiscal_year_id),
            "--input", str(snapshot),
        ])

        assert code == EXIT_PARTIAL
        out = capsys.readouterr().out
        assert "1 of 2 items imported" in out
        assert "funding_item[1] Grant: DUPLICATE_NAME" in out
        # The successful item was committed
        assert store.counts(store.empty_fiscal_year_id)[EntityKind.FUNDING_ITEM] == 1

    def test_malformed_snapshot(self, store, tmp_path, capsys):
        snapshot = tmp_path / "broken.json"
        snapshot.write_text("{not json", encoding="utf-8")

        code = main([
            "import",
            "--rc-id", str(store.rc_id),
            "--fiscal-year-id", str(store.empty_fiscal_year_id),
            "--input", str(snapshot),
        ])

        assert code == EXIT_FATAL
        assert "SNAPSHOT_FORMAT_ERROR" in capsys.readouterr().err

    def test_missing_input_file(self, store, tmp_path, capsys):
        code = main([
            "import",
            "--rc-id", str(store.rc_id),
            "--fiscal-year-id", str(store.empty_fiscal_year_id),
            "--input", str(tmp_path / "absent.json"),
        ])
        assert code == EXIT_FATAL
        assert "absent.json" in capsys.readouterr().err


class TestClone:
    def test_clone(self, store, capsys):
        code = main([
            "clone",
            "--rc-id", str(store.rc_id),
            "--fiscal-year-id", str(store.fiscal_year_id),
            "--name", "FY 2025-2026 (Copy)",
        ])

        assert code == EXIT_OK
        assert "'FY 2025-2026 (Copy)'" in capsys.readouterr().out
        assert "FY 2025-2026 (Copy)" in store.fiscal_year_names()

    def test_taken_name_writes_nothing(self, store, capsys):
        code = main([
            "clone",
            "--rc-id", str(store.rc_id),
            "--fiscal-year-id", str(store.fiscal_year_id),
            "--name", "FY 2026-2027",
        ])

        assert code == EXIT_FATAL
        assert "ERROR [DUPLICATE_NAME]" in capsys.readouterr().err
        assert store.fiscal_year_names() == ["FY 2025-2026", "FY 2026-2027"]


class TestSettingsAndArguments:
    def test_bad_settings_file(self, store, tmp_path, capsys):
        settings = tmp_path / "settings.yaml"
        settings.write_text("colour: blue\n", encoding="utf-8")

        code = main(["--settings", str(settings), "export", "--fiscal-year-id", str(uuid4())])

        assert code == EXIT_FATAL
        assert "Unknown settings: colour" in capsys.readouterr().err

    def test_create_tables_on_fresh_database(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{tmp_path / 'fresh.db'}")
        monkeypatch.delenv("BUDGET_SETTINGS_FILE", raising=False)
        try:
            code = main(["--create-tables", "export", "--fiscal-year-id", str(uuid4())])
        finally:
            reset_engine()
        assert code == EXIT_FATAL
        assert "FISCAL_YEAR_NOT_FOUND" in capsys.readouterr().err

    def test_invalid_uuid_is_an_argument_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["export", "--fiscal-year-id", "not-a-uuid"])
        assert exc_info.value.code == 2

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            main([])


class TestActorId:
    def test_uuid_is_used_as_is(self):
        actor = uuid4()
        assert actor_id_for(str(actor)) == actor

    def test_user_name_maps_to_a_stable_uuid(self):
        assert actor_id_for("analyst") == actor_id_for("analyst")
        assert actor_id_for("analyst") != actor_id_for("auditor")
        assert isinstance(actor_id_for("analyst"), UUID)
