import sqlite3

import pytest

from quiztrack.adapters.sqlite.migrator import MigrationError, SQLiteMigrator


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "test.db")


def _objects(db_path: str) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        rows = conn.execute("SELECT name FROM sqlite_master WHERE type IN ('table', 'view')")
        return {r[0] for r in rows.fetchall()}
    finally:
        conn.close()


def test_migrations_create_schema(db_path):
    applied = SQLiteMigrator(db_path).run_migrations()

    assert applied == ["0001_sites_events.sql"]
    assert {"sites", "events", "event_rollup", "_migrations"} <= _objects(db_path)


def test_migrations_apply_once(db_path):
    migrator = SQLiteMigrator(db_path)
    migrator.run_migrations()

    assert migrator.run_migrations() == []
    assert migrator.applied_migrations() == {"0001_sites_events.sql"}


def test_down_section_not_executed(db_path, tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_t.sql").write_text(
        "-- Up\nCREATE TABLE t (x INTEGER);\n\n-- Down\nDROP TABLE t;\n"
    )

    SQLiteMigrator(db_path, str(migrations)).run_migrations()

    assert "t" in _objects(db_path)


def test_failed_migration_not_recorded(db_path, tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "0001_bad.sql").write_text("CREATE TABLE (;\n")
    migrator = SQLiteMigrator(db_path, str(migrations))

    with pytest.raises(MigrationError):
        migrator.run_migrations()

    assert migrator.applied_migrations() == set()
