"""
Unit tests for schema initialization and the migration runner.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import sqlite3

import pytest

from personaops.db.init_db import EXPECTED_TABLES, init_db, verify_db
from personaops.db.migration_runner import MigrationError, discover_migrations, run_migrations


def _columns(db_path, table):
    conn = sqlite3.connect(db_path)
    cols = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
    conn.close()
    return cols


def _tables(db_path):
    conn = sqlite3.connect(db_path)
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()
    return tables


def test_all_tables_created(test_db):
    assert verify_db(test_db)


def test_migrations_are_numbered_in_order():
    versions = [m.version for m in discover_migrations()]
    assert versions == [1, 2, 3, 4, 5]
    assert all(len(m.checksum) == 64 for m in discover_migrations())


def test_rerun_is_a_no_op(test_db):
    result = run_migrations(test_db)
    assert result == {"applied": [], "skipped": 5}
    tables = init_db(test_db)
    assert set(EXPECTED_TABLES) <= set(tables)


def test_versions_recorded_with_checksums(test_db):
    conn = sqlite3.connect(test_db)
    rows = conn.execute("SELECT version, checksum FROM schema_versions ORDER BY version").fetchall()
    conn.close()
    assert rows == [(m.version, m.checksum) for m in discover_migrations()]


def test_icp_id_column_added(test_db):
    assert "icp_id" in _columns(test_db, "company_analyzer_outputs")


def test_pipeline_errors_table(test_db):
    assert {"pipeline_id", "phase", "severity", "error_message"} <= _columns(test_db, "pipeline_errors")


def test_company_analyses_table(test_db):
    assert {"user_id", "website_url", "analysis_result", "updated_at"} <= _columns(test_db, "company_analyses")


def test_failed_migration_rolls_back(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_widgets.py").write_text(
        "def up(conn):\n"
        "    conn.execute('CREATE TABLE widgets (id INTEGER)')\n"
    )
    (migrations / "002_broken.py").write_text(
        "def up(conn):\n"
        "    conn.execute('CREATE TABLE gadgets (id INTEGER)')\n"
        "    conn.execute('ALTER TABLE missing ADD COLUMN x TEXT')\n"
    )
    (migrations / "notes.txt").write_text("ignored")
    db_path = str(tmp_path / "m.db")

    with pytest.raises(MigrationError) as exc:
        run_migrations(db_path, str(migrations))
    assert exc.value.migration.version == 2
    assert "widgets" in _tables(db_path)
    assert "gadgets" not in _tables(db_path)

    (migrations / "002_broken.py").write_text(
        "def up(conn):\n"
        "    conn.execute('CREATE TABLE gadgets (id INTEGER)')\n"
    )
    assert run_migrations(db_path, str(migrations)) == {"applied": [2], "skipped": 1}


def test_migration_without_up(tmp_path):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_empty.py").write_text("VALUE = 1\n")
    with pytest.raises(MigrationError):
        run_migrations(str(tmp_path / "m.db"), str(migrations))


def test_changed_migration_is_reported(tmp_path, caplog):
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    (migrations / "001_widgets.py").write_text(
        "def up(conn):\n"
        "    conn.execute('CREATE TABLE widgets (id INTEGER)')\n"
    )
    db_path = str(tmp_path / "m.db")
    run_migrations(db_path, str(migrations))
    (migrations / "001_widgets.py").write_text(
        "def up(conn):\n"
        "    conn.execute('CREATE TABLE widgets (id INTEGER, name TEXT)')\n"
    )
    with caplog.at_level("WARNING", logger="personaops.db.migrations"):
        assert run_migrations(db_path, str(migrations))["skipped"] == 1
    assert "changed after it was applied" in caplog.text
