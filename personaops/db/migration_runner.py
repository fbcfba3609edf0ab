"""
PersonaOps - Schema migrations.

Numbered files in personaops/db/migrations/ (NNN_description.py) each define
up(conn). init_db() creates the baseline tables and then calls
run_migrations(), which applies every pending file in version order. Each
file runs inside its own transaction together with its schema_versions row,
so a failed migration leaves no partial schema behind.
"""

import hashlib
import importlib.util
import logging
import os
import sqlite3
from collections import namedtuple
from datetime import datetime, timezone

from personaops import config

logger = logging.getLogger("personaops.db.migrations")

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "migrations")

Migration = namedtuple("Migration", ["version", "name", "path", "checksum"])


class MigrationError(RuntimeError):
    def __init__(self, migration: Migration, cause: Exception):
        super().__init__(f"Migration {migration.version:03d}_{migration.name} failed: {cause}")
        self.migration = migration


def _checksum(path: str) -> str:
    with open(path, "rb") as f:
        return hashlib.sha256(f.read()).hexdigest()


def discover_migrations(directory: str = MIGRATIONS_DIR) -> list:
    """Migration files sorted by version. Files not named NNN_*.py are ignored."""
    found = []
    for filename in os.listdir(directory):
        stem, ext = os.path.splitext(filename)
        version, _, name = stem.partition("_")
        if ext != ".py" or not name or not version.isdigit():
            continue
        path = os.path.join(directory, filename)
        found.append(Migration(int(version), name, path, _checksum(path)))
    return sorted(found)


def _applied(conn: sqlite3.Connection) -> dict:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_versions (
            version INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            applied_at TEXT NOT NULL,
            checksum TEXT
        )
    """)
    return {row[0]: row[1] for row in conn.execute("SELECT version, checksum FROM schema_versions")}


def _load_up(migration: Migration):
    spec = importlib.util.spec_from_file_location(f"personaops_migration_{migration.version:03d}",
                                                  migration.path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    up = getattr(module, "up", None)
    if not callable(up):
        raise AttributeError("no up(conn) function")
    return up


def _apply(conn: sqlite3.Connection, migration: Migration):
    up = _load_up(migration)
    conn.execute("BEGIN")
    try:
        up(conn)
        conn.execute(
            "INSERT INTO schema_versions (version, name, applied_at, checksum) VALUES (?,?,?,?)",
            (migration.version, migration.name, datetime.now(timezone.utc).isoformat(),
             migration.checksum),
        )
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def run_migrations(db_path: str = None, directory: str = MIGRATIONS_DIR) -> dict:
    """Apply pending migrations in order, stopping at the first failure.

    Returns {"applied": [versions], "skipped": int}. Raises MigrationError
    when a migration cannot be loaded or its up() fails.
    """
    path = db_path or config.DB_PATH
    conn = sqlite3.connect(path, isolation_level=None)
    try:
        applied = _applied(conn)
        result = {"applied": [], "skipped": 0}
        for migration in discover_migrations(directory):
            if migration.version in applied:
                result["skipped"] += 1
                recorded = applied[migration.version]
                if recorded and recorded != migration.checksum:
                    logger.warning("Migration %03d_%s changed after it was applied",
                                   migration.version, migration.name)
                continue
            try:
                _apply(conn, migration)
            except (sqlite3.Error, RuntimeError, AttributeError, ImportError, SyntaxError) as e:
                logger.error("Migration %03d_%s failed: %s", migration.version, migration.name, e)
                raise MigrationError(migration, e) from e
            logger.info("Applied migration %03d_%s", migration.version, migration.name)
            result["applied"].append(migration.version)
        return result
    finally:
        conn.close()
