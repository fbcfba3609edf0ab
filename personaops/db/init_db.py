"""
PersonaOps - Database Initialization
Creates the baseline tables and indexes, then applies numbered migrations.
"""

import logging
import sqlite3

from personaops import config
from personaops.db.migration_runner import run_migrations

logger = logging.getLogger("personaops.db.init")

SCHEMA_SQL = """
-- User profiles (id is the auth provider's subject claim)
CREATE TABLE IF NOT EXISTS profiles (
    id TEXT PRIMARY KEY,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    company TEXT,
    role TEXT,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

-- Saved ICPs
CREATE TABLE IF NOT EXISTS icps (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    company_name TEXT,
    website TEXT,
    icp_data TEXT DEFAULT '{}',
    created_at TEXT DEFAULT (datetime('now'))
);

-- icp-generator result cache, exact match on (user_id, website_url)
CREATE TABLE IF NOT EXISTS icp_analyses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    website_url TEXT NOT NULL,
    icp_result TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now')),
    UNIQUE (user_id, website_url)
);

-- playbook-generator result cache; icp and gtm_form hold canonical JSON
CREATE TABLE IF NOT EXISTS playbook_analyses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    website_url TEXT NOT NULL,
    icp TEXT NOT NULL,
    gtm_form TEXT NOT NULL,
    playbook_result TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now')),
    UNIQUE (user_id, website_url, icp, gtm_form)
);

-- Company analyzer outputs (icp_id added by migration 003)
CREATE TABLE IF NOT EXISTS company_analyzer_outputs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    website TEXT,
    company_name TEXT,
    llm_output TEXT DEFAULT '{}',
    created_at TEXT DEFAULT (datetime('now'))
);

-- One row per research phase of company-analyze / gtm-generate
CREATE TABLE IF NOT EXISTS company_research_steps (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    run_id TEXT NOT NULL,
    function_name TEXT NOT NULL,
    step_number INTEGER NOT NULL,
    step_name TEXT NOT NULL,
    output TEXT DEFAULT '{}',
    used_fallback INTEGER DEFAULT 0,
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS invitations (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    inviter_user_id TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now'))
);

-- CRM deals synced from the CRM; read-only here
CREATE TABLE IF NOT EXISTS crm_deals (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    data TEXT DEFAULT '{}',
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS saved_reports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    company_name TEXT,
    url TEXT,
    report_data TEXT DEFAULT '{}',
    created_at TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_icps_user ON icps(user_id);
CREATE INDEX IF NOT EXISTS idx_analyzer_user ON company_analyzer_outputs(user_id);
CREATE INDEX IF NOT EXISTS idx_research_steps_run ON company_research_steps(run_id, step_number);
CREATE INDEX IF NOT EXISTS idx_invitations_inviter ON invitations(inviter_user_id);
CREATE INDEX IF NOT EXISTS idx_crm_deals_user ON crm_deals(user_id);
CREATE INDEX IF NOT EXISTS idx_saved_reports_user ON saved_reports(user_id);
"""

EXPECTED_TABLES = [
    "profiles", "icps", "icp_analyses", "playbook_analyses",
    "company_analyzer_outputs", "company_research_steps", "invitations",
    "crm_deals", "saved_reports", "pipeline_states", "pipeline_results",
    "pipeline_errors", "company_analyses",
]


def init_db(db_path=None):
    """Initialize the database with all tables and indexes, then migrate."""
    path = db_path or config.DB_PATH
    conn = sqlite3.connect(path)
    conn.executescript(SCHEMA_SQL)
    conn.commit()
    conn.close()

    result = run_migrations(path)
    if result["applied"]:
        logger.info("Applied %d migration(s)", len(result["applied"]))

    conn = sqlite3.connect(path)
    tables = [row[0] for row in conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()]
    conn.close()
    logger.info("Database initialized at %s (%d tables)", path, len(tables))
    return tables


def verify_db(db_path=None):
    """Verify the database schema is correct."""
    path = db_path or config.DB_PATH
    conn = sqlite3.connect(path)
    actual_tables = {row[0] for row in conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table'"
    ).fetchall()}
    conn.close()

    missing = set(EXPECTED_TABLES) - actual_tables
    if missing:
        print(f"FAIL: Missing tables: {sorted(missing)}")
        return False

    print(f"PASS: All {len(EXPECTED_TABLES)} tables present")
    return True


if __name__ == "__main__":
    init_db()
    verify_db()
