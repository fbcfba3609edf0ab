"""
Migration 002: Add pipeline_states and pipeline_results for the pipeline orchestrator.
"""


def up(conn):
    conn.execute("""
        CREATE TABLE IF NOT EXISTS pipeline_states (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'idle',
            current_phase TEXT,
            progress INTEGER DEFAULT 0,
            companies_processed INTEGER DEFAULT 0,
            contacts_found INTEGER DEFAULT 0,
            emails_generated INTEGER DEFAULT 0,
            config TEXT DEFAULT '{}',
            error TEXT,
            created_at TEXT DEFAULT (datetime('now')),
            updated_at TEXT DEFAULT (datetime('now'))
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS pipeline_results (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            pipeline_id TEXT NOT NULL REFERENCES pipeline_states(id),
            user_id TEXT NOT NULL,
            results_data TEXT DEFAULT '{}',
            created_at TEXT DEFAULT (datetime('now'))
        )
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_pipeline_states_user
        ON pipeline_states(user_id, status)
    """)
    conn.execute("""
        CREATE INDEX IF NOT EXISTS idx_pipeline_results_pipeline
        ON pipeline_results(pipeline_id)
    """)
