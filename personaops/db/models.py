"""
PersonaOps - Data Access Layer
CRUD operations for every table via a plain Python API. Functions raise
sqlite3.Error on failure; callers decide how that surfaces.
"""

import json
from typing import Optional

from personaops.db.connection import (
    get_db_conn, gen_id, utcnow, canonical_json, loads_or_none,
)


# ─── RESULT CACHE TABLES ────────────────────────────────────────

# table -> (key columns, JSON key columns, result column)
CACHE_TABLES = {
    "icp_analyses": (("user_id", "website_url"), (), "icp_result"),
    "playbook_analyses": (("user_id", "website_url", "icp", "gtm_form"), ("icp", "gtm_form"), "playbook_result"),
    "company_analyses": (("user_id", "website_url"), (), "analysis_result"),
}


def _cache_spec(table: str):
    if table not in CACHE_TABLES:
        raise ValueError(f"Unknown cache table: {table}")
    return CACHE_TABLES[table]


def _key_values(table: str, key: dict) -> list:
    columns, json_columns, _ = _cache_spec(table)
    missing = [c for c in columns if c not in key]
    if missing:
        raise ValueError(f"Cache key for {table} missing {missing}")
    return [canonical_json(key[c]) if c in json_columns else key[c] for c in columns]


def find_cached_result(table: str, key: dict) -> Optional[dict]:
    """Exact-match lookup on the full key tuple.

    Returns {"result": <json>, "updated_at": str} or None.
    """
    columns, _, result_column = _cache_spec(table)
    where = " AND ".join(f"{c}=?" for c in columns)
    with get_db_conn() as conn:
        row = conn.execute(
            f"SELECT {result_column}, updated_at FROM {table} WHERE {where} LIMIT 1",
            _key_values(table, key),
        ).fetchone()
    if not row:
        return None
    return {"result": json.loads(row[result_column]), "updated_at": row["updated_at"]}


def insert_cached_result_if_absent(table: str, key: dict, result) -> dict:
    """Atomically insert a cache row unless one already exists for the key.

    Returns {"result", "updated_at", "inserted"}; when inserted is False the
    returned result is the row written by the earlier writer.
    """
    columns, _, result_column = _cache_spec(table)
    now = utcnow()
    all_columns = list(columns) + [result_column, "created_at", "updated_at"]
    placeholders = ",".join("?" for _ in all_columns)
    values = _key_values(table, key) + [json.dumps(result), now, now]
    where = " AND ".join(f"{c}=?" for c in columns)

    with get_db_conn() as conn:
        cur = conn.execute(
            f"INSERT INTO {table} ({', '.join(all_columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT({', '.join(columns)}) DO NOTHING",
            values,
        )
        inserted = cur.rowcount == 1
        conn.commit()
        row = conn.execute(
            f"SELECT {result_column}, updated_at FROM {table} WHERE {where}",
            _key_values(table, key),
        ).fetchone()

    return {
        "result": json.loads(row[result_column]),
        "updated_at": row["updated_at"],
        "inserted": inserted,
    }


# ─── PROFILES ───────────────────────────────────────────────────

PROFILE_FIELDS = {"email", "first_name", "last_name", "company", "role"}


def get_profile(user_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute("SELECT * FROM profiles WHERE id=?", (user_id,)).fetchone()
    return dict(row) if row else None


def get_or_create_profile(user_id: str, email: str = None) -> dict:
    """Fetch the caller's profile, creating an empty one on first session load."""
    now = utcnow()
    with get_db_conn() as conn:
        conn.execute(
            "INSERT INTO profiles (id, email, created_at, updated_at) VALUES (?,?,?,?) "
            "ON CONFLICT(id) DO NOTHING",
            (user_id, email, now, now),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM profiles WHERE id=?", (user_id,)).fetchone()
    return dict(row)


def update_profile(user_id: str, data: dict) -> Optional[dict]:
    """Update whitelisted profile fields."""
    safe_data = {k: v for k, v in data.items() if k in PROFILE_FIELDS}
    if not safe_data:
        return get_profile(user_id)
    safe_data["updated_at"] = utcnow()
    fields = ", ".join(f"{k}=?" for k in safe_data.keys())
    values = list(safe_data.values()) + [user_id]
    with get_db_conn() as conn:
        conn.execute(f"UPDATE profiles SET {fields} WHERE id=?", values)
        conn.commit()
        row = conn.execute("SELECT * FROM profiles WHERE id=?", (user_id,)).fetchone()
    return dict(row) if row else None


def list_team(user_id: str) -> list:
    with get_db_conn() as conn:
        rows = conn.execute(
            "SELECT id, first_name, last_name, email, role FROM profiles WHERE id=?",
            (user_id,),
        ).fetchall()
    return [dict(r) for r in rows]


# ─── INVITATIONS ────────────────────────────────────────────────

def create_invitation(email: str, inviter_user_id: str) -> dict:
    iid = gen_id("inv")
    with get_db_conn() as conn:
        conn.execute(
            "INSERT INTO invitations (id, email, inviter_user_id, created_at) VALUES (?,?,?,?)",
            (iid, email, inviter_user_id, utcnow()),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM invitations WHERE id=?", (iid,)).fetchone()
    return dict(row)


def list_invitations(inviter_user_id: str) -> list:
    with get_db_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM invitations WHERE inviter_user_id=? ORDER BY created_at DESC",
            (inviter_user_id,),
        ).fetchall()
    return [dict(r) for r in rows]


# ─── CRM DEALS ──────────────────────────────────────────────────

def create_crm_deal(user_id: str, data: dict) -> dict:
    did = gen_id("deal")
    with get_db_conn() as conn:
        conn.execute(
            "INSERT INTO crm_deals (id, user_id, data, created_at) VALUES (?,?,?,?)",
            (did, user_id, json.dumps(data), utcnow()),
        )
        conn.commit()
    return {"id": did, "user_id": user_id, "data": data}


def list_crm_deal_data(user_id: str) -> list:
    """Return the raw `data` blobs of a user's deals."""
    with get_db_conn() as conn:
        rows = conn.execute("SELECT data FROM crm_deals WHERE user_id=?", (user_id,)).fetchall()
    return [json.loads(r["data"]) if r["data"] else {} for r in rows]


# ─── ICPS ───────────────────────────────────────────────────────

def create_icp(user_id: str, company_name: str = None, website: str = None, icp_data: dict = None) -> dict:
    icp_id = gen_id("icp")
    with get_db_conn() as conn:
        conn.execute(
            "INSERT INTO icps (id, user_id, company_name, website, icp_data, created_at) VALUES (?,?,?,?,?,?)",
            (icp_id, user_id, company_name, website, json.dumps(icp_data or {}), utcnow()),
        )
        conn.commit()
    return {"id": icp_id, "user_id": user_id, "company_name": company_name, "website": website}


def find_matching_icp(user_id: str, company_name: str = None, website: str = None) -> Optional[dict]:
    """First ICP of the user whose company name or website equals the given one."""
    if not company_name and not website:
        return None
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT id, company_name, website FROM icps "
            "WHERE user_id=? AND (company_name=? OR website=?) ORDER BY created_at LIMIT 1",
            (user_id, company_name, website),
        ).fetchone()
    return dict(row) if row else None


# ─── COMPANY ANALYZER OUTPUTS ───────────────────────────────────

def create_analyzer_output(user_id: str, website: str, company_name: str, llm_output: dict,
                           icp_id: str = None) -> dict:
    oid = gen_id("cao")
    with get_db_conn() as conn:
        conn.execute(
            "INSERT INTO company_analyzer_outputs (id, user_id, website, company_name, icp_id, llm_output, created_at) "
            "VALUES (?,?,?,?,?,?,?)",
            (oid, user_id, website, company_name, icp_id, json.dumps(llm_output), utcnow()),
        )
        conn.commit()
        row = conn.execute("SELECT * FROM company_analyzer_outputs WHERE id=?", (oid,)).fetchone()
    out = dict(row)
    out["llm_output"] = loads_or_none(out["llm_output"])
    return out


def list_analyzer_outputs(user_id: str = None, unlinked_only: bool = False) -> list:
    query = "SELECT id, user_id, website, company_name, icp_id, created_at FROM company_analyzer_outputs WHERE 1=1"
    params = []
    if user_id:
        query += " AND user_id=?"
        params.append(user_id)
    if unlinked_only:
        query += " AND icp_id IS NULL"
    query += " ORDER BY created_at"
    with get_db_conn() as conn:
        rows = conn.execute(query, params).fetchall()
    return [dict(r) for r in rows]


def link_analyzer_output_to_icp(output_id: str, icp_id: str):
    with get_db_conn() as conn:
        conn.execute("UPDATE company_analyzer_outputs SET icp_id=? WHERE id=?", (icp_id, output_id))
        conn.commit()


def lead_volume_by_week(user_id: str) -> list:
    """Weekly count of analyzer outputs for a user, oldest week first."""
    with get_db_conn() as conn:
        rows = conn.execute("""
            SELECT strftime('%Y-W%W', created_at) AS week, COUNT(*) AS count
            FROM company_analyzer_outputs
            WHERE user_id=?
            GROUP BY week ORDER BY week
        """, (user_id,)).fetchall()
    return [dict(r) for r in rows]


# ─── RESEARCH STEPS ─────────────────────────────────────────────

def record_research_step(user_id: str, run_id: str, function_name: str, step_number: int,
                         step_name: str, output: dict, used_fallback: bool = False):
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO company_research_steps
                (user_id, run_id, function_name, step_number, step_name, output, used_fallback, created_at)
            VALUES (?,?,?,?,?,?,?,?)
        """, (user_id, run_id, function_name, step_number, step_name,
              json.dumps(output), int(used_fallback), utcnow()))
        conn.commit()


def list_research_steps(run_id: str) -> list:
    with get_db_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM company_research_steps WHERE run_id=? ORDER BY step_number",
            (run_id,),
        ).fetchall()
    steps = []
    for r in rows:
        d = dict(r)
        d["output"] = loads_or_none(d["output"])
        d["used_fallback"] = bool(d["used_fallback"])
        steps.append(d)
    return steps


# ─── SAVED REPORTS ──────────────────────────────────────────────

def create_saved_report(user_id: str, company_name: str, url: str, report_data) -> int:
    with get_db_conn() as conn:
        cur = conn.execute(
            "INSERT INTO saved_reports (user_id, company_name, url, report_data, created_at) VALUES (?,?,?,?,?)",
            (user_id, company_name, url, json.dumps(report_data), utcnow()),
        )
        conn.commit()
        return cur.lastrowid


def list_saved_reports(user_id: str) -> list:
    with get_db_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM saved_reports WHERE user_id=? ORDER BY created_at DESC, id DESC", (user_id,)
        ).fetchall()
    reports = []
    for row in rows:
        report = dict(row)
        report["report_data"] = loads_or_none(report["report_data"])
        reports.append(report)
    return reports


def get_saved_report(report_id: int, user_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM saved_reports WHERE id=? AND user_id=?", (report_id, user_id)
        ).fetchone()
    if not row:
        return None
    report = dict(row)
    report["report_data"] = loads_or_none(report["report_data"])
    return report


# ─── PIPELINES ──────────────────────────────────────────────────

PIPELINE_FIELDS = {"status", "current_phase", "progress", "companies_processed",
                   "contacts_found", "emails_generated", "error"}


def create_pipeline_state(user_id: str, config: dict, status: str = "running",
                          current_phase: str = "icp_generation") -> dict:
    pid = gen_id("pipe")
    now = utcnow()
    with get_db_conn() as conn:
        conn.execute("""
            INSERT INTO pipeline_states (id, user_id, status, current_phase, progress,
                companies_processed, contacts_found, emails_generated, config, created_at, updated_at)
            VALUES (?,?,?,?,0,0,0,0,?,?,?)
        """, (pid, user_id, status, current_phase, json.dumps(config or {}), now, now))
        conn.commit()
        row = conn.execute("SELECT * FROM pipeline_states WHERE id=?", (pid,)).fetchone()
    return dict(row)


def update_pipeline_state(pipeline_id: str, updates: dict) -> Optional[dict]:
    safe_data = {k: v for k, v in updates.items() if k in PIPELINE_FIELDS}
    safe_data["updated_at"] = utcnow()
    fields = ", ".join(f"{k}=?" for k in safe_data.keys())
    values = list(safe_data.values()) + [pipeline_id]
    with get_db_conn() as conn:
        conn.execute(f"UPDATE pipeline_states SET {fields} WHERE id=?", values)
        conn.commit()
        row = conn.execute("SELECT * FROM pipeline_states WHERE id=?", (pipeline_id,)).fetchone()
    return dict(row) if row else None


def get_pipeline_state(pipeline_id: str, user_id: str) -> Optional[dict]:
    with get_db_conn() as conn:
        row = conn.execute(
            "SELECT * FROM pipeline_states WHERE id=? AND user_id=?", (pipeline_id, user_id)
        ).fetchone()
    return dict(row) if row else None


def save_pipeline_results(pipeline_id: str, user_id: str, results: dict):
    with get_db_conn() as conn:
        conn.execute(
            "INSERT INTO pipeline_results (pipeline_id, user_id, results_data, created_at) VALUES (?,?,?,?)",
            (pipeline_id, user_id, json.dumps(results), utcnow()),
        )
        conn.commit()


def list_pipeline_results(pipeline_id: str, user_id: str) -> list:
    with get_db_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM pipeline_results WHERE pipeline_id=? AND user_id=? ORDER BY id",
            (pipeline_id, user_id),
        ).fetchall()
    results = []
    for r in rows:
        d = dict(r)
        d["results_data"] = loads_or_none(d["results_data"])
        results.append(d)
    return results
