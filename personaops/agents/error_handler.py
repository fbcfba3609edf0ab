"""
Error Capture - Records non-fatal errors from background and best-effort work.

Pipeline phases, report saves and invitation mail must not fail the caller,
but their errors must not vanish either. They are logged and stored in the
pipeline_errors table.

Usage:
    from personaops.agents.error_handler import log_pipeline_error, safe_execute

    try:
        save_report()
    except sqlite3.Error as e:
        log_pipeline_error(phase="save_report", error=e, user_id=uid)

    result = safe_execute(
        send_invitation_email, args=(email,),
        phase="invitation_email", user_id=uid, fallback=False,
    )
"""

import json
import logging
import sqlite3
import traceback
from typing import Any, Callable

from personaops.db.connection import get_db_conn, utcnow

logger = logging.getLogger("personaops.error_handler")


def log_pipeline_error(
    phase: str,
    error: Exception = None,
    error_message: str = None,
    pipeline_id: str = None,
    user_id: str = None,
    function_name: str = None,
    context: dict = None,
    severity: str = "warning",
):
    """Log a non-fatal error to the logger and the pipeline_errors table.

    Args:
        phase: Where it happened (company_discovery, save_report, ...).
        error: The exception object (optional if error_message provided).
        error_message: Human-readable description.
        pipeline_id: Associated orchestrator run, if any.
        user_id: Caller the work was done for.
        function_name: Generation function that hit the error.
        context: Additional context dict.
        severity: "warning", "error", or "critical".
    """
    msg = error_message or (str(error) if error else "Unknown error")
    error_type = type(error).__name__ if error else "UnknownError"

    log_extra = {
        "phase": phase,
        "pipeline_id": pipeline_id or "",
        "user_id": user_id or "",
        "function_name": function_name or "",
    }
    level = {"critical": logging.CRITICAL, "error": logging.ERROR}.get(severity, logging.WARNING)
    logger.log(level, "Error in %s: %s", phase, msg, extra=log_extra)

    try:
        with get_db_conn() as conn:
            conn.execute("""
                INSERT INTO pipeline_errors
                    (pipeline_id, user_id, phase, function_name, error_type,
                     error_message, context, severity, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                pipeline_id, user_id, phase, function_name, error_type,
                msg, json.dumps(context or {}, default=str), severity, utcnow(),
            ))
            conn.commit()
    except sqlite3.Error as db_err:
        logger.error("Failed to record error in DB: %s", db_err)


def safe_execute(
    fn: Callable,
    args: tuple = (),
    kwargs: dict = None,
    phase: str = "unknown",
    pipeline_id: str = None,
    user_id: str = None,
    function_name: str = None,
    fallback: Any = None,
    severity: str = "warning",
) -> Any:
    """Call fn; on exception record it and return fallback."""
    kwargs = kwargs or {}
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        log_pipeline_error(
            phase=phase,
            error=e,
            pipeline_id=pipeline_id,
            user_id=user_id,
            function_name=function_name,
            context={"function": getattr(fn, "__name__", repr(fn)),
                     "traceback": traceback.format_exc()[-500:]},
            severity=severity,
        )
        return fallback


def get_errors(pipeline_id: str = None, severity: str = None) -> list:
    """Recorded errors, newest first, optionally filtered."""
    query = "SELECT * FROM pipeline_errors WHERE 1=1"
    params = []
    if pipeline_id:
        query += " AND pipeline_id=?"
        params.append(pipeline_id)
    if severity:
        query += " AND severity=?"
        params.append(severity)
    query += " ORDER BY id DESC"
    with get_db_conn() as conn:
        rows = conn.execute(query, params).fetchall()
    errors = []
    for r in rows:
        d = dict(r)
        d["context"] = json.loads(d["context"]) if d["context"] else {}
        errors.append(d)
    return errors
