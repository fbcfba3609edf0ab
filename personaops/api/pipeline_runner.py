"""
Pipeline Runner - Background execution engine for the pipeline orchestrator.

Runs ICP generation -> company discovery -> contact discovery -> email
personalization -> campaign upload in a background thread, persisting phase
and progress to pipeline_states after every step. Runs are tracked in a
process-local registry so they can be paused and resumed between phases.
"""

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Optional

from personaops.agents.error_handler import log_pipeline_error, safe_execute
from personaops.db import models
from personaops.errors import NotFoundError, PersistenceError, ValidationError
from personaops.functions import discovery, generators, personalization

logger = logging.getLogger("personaops.pipeline")

DEFAULT_URL = "https://example.com"
PAUSE_TIMEOUT_SECONDS = 86400


# ─── GLOBAL STATE ─────────────────────────────────────────────

# Active runs: pipeline_id -> PipelineRun
_active_runs = {}

_lock = threading.Lock()


class PipelineRun:
    """Tracks a running pipeline instance."""

    PHASES = [
        ("icp_generation", 10),
        ("company_discovery", 30),
        ("contact_discovery", 60),
        ("email_personalization", 80),
        ("campaign_upload", 95),
    ]

    def __init__(self, pipeline_id: str, user_id: str, config: dict):
        self.pipeline_id = pipeline_id
        self.user_id = user_id
        self.config = config or {}
        self.current_phase = None
        self.thread = None
        self.finished = False
        self.resume_event = threading.Event()
        self.resume_event.set()

    @property
    def paused(self) -> bool:
        return not self.resume_event.is_set()


# ─── ICP ADAPTERS ─────────────────────────────────────────────

def discovery_input_from_icp(icp: dict) -> dict:
    """Map an ICP's recommended Apollo params onto company-discovery input."""
    recommended = icp.get("recommendedApolloSearchParams") or {}
    params = {}
    if recommended.get("industries"):
        params["industries"] = list(recommended["industries"])
    if recommended.get("employeeCount"):
        params["employeeRanges"] = [recommended["employeeCount"]]
    if recommended.get("locations"):
        params["locations"] = list(recommended["locations"])
    return {"apolloSearchParams": params}


def personalization_input_from_icp(icp: dict) -> dict:
    """Shape an ICP as the icpData email-personalization reads (personas[0].painPoints)."""
    personas = []
    for persona in icp.get("buyerPersonas") or []:
        if isinstance(persona, dict):
            personas.append(dict(persona, painPoints=list(icp.get("painPointsAndTriggers") or [])))
    return {"personas": personas}


def _batch_size(config: dict) -> int:
    try:
        size = int(config.get("batchSize", 10))
    except (TypeError, ValueError):
        size = 10
    return max(1, min(size, 100))


# ─── PIPELINE CONTROL ─────────────────────────────────────────

def start_pipeline(user_id: str, config: dict = None) -> dict:
    """Create the pipeline row and start its background thread."""
    try:
        state = models.create_pipeline_state(user_id, config or {})
    except sqlite3.Error as e:
        logger.error("Error saving pipeline state: %s", e)
        raise PersistenceError("Failed to initialize pipeline", details=str(e)) from e

    run = PipelineRun(state["id"], user_id, config or {})
    with _lock:
        _active_runs[run.pipeline_id] = run

    thread = threading.Thread(target=_execute_pipeline, args=(run,), daemon=True)
    run.thread = thread
    thread.start()
    logger.info("Pipeline %s started", run.pipeline_id,
                extra={"pipeline_id": run.pipeline_id, "user_id": user_id})
    return state


def get_run(pipeline_id: str) -> Optional[PipelineRun]:
    with _lock:
        return _active_runs.get(pipeline_id)


def get_owned_state(user_id: str, pipeline_id: str) -> dict:
    if not pipeline_id:
        raise ValidationError("Pipeline ID required")
    try:
        state = models.get_pipeline_state(pipeline_id, user_id)
    except sqlite3.Error as e:
        raise PersistenceError("Failed to fetch pipeline", details=str(e)) from e
    if not state:
        raise NotFoundError("Pipeline not found")
    return state


def get_results(user_id: str, pipeline_id: str) -> list:
    get_owned_state(user_id, pipeline_id)
    try:
        return models.list_pipeline_results(pipeline_id, user_id)
    except sqlite3.Error as e:
        raise PersistenceError("Failed to fetch results", details=str(e)) from e


def pause_pipeline(user_id: str, pipeline_id: str) -> dict:
    get_owned_state(user_id, pipeline_id)
    with _lock:
        run = _active_runs.get(pipeline_id)
        if not run or run.finished or run.paused:
            raise ValidationError("Pipeline is not running")
        run.resume_event.clear()
        state = models.update_pipeline_state(pipeline_id, {"status": "paused"})
    logger.info("Pipeline %s paused", pipeline_id, extra={"pipeline_id": pipeline_id})
    return state


def resume_pipeline(user_id: str, pipeline_id: str) -> dict:
    get_owned_state(user_id, pipeline_id)
    with _lock:
        run = _active_runs.get(pipeline_id)
        if not run or run.finished or not run.paused:
            raise ValidationError("Pipeline is not paused")
        state = models.update_pipeline_state(pipeline_id, {"status": "running"})
        run.resume_event.set()
    logger.info("Pipeline %s resumed", pipeline_id, extra={"pipeline_id": pipeline_id})
    return state


def wait_for(pipeline_id: str, timeout: float = None) -> bool:
    """Block until a run's thread exits. Returns False if it is still alive."""
    run = get_run(pipeline_id)
    if not run or not run.thread:
        return True
    run.thread.join(timeout)
    return not run.thread.is_alive()


def state_to_dict(state: dict) -> dict:
    return {
        "id": state["id"],
        "status": state["status"],
        "currentPhase": state["current_phase"],
        "progress": state["progress"],
        "companiesProcessed": state["companies_processed"],
        "contactsFound": state["contacts_found"],
        "emailsGenerated": state["emails_generated"],
        "error": state["error"],
        "updatedAt": state["updated_at"],
    }


# ─── PIPELINE THREAD ──────────────────────────────────────────

def _finish(run: PipelineRun, fields: dict):
    """Write a terminal status. Pause and resume are refused from here on."""
    with _lock:
        run.finished = True
        models.update_pipeline_state(run.pipeline_id, fields)


def _start_phase(run: PipelineRun, phase: str, progress: int):
    if run.paused:
        logger.info("Pipeline %s holding before %s", run.pipeline_id, phase,
                    extra={"pipeline_id": run.pipeline_id, "phase": phase})
        if not run.resume_event.wait(timeout=PAUSE_TIMEOUT_SECONDS):
            raise TimeoutError("Pipeline paused too long")
    run.current_phase = phase
    models.update_pipeline_state(run.pipeline_id, {"current_phase": phase, "progress": progress})
    logger.info("Pipeline %s phase %s (%d%%)", run.pipeline_id, phase, progress,
                extra={"pipeline_id": run.pipeline_id, "phase": phase})


def _execute_pipeline(run: PipelineRun):
    """Run the full pipeline in a background thread."""
    progress = dict(PipelineRun.PHASES)
    try:
        _start_phase(run, "icp_generation", progress["icp_generation"])
        icp = generators.icp_for(run.user_id, run.config.get("url") or DEFAULT_URL)
        icp = {k: v for k, v in icp.items() if k not in ("cached", "updated_at")}

        _start_phase(run, "company_discovery", progress["company_discovery"])
        companies = discovery.discover_companies(
            discovery_input_from_icp(icp), _batch_size(run.config))["companies"]

        _start_phase(run, "contact_discovery", progress["contact_discovery"])
        contacts = discovery.discover_contacts(companies, icp.get("buyerPersonas"))["contacts"]

        _start_phase(run, "email_personalization", progress["email_personalization"])
        emails = personalization.personalize_emails(
            contacts, personalization_input_from_icp(icp), icp.get("messagingAngles"))["emails"]

        # No campaign integration: the prepared emails are the upload
        _start_phase(run, "campaign_upload", progress["campaign_upload"])
        prepared = len(emails)

        _finish(run, {
            "status": "completed",
            "progress": 100,
            "companies_processed": len(companies),
            "contacts_found": len(contacts),
            "emails_generated": len(emails),
        })
        safe_execute(
            models.save_pipeline_results,
            args=(run.pipeline_id, run.user_id, {
                "icp": icp,
                "companies": companies,
                "contacts": contacts,
                "emails": emails,
                "summary": {
                    "companiesFound": len(companies),
                    "contactsFound": len(contacts),
                    "emailsGenerated": len(emails),
                    "campaignPrepared": prepared,
                    "completedAt": datetime.now(timezone.utc).isoformat(),
                },
            }),
            phase="save_results", pipeline_id=run.pipeline_id, user_id=run.user_id,
            function_name="pipeline-orchestrator", severity="error",
        )
        logger.info("Pipeline %s completed", run.pipeline_id, extra={"pipeline_id": run.pipeline_id})

    except Exception as e:
        logger.error("Pipeline failed in phase %s: %s", run.current_phase, e, exc_info=True,
                     extra={"pipeline_id": run.pipeline_id})
        log_pipeline_error(
            phase=run.current_phase or "unknown",
            error=e,
            pipeline_id=run.pipeline_id,
            user_id=run.user_id,
            function_name="pipeline-orchestrator",
            severity="critical",
        )
        safe_execute(
            _finish,
            args=(run, {"status": "failed", "error": getattr(e, "message", None) or str(e)}),
            phase="mark_failed", pipeline_id=run.pipeline_id, severity="critical",
        )
    finally:
        with _lock:
            _active_runs.pop(run.pipeline_id, None)
