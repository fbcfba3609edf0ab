"""Store-backed routes: invitations, team, saved reports and the caller's profile."""

import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from personaops.agents.error_handler import safe_execute
from personaops.api.auth import body_of, require_claims, require_user
from personaops.db import models
from personaops.errors import NotFoundError, PersistenceError, ValidationError
from personaops.utils.mailer import send_invitation_email

logger = logging.getLogger("personaops.api.workspace")

router = APIRouter(prefix="/api", tags=["workspace"])


class InvitationCreate(BaseModel):
    email: Optional[str] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    role: Optional[str] = None


# ─── INVITATIONS ────────────────────────────────────────────────

@router.get("/invitations")
def list_invitations(user_id: str = Depends(require_user)):
    try:
        return {"invitations": models.list_invitations(user_id)}
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e


@router.post("/invitations")
def create_invitation(claims: dict = Depends(require_claims),
                      body: InvitationCreate = Depends(body_of(InvitationCreate))):
    if not body.email:
        raise ValidationError("Email required")
    user_id = claims["sub"]
    try:
        invitation = models.create_invitation(body.email, user_id)
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e

    safe_execute(
        send_invitation_email, args=(body.email, claims.get("email")),
        phase="invitation_email", user_id=user_id, fallback=False,
    )
    return {"invitation": invitation}


# ─── TEAM ───────────────────────────────────────────────────────

@router.get("/team")
def team(user_id: str = Depends(require_user)):
    try:
        return {"team": models.list_team(user_id)}
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e


# ─── SAVED REPORTS ──────────────────────────────────────────────

@router.get("/company-analysis")
def list_reports(user_id: str = Depends(require_user)):
    try:
        return {"success": True, "reports": models.list_saved_reports(user_id)}
    except sqlite3.Error as e:
        raise PersistenceError("Failed to fetch reports", details=str(e)) from e


@router.get("/company-analysis/{report_id}")
def get_report(report_id: str, user_id: str = Depends(require_user)):
    if not report_id.isdigit():
        raise NotFoundError("Report not found")
    try:
        report = models.get_saved_report(int(report_id), user_id)
    except sqlite3.Error as e:
        raise PersistenceError("Failed to fetch report", details=str(e)) from e
    if not report:
        raise NotFoundError("Report not found")
    return {"success": True, "report": report}


# ─── PROFILE ────────────────────────────────────────────────────

@router.get("/profile")
def get_profile(claims: dict = Depends(require_claims)):
    """Fetch the caller's profile, creating it on first session load."""
    try:
        return {"profile": models.get_or_create_profile(claims["sub"], claims.get("email"))}
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e


@router.patch("/profile")
def update_profile(claims: dict = Depends(require_claims),
                   body: ProfileUpdate = Depends(body_of(ProfileUpdate))):
    user_id = claims["sub"]
    try:
        models.get_or_create_profile(user_id, claims.get("email"))
        profile = models.update_profile(user_id, body.model_dump(exclude_unset=True))
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e
    return {"profile": profile}
