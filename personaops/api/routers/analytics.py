"""Analytics routes, GET only."""

import sqlite3
from collections import Counter

from fastapi import APIRouter, Depends

from personaops.api.auth import require_user
from personaops.db import models
from personaops.errors import PersistenceError

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


def _deal_stage(deal: dict):
    properties = deal.get("properties") if isinstance(deal, dict) else None
    if not isinstance(properties, dict):
        return None
    return properties.get("dealstage")


def _deals(user_id: str) -> list:
    try:
        return models.list_crm_deal_data(user_id)
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e


@router.get("/lead-volume")
def lead_volume(user_id: str = Depends(require_user)):
    try:
        return {"data": models.lead_volume_by_week(user_id)}
    except sqlite3.Error as e:
        raise PersistenceError(details=str(e)) from e


@router.get("/success-rate")
def success_rate(user_id: str = Depends(require_user)):
    deals = _deals(user_id)
    total = len(deals)
    won = sum(1 for d in deals if "won" in str(_deal_stage(d) or "").lower())
    return {"total": total, "won": won, "successRate": won / total if total else 0}


@router.get("/playbook-outcomes")
def playbook_outcomes(user_id: str = Depends(require_user)):
    return {"data": []}


@router.get("/lead-funnel")
def lead_funnel(user_id: str = Depends(require_user)):
    funnel = Counter(_deal_stage(d) or "Unknown" for d in _deals(user_id))
    return {"funnel": dict(funnel)}
