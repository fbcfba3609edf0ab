"""
Unit tests for the icp_id backfill script.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

from personaops.db import models
from scripts.backfill_icp_id import backfill, main


def _seed():
    icp = models.create_icp("u1", company_name="Acme", website="https://acme.com")
    by_name = models.create_analyzer_output("u1", "https://acme.io", "Acme", {})
    by_site = models.create_analyzer_output("u1", "https://acme.com", "Acme Inc", {})
    other_user = models.create_analyzer_output("u2", "https://acme.com", "Acme", {})
    no_match = models.create_analyzer_output("u1", "https://globex.com", "Globex", {})
    return icp, by_name, by_site, other_user, no_match


def test_links_matching_outputs(test_db):
    icp, by_name, by_site, other_user, no_match = _seed()
    assert backfill() == {"scanned": 4, "linked": 2}

    linked = {o["id"]: o["icp_id"] for o in models.list_analyzer_outputs()}
    assert linked[by_name["id"]] == icp["id"]
    assert linked[by_site["id"]] == icp["id"]
    assert linked[other_user["id"]] is None
    assert linked[no_match["id"]] is None


def test_dry_run_writes_nothing(test_db):
    _seed()
    assert backfill(dry_run=True)["linked"] == 2
    assert len(models.list_analyzer_outputs(unlinked_only=True)) == 4


def test_second_run_is_idempotent(test_db):
    _seed()
    backfill()
    assert backfill() == {"scanned": 2, "linked": 0}


def test_cli(test_db, capsys):
    _seed()
    main(["--dry-run"])
    assert "Would link 2 of 4" in capsys.readouterr().out
