"""
Unit tests for cache-then-generate: hits, misses, concurrent writers and DB failures.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import sqlite3

import pytest

from personaops.db import models
from personaops.errors import PersistenceError
from personaops.functions.result_cache import cached_generate

KEY = {"user_id": "u1", "website_url": "https://acme.com"}


def test_miss_generates_once(test_db):
    calls = []

    def generate():
        calls.append(1)
        return {"icp": "fresh"}

    assert cached_generate("icp_analyses", KEY, generate) == {"icp": "fresh"}
    hit = cached_generate("icp_analyses", KEY, generate)
    assert hit["icp"] == "fresh"
    assert hit["cached"] is True
    assert len(calls) == 1


def test_concurrent_writer_wins(test_db, monkeypatch):
    """A row inserted between our lookup and our insert is returned instead of ours."""
    monkeypatch.setattr(models, "find_cached_result", lambda table, key: None)

    def generate():
        models.insert_cached_result_if_absent("icp_analyses", KEY, {"icp": "first writer"})
        return {"icp": "second writer"}

    result = cached_generate("icp_analyses", KEY, generate)
    assert result["icp"] == "first writer"
    assert result["cached"] is True

    conn = sqlite3.connect(test_db)
    count = conn.execute("SELECT COUNT(*) FROM icp_analyses").fetchone()[0]
    conn.close()
    assert count == 1


def test_insert_if_absent_reports_outcome(test_db):
    first = models.insert_cached_result_if_absent("icp_analyses", KEY, {"v": 1})
    second = models.insert_cached_result_if_absent("icp_analyses", KEY, {"v": 2})
    assert first["inserted"] is True
    assert second["inserted"] is False
    assert second["result"] == {"v": 1}


def test_json_key_columns_are_canonical(test_db):
    key = {"user_id": "u1", "website_url": "https://acme.com", "icp": {"b": 1, "a": 2}, "gtm_form": {}}
    models.insert_cached_result_if_absent("playbook_analyses", key, {"steps": []})
    reordered = dict(key, icp={"a": 2, "b": 1})
    assert models.find_cached_result("playbook_analyses", reordered)["result"] == {"steps": []}


def test_lookup_failure(test_db, monkeypatch):
    def broken(table, key):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(models, "find_cached_result", broken)
    with pytest.raises(PersistenceError) as exc:
        cached_generate("icp_analyses", KEY, lambda: {})
    assert exc.value.message == "DB error (cache check)"
    assert exc.value.details == "database is locked"


def test_insert_failure(test_db, monkeypatch):
    def broken(table, key, result):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(models, "insert_cached_result_if_absent", broken)
    with pytest.raises(PersistenceError) as exc:
        cached_generate("icp_analyses", KEY, lambda: {"x": 1})
    assert exc.value.message == "DB error (insert)"


def test_generation_error_stores_nothing(test_db):
    def generate():
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError):
        cached_generate("icp_analyses", KEY, generate)
    assert models.find_cached_result("icp_analyses", KEY) is None


def test_unknown_table():
    with pytest.raises(ValueError):
        models.find_cached_result("nope", KEY)
