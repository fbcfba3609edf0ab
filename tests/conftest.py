"""
Shared pytest fixtures for the PersonaOps test suite.
"""

import os
import sys
import time

import jwt
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from personaops import config
from personaops.agents import http_client
from personaops.db.init_db import init_db

JWT_SECRET = "test-secret-with-at-least-32-bytes!!"


@pytest.fixture
def test_db(tmp_path, monkeypatch):
    """Fresh database with all migrations applied, providers in demo mode."""
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(config, "DB_PATH", db_path)
    monkeypatch.setattr(config, "DB_JOURNAL_MODE", "DELETE")
    monkeypatch.setattr(config, "SUPABASE_JWT_SECRET", JWT_SECRET)
    monkeypatch.setattr(config, "SUPABASE_JWT_AUDIENCE", "authenticated")
    monkeypatch.setattr(config, "OPENROUTER_API_KEY", "")
    monkeypatch.setattr(config, "APOLLO_API_KEY", "")
    monkeypatch.setattr(config, "SMTP_HOST", "")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "")

    init_db(db_path)
    yield db_path
    http_client.set_transport(None)


@pytest.fixture
def make_token():
    """Factory for signed bearer tokens."""

    def _make(sub="user-1", email="user1@example.com", secret=JWT_SECRET,
              aud="authenticated", expires_in=3600):
        claims = {"sub": sub, "email": email, "aud": aud, "exp": int(time.time()) + expires_in}
        return jwt.encode(claims, secret, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token):
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def client(test_db):
    from starlette.testclient import TestClient
    from personaops.api.app import app
    with TestClient(app) as c:
        yield c


@pytest.fixture
def mock_transport():
    """Install an httpx.MockTransport routed by a handler the test supplies."""
    import httpx

    def _install(handler):
        transport = httpx.MockTransport(handler)
        http_client.set_transport(transport)
        return transport

    yield _install
    http_client.set_transport(None)
