"""
Unit tests for bearer-token verification.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import time

import jwt
import pytest

from personaops import config
from personaops.api.auth import require_user, verify_token
from personaops.errors import AuthError

SECRET = "unit-test-secret-that-is-32-bytes-long"


@pytest.fixture(autouse=True)
def jwt_config(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_JWT_SECRET", SECRET)
    monkeypatch.setattr(config, "SUPABASE_JWT_AUDIENCE", "authenticated")


def _token(**overrides):
    claims = {"sub": "u1", "aud": "authenticated", "exp": int(time.time()) + 60}
    claims.update(overrides)
    claims = {k: v for k, v in claims.items() if v is not None}
    return jwt.encode(claims, SECRET, algorithm="HS256")


def test_valid_token():
    assert verify_token(_token())["sub"] == "u1"
    assert require_user(f"Bearer {_token(sub='u2')}") == "u2"


def test_wrong_audience():
    with pytest.raises(AuthError):
        verify_token(_token(aud="anon"))


def test_missing_exp():
    with pytest.raises(AuthError):
        verify_token(_token(exp=None))


def test_missing_sub():
    with pytest.raises(AuthError):
        verify_token(_token(sub=None))


def test_unsigned_token():
    token = jwt.encode({"sub": "u1", "aud": "authenticated", "exp": int(time.time()) + 60},
                       None, algorithm="none")
    with pytest.raises(AuthError):
        verify_token(token)


def test_garbage():
    with pytest.raises(AuthError):
        verify_token("not-a-jwt")


def test_no_secret_configured(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_JWT_SECRET", "")
    with pytest.raises(AuthError):
        verify_token(_token())


def test_missing_header():
    with pytest.raises(AuthError):
        require_user(None)
    with pytest.raises(AuthError):
        require_user("Bearer ")
