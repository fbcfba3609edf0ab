"""
Centralized Configuration - Single source of truth for all settings.

All environment variables are read here, validated, and exposed as module-level
constants. Other modules import this module and read attributes at call time,
so tests can override a setting with monkeypatch.setattr(config, ...).

Usage:
    from personaops import config
    config.OPENROUTER_API_KEY
"""

import os
import sys

# ─── PATHS ───────────────────────────────────────────────────

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
LOGS_DIR = os.path.join(PROJECT_ROOT, "logs")

# ─── DATABASE ────────────────────────────────────────────────

DB_PATH = os.environ.get("PERSONAOPS_DB_PATH", os.path.join(PROJECT_ROOT, "personaops.db"))
DB_JOURNAL_MODE = os.environ.get("PERSONAOPS_JOURNAL_MODE", "WAL")

# ─── SUPABASE (auth + functions) ─────────────────────────────

SUPABASE_URL = os.environ.get("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET", "")
SUPABASE_JWT_AUDIENCE = os.environ.get("SUPABASE_JWT_AUDIENCE", "authenticated")

_default_functions_url = (
    f"{SUPABASE_URL}/functions/v1" if SUPABASE_URL else "http://127.0.0.1:8000/functions/v1"
)
EDGE_FUNCTIONS_URL = os.environ.get("EDGE_FUNCTIONS_URL", _default_functions_url).rstrip("/")
EDGE_COMPANY_ANALYZE_URL = os.environ.get("SUPABASE_EDGE_COMPANY_ANALYZE_URL", "")
EDGE_GTM_URL = os.environ.get("SUPABASE_EDGE_GTM_URL", "")

# ─── PROVIDERS ───────────────────────────────────────────────

OPENROUTER_API_KEY = os.environ.get("OPENROUTER_API_KEY", "")
OPENROUTER_MODEL = os.environ.get("OPENROUTER_MODEL", "anthropic/claude-3.5-sonnet")
OPENROUTER_BASE_URL = os.environ.get("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/")

APOLLO_API_KEY = os.environ.get("APOLLO_API_KEY", "")
APOLLO_BASE_URL = os.environ.get("APOLLO_BASE_URL", "https://api.apollo.io/v1").rstrip("/")

PROVIDER_TIMEOUT = float(os.environ.get("PROVIDER_TIMEOUT_SECONDS", "60"))

# ─── MAIL ────────────────────────────────────────────────────

SMTP_HOST = os.environ.get("SMTP_HOST", "")
SMTP_PORT = int(os.environ.get("SMTP_PORT", "587"))
SMTP_USER = os.environ.get("SMTP_USER", "")
SMTP_PASS = os.environ.get("SMTP_PASS", "")
SMTP_FROM = os.environ.get("SMTP_FROM", "noreply@personaops.com")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:8080").rstrip("/")

# ─── API ─────────────────────────────────────────────────────

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
CORS_ORIGINS = [o.strip() for o in os.environ.get("PERSONAOPS_CORS_ORIGINS", "*").split(",") if o.strip()]

# ─── LOGGING ─────────────────────────────────────────────────

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "text" or "json"
LOG_FILE = os.environ.get("LOG_FILE", "")  # empty = stdout only

# ─── VALIDATION ──────────────────────────────────────────────

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_VALID_LOG_FORMATS = {"text", "json"}
_VALID_JOURNAL_MODES = {"WAL", "DELETE", "MEMORY", "OFF"}

_errors = []

if LOG_LEVEL not in _VALID_LOG_LEVELS:
    _errors.append(f"LOG_LEVEL must be one of {_VALID_LOG_LEVELS}, got '{LOG_LEVEL}'")

if LOG_FORMAT not in _VALID_LOG_FORMATS:
    _errors.append(f"LOG_FORMAT must be one of {_VALID_LOG_FORMATS}, got '{LOG_FORMAT}'")

if DB_JOURNAL_MODE not in _VALID_JOURNAL_MODES:
    _errors.append(f"PERSONAOPS_JOURNAL_MODE must be one of {_VALID_JOURNAL_MODES}, got '{DB_JOURNAL_MODE}'")

if PROVIDER_TIMEOUT <= 0:
    _errors.append(f"PROVIDER_TIMEOUT_SECONDS must be positive, got {PROVIDER_TIMEOUT}")

if not SUPABASE_JWT_SECRET:
    _errors.append("SUPABASE_JWT_SECRET is not set; every bearer token will be rejected")

if _errors:
    for e in _errors:
        print(f"[config] ERROR: {e}", file=sys.stderr)
    # Don't crash during import - scripts may not need all config


def validate(strict: bool = False) -> list:
    """Validate all configuration settings.

    Args:
        strict: If True, raise ValueError on any errors.

    Returns:
        List of error messages (empty if all valid).
    """
    if strict and _errors:
        raise ValueError(f"Configuration errors: {'; '.join(_errors)}")
    return list(_errors)


def openrouter_configured() -> bool:
    return bool(OPENROUTER_API_KEY)


def apollo_configured() -> bool:
    return bool(APOLLO_API_KEY)


def smtp_configured() -> bool:
    return bool(SMTP_HOST)


def function_url(name: str) -> str:
    """Resolve the URL the API proxy forwards to for a generation function."""
    overrides = {
        "company-analyze": EDGE_COMPANY_ANALYZE_URL,
        "gtm-generate": EDGE_GTM_URL,
    }
    return overrides.get(name) or f"{EDGE_FUNCTIONS_URL}/{name}"


def print_config():
    """Print current configuration (safe - no secrets)."""
    print("=" * 50)
    print("PersonaOps Configuration")
    print("=" * 50)
    print(f"  DB_PATH:              {DB_PATH}")
    print(f"  DB_JOURNAL_MODE:      {DB_JOURNAL_MODE}")
    print(f"  SUPABASE_URL:         {SUPABASE_URL or '(unset)'}")
    print(f"  JWT_SECRET:           {'set' if SUPABASE_JWT_SECRET else 'MISSING'}")
    print(f"  EDGE_FUNCTIONS_URL:   {EDGE_FUNCTIONS_URL}")
    print(f"  OPENROUTER:           {'configured' if OPENROUTER_API_KEY else 'demo mode'} ({OPENROUTER_MODEL})")
    print(f"  APOLLO:               {'configured' if APOLLO_API_KEY else 'demo mode'}")
    print(f"  PROVIDER_TIMEOUT:     {PROVIDER_TIMEOUT}s")
    print(f"  SMTP_HOST:            {SMTP_HOST or '(unset)'}")
    print(f"  FRONTEND_URL:         {FRONTEND_URL}")
    print(f"  API_HOST:             {API_HOST}")
    print(f"  API_PORT:             {API_PORT}")
    print(f"  LOG_LEVEL:            {LOG_LEVEL}")
    print(f"  LOG_FORMAT:           {LOG_FORMAT}")
    print(f"  PROJECT_ROOT:         {PROJECT_ROOT}")
    print("=" * 50)
