"""
PersonaOps - FastAPI Backend
Generation functions under /functions/v1, the browser-facing API under /api.

Run: python -m personaops.api.app
  or uvicorn personaops.api.app:app --reload --port 8000
"""

import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from personaops import config
from personaops.api.routers import analytics, functions, placeholders, proxy, workspace
from personaops.db.connection import get_db_conn
from personaops.db.init_db import init_db
from personaops.errors import PersonaOpsError
from personaops.logging_config import setup_logging

logger = logging.getLogger("personaops.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL, config.LOG_FORMAT, config.LOG_FILE)
    for err in config.validate():
        logger.warning("Config: %s", err)
    init_db()
    yield


app = FastAPI(
    title="PersonaOps",
    description="ICP, playbook and outbound generation functions plus the PersonaOps web API.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)

# ─── ROUTERS ─────────────────────────────────────────────────
app.include_router(functions.router)
app.include_router(proxy.router)
app.include_router(workspace.router)
app.include_router(analytics.router)
app.include_router(placeholders.router)


# ─── ERROR HANDLERS ──────────────────────────────────────────

@app.exception_handler(PersonaOpsError)
async def personaops_error_handler(request: Request, exc: PersonaOpsError):
    if exc.status_code >= 500 and exc.status_code != 501:
        logger.error("%s %s failed: %s %s", request.method, request.url.path,
                     exc.message, exc.details or "")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = "Not found" if exc.status_code == 404 else exc.detail
    return JSONResponse({"error": message}, status_code=exc.status_code,
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


# ─── SERVICE ENDPOINTS ───────────────────────────────────────

@app.get("/health")
def health():
    try:
        with get_db_conn() as conn:
            conn.execute("SELECT 1").fetchone()
        database = "ok"
    except sqlite3.Error as e:
        logger.error("Health check database error: %s", e)
        database = "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "providers": {
            "openrouter": "configured" if config.openrouter_configured() else "demo",
            "apollo": "configured" if config.apollo_configured() else "demo",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("personaops.api.app:app", host=config.API_HOST, port=config.API_PORT)
