"""Thin proxy routes that forward browser requests to a generation function."""

import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from personaops import config
from personaops.agents.http_client import new_async_client

logger = logging.getLogger("personaops.api.proxy")

router = APIRouter(prefix="/api", tags=["proxy"])

FORWARDED_HEADERS = ("content-type", "authorization")


async def forward(request: Request, function_name: str) -> JSONResponse:
    """Forward body, Content-Type and Authorization; relay status and body verbatim."""
    url = config.function_url(function_name)
    headers = {k: v for k, v in request.headers.items() if k.lower() in FORWARDED_HEADERS}
    apikey = config.SUPABASE_ANON_KEY or config.SUPABASE_SERVICE_ROLE_KEY
    if apikey:
        headers["apikey"] = apikey
    body = await request.body()

    try:
        async with new_async_client() as client:
            upstream = await client.post(url, content=body, headers=headers)
    except httpx.HTTPError as e:
        logger.error("Proxy to %s failed: %s", url, e, extra={"function_name": function_name})
        return JSONResponse(
            {"error": "Proxy to Supabase Edge Function failed", "details": str(e)},
            status_code=500,
        )

    try:
        payload = upstream.json()
    except ValueError:
        payload = upstream.text
    return JSONResponse(payload, status_code=upstream.status_code)


@router.post("/company-analyze")
async def company_analyze_proxy(request: Request):
    return await forward(request, "company-analyze")


@router.post("/gtm-generate")
async def gtm_generate_proxy(request: Request):
    return await forward(request, "gtm-generate")
