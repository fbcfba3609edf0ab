"""
Shared httpx client factory for outbound provider and proxy calls.

Every outbound request carries the configured timeout. A transport can be
installed process-wide (httpx.MockTransport in tests, a proxy transport in
locked-down deployments).
"""

from typing import Optional, Union

import httpx

from personaops import config

_transport: Optional[Union[httpx.BaseTransport, httpx.AsyncBaseTransport]] = None


def set_transport(transport):
    """Install (or clear with None) the transport used by new clients."""
    global _transport
    _transport = transport


def new_client(timeout: float = None) -> httpx.Client:
    kwargs = {"timeout": timeout or config.PROVIDER_TIMEOUT}
    if _transport is not None:
        kwargs["transport"] = _transport
    return httpx.Client(**kwargs)


def new_async_client(timeout: float = None) -> httpx.AsyncClient:
    kwargs = {"timeout": timeout or config.PROVIDER_TIMEOUT}
    if _transport is not None:
        kwargs["transport"] = _transport
    return httpx.AsyncClient(**kwargs)
