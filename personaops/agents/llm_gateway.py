"""
PersonaOps - Unified LLM Gateway
Single interface for every OpenRouter call (ICP, playbook, email copy, research phases).

Features:
- One attempt per call with the configured timeout; no retries
- Request tracing with stage names
- Logging redaction (prompt preview only, never the API key)
- JSON extraction that tolerates fenced code blocks
"""

import json
import logging
import re
import time
import uuid

import httpx

from personaops import config
from personaops.agents.http_client import new_client
from personaops.errors import UpstreamProviderError

logger = logging.getLogger("personaops.agents.llm_gateway")

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


# ─── OPENROUTER CLIENT ────────────────────────────────────────

class OpenRouterClient:
    """OpenRouter chat-completions client."""

    def __init__(self, api_key: str = None, model: str = None, base_url: str = None,
                 timeout: float = None):
        self.api_key = api_key if api_key is not None else config.OPENROUTER_API_KEY
        self.model = model or config.OPENROUTER_MODEL
        self.base_url = (base_url or config.OPENROUTER_BASE_URL).rstrip("/")
        self.timeout = timeout or config.PROVIDER_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def chat(self, prompt: str, system: str = None, max_tokens: int = 4000,
             temperature: float = 0.7) -> str:
        """Send one chat completion and return the assistant message text.

        Raises:
            UpstreamProviderError: missing key, transport error, non-2xx or
                a payload without choices[0].message.content.
        """
        if not self.api_key:
            raise UpstreamProviderError("OpenRouter API key not configured", provider="openrouter")

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            with new_client(self.timeout) as client:
                resp = client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamProviderError(
                "OpenRouter request failed", details=str(e), provider="openrouter"
            ) from e

        if resp.status_code >= 400:
            raise UpstreamProviderError(
                f"OpenRouter API error: {resp.status_code}",
                details=resp.text[:200], provider="openrouter", status=resp.status_code,
            )

        try:
            return resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise UpstreamProviderError(
                "OpenRouter returned a malformed payload", details=str(e), provider="openrouter"
            ) from e


def extract_json(text: str):
    """Parse a model reply as JSON.

    Accepts bare JSON, a fenced ```json block, or prose wrapped around a
    single top-level object. Raises ValueError when nothing parses.
    """
    if text is None:
        raise ValueError("empty reply")
    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    raise ValueError("reply is not JSON")


# ─── LLM GATEWAY (unified interface) ──────────────────────────

class LLMGateway:
    """Unified LLM interface with tracing.

    Usage:
        gateway = LLMGateway()
        text = gateway.complete("Write a subject line...", stage_name="email")
    """

    def __init__(self, client: OpenRouterClient = None):
        self.client = client or OpenRouterClient()

    @property
    def configured(self) -> bool:
        return self.client.configured

    def complete(self, prompt: str, stage_name: str = "unknown", system: str = None,
                 max_tokens: int = 4000, temperature: float = 0.7,
                 request_id: str = None) -> str:
        request_id = request_id or uuid.uuid4().hex[:12]
        start = time.time()

        prompt_preview = prompt[:80].replace("\n", " ") + ("..." if len(prompt) > 80 else "")
        logger.info("[%s] LLM request: stage=%s, prompt='%s'", request_id, stage_name, prompt_preview,
                    extra={"request_id": request_id, "provider": "openrouter"})

        try:
            text = self.client.chat(prompt, system=system, max_tokens=max_tokens, temperature=temperature)
        except UpstreamProviderError as e:
            logger.warning("[%s] OpenRouter failed at stage=%s: %s %s", request_id, stage_name,
                           e.message, e.details or "")
            raise

        duration_ms = int((time.time() - start) * 1000)
        logger.info("[%s] OpenRouter responded in %dms", request_id, duration_ms,
                    extra={"request_id": request_id, "duration_ms": duration_ms})
        return text

    def complete_json(self, prompt: str, stage_name: str = "unknown", system: str = None,
                      max_tokens: int = 4000, temperature: float = 0.7):
        """Complete and parse the reply as JSON. Unparseable replies raise UpstreamProviderError."""
        text = self.complete(prompt, stage_name=stage_name, system=system,
                             max_tokens=max_tokens, temperature=temperature)
        try:
            return extract_json(text)
        except ValueError as e:
            raise UpstreamProviderError(
                "LLM response was not valid JSON", details=str(e), provider="openrouter"
            ) from e
