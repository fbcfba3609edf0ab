"""
Unit tests for the OpenRouter client, JSON extraction and email reply parsing.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import json

import httpx
import pytest

from personaops.agents import http_client
from personaops.agents.llm_gateway import LLMGateway, OpenRouterClient, extract_json
from personaops.errors import UpstreamProviderError
from personaops.functions.personalization import MAX_BODY, MAX_SUBJECT, parse_email_content


@pytest.fixture
def transport():
    def _install(handler):
        http_client.set_transport(httpx.MockTransport(handler))
    yield _install
    http_client.set_transport(None)


# ─── extract_json ─────────────────────────────────────────────

def test_bare_json():
    assert extract_json('{"a": 1}') == {"a": 1}


def test_fenced_json():
    assert extract_json('Here you go:\n```json\n{"a": [1, 2]}\n```\nEnjoy') == {"a": [1, 2]}


def test_json_wrapped_in_prose():
    assert extract_json('Sure! {"name": "Acme"} Hope that helps.') == {"name": "Acme"}


def test_not_json():
    with pytest.raises(ValueError):
        extract_json("no structure here")
    with pytest.raises(ValueError):
        extract_json(None)


# ─── OpenRouterClient ─────────────────────────────────────────

def test_missing_key():
    with pytest.raises(UpstreamProviderError) as exc:
        OpenRouterClient(api_key="").chat("hi")
    assert exc.value.message == "OpenRouter API key not configured"


def test_chat_sends_model_and_messages(transport):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})

    transport(handler)
    client = OpenRouterClient(api_key="sk-1", model="test/model", base_url="https://llm.test/v1")
    assert client.chat("prompt", system="sys", max_tokens=10) == "hello"
    assert seen["auth"] == "Bearer sk-1"
    assert seen["body"]["model"] == "test/model"
    assert seen["body"]["max_tokens"] == 10
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "prompt"},
    ]


def test_non_2xx(transport):
    transport(lambda request: httpx.Response(429, text="slow down"))
    with pytest.raises(UpstreamProviderError) as exc:
        OpenRouterClient(api_key="sk-1").chat("prompt")
    assert exc.value.status == 429
    assert exc.value.provider == "openrouter"


def test_malformed_payload(transport):
    transport(lambda request: httpx.Response(200, json={"choices": []}))
    with pytest.raises(UpstreamProviderError):
        OpenRouterClient(api_key="sk-1").chat("prompt")


def test_transport_error(transport):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    transport(handler)
    with pytest.raises(UpstreamProviderError) as exc:
        OpenRouterClient(api_key="sk-1").chat("prompt")
    assert "timed out" in exc.value.details


def test_complete_json_rejects_prose(transport):
    transport(lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "nope"}}]}))
    gateway = LLMGateway(OpenRouterClient(api_key="sk-1"))
    with pytest.raises(UpstreamProviderError) as exc:
        gateway.complete_json("prompt", stage_name="icp")
    assert exc.value.message == "LLM response was not valid JSON"


# ─── parse_email_content ──────────────────────────────────────

CONTACT = {"companyName": "Acme", "companyIndustry": "SaaS", "email": "a@acme.com"}


def test_parse_subject_and_body_lines():
    email = parse_email_content("SUBJECT: Hi there\nBODY: Let's talk.", CONTACT)
    assert email["subject"] == "Hi there"
    assert email["body"] == "Let's talk."
    assert email["personalizedHook"] == "Noticed Acme is in SaaS"
    assert email["email"] == "a@acme.com"


def test_parse_paragraph_fallback():
    email = parse_email_content("Subject: Quick idea\n\nWe help teams like yours.", CONTACT)
    assert email["subject"] == "Quick idea"
    assert email["body"] == "We help teams like yours."


def test_parse_truncates():
    email = parse_email_content(f"SUBJECT: {'s' * 300}\nBODY: {'b' * 900}", CONTACT)
    assert len(email["subject"]) == MAX_SUBJECT
    assert len(email["body"]) == MAX_BODY
