"""
Unit tests for the multi-phase research runner.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

import pytest

from personaops.agents import researcher
from personaops.db import models
from personaops.errors import UpstreamProviderError


class FakeGateway:
    """Replies from a list, one per call."""

    configured = True

    def __init__(self, replies):
        self.replies = list(replies)
        self.stages = []

    def complete(self, prompt, stage_name="unknown", system=None, max_tokens=4000, **kwargs):
        self.stages.append(stage_name)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def test_extract_domain():
    assert researcher.extract_domain("https://www.acme.com/pricing") == "acme.com"
    assert researcher.extract_domain("acme.io") == "acme.io"


def test_phases_run_in_order_and_are_recorded(test_db):
    gateway = FakeGateway(['{"companyName": "Acme"}', "prose", '{"x": 1}', "[1, 2]", '{"companyName": "Acme"}'])
    results = researcher.run_phases(researcher.COMPANY_ANALYSIS_PHASES, "https://acme.com",
                                    "u1", "run_1", "company-analyze", gateway)
    assert gateway.stages == ["company_profile", "market_intelligence", "competitive_analysis",
                              "technology_stack", "synthesis"]
    assert results["market_intelligence"]["marketPosition"] == "Growth stage"

    steps = models.list_research_steps("run_1")
    assert [s["step_number"] for s in steps] == [1, 2, 3, 4, 5]
    assert [s["used_fallback"] for s in steps] == [False, True, False, True, False]


def test_seeded_phase_skips_llm(test_db):
    gateway = FakeGateway(["{}", "{}", "{}", "no playbook today"])
    playbook = researcher.run_gtm_playbook("https://acme.com", "u1", "run_2",
                                           existing_analysis={"companyName": "Acme"}, gateway=gateway)
    assert "company_intelligence" not in gateway.stages
    assert len(gateway.stages) == 4
    assert "Acme" in playbook["gtmPlaybook"]["executiveSummary"]


def test_provider_error_stops_the_run(test_db):
    gateway = FakeGateway(["{}", UpstreamProviderError("OpenRouter API error: 500")])
    with pytest.raises(UpstreamProviderError):
        researcher.run_company_analysis("https://acme.com", "u1", "run_3", gateway)
    assert len(models.list_research_steps("run_3")) == 1


def test_analysis_defaults():
    analysis = researcher.build_company_analysis("https://acme.com", {
        "company_profile": {}, "market_intelligence": {}, "competitive_analysis": {},
        "technology_stack": {}, "synthesis": {},
    })
    assert analysis["companyName"] == "acme.com"
    assert analysis["decisionMakers"] == ["VP of Sales", "Head of Marketing", "CTO"]
    assert analysis["website"] == "https://acme.com"
