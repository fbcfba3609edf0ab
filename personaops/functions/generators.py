"""
PersonaOps - ICP and Playbook Generators
Cached generation of an ICP per (user, website), of a GTM playbook per
(user, website, icp, gtmForm) and of a sales intelligence report per
(user, website). With an OpenRouter key the result comes from
the LLM (failures are hard errors); without one the demo catalogue is used.
"""

import json
import logging

from personaops.agents import demo_data
from personaops.agents.demo_data import DEMO_CATALOGUE, DemoCatalogue
from personaops.agents.llm_gateway import LLMGateway
from personaops.agents.researcher import extract_domain
from personaops.functions.result_cache import cached_generate

logger = logging.getLogger("personaops.functions.generators")

ICP_SYSTEM = ("You are a B2B go-to-market analyst. You produce Ideal Customer Profiles "
              "as strict JSON with no commentary.")

PLAYBOOK_SYSTEM = ("You are a senior GTM consultant. You produce outbound playbooks "
                   "as strict JSON with no commentary.")


def build_icp_prompt(website_url: str, catalogue: DemoCatalogue = DEMO_CATALOGUE) -> str:
    similar = demo_data.similar_companies(catalogue)
    market = demo_data.market_intelligence(catalogue)
    return f"""Generate an Ideal Customer Profile for the company at {website_url} ({extract_domain(website_url)}).

Reference companies in a similar space:
{json.dumps(similar, indent=2)}

Market context:
{json.dumps(market, indent=2)}

Return a JSON object with exactly these keys:
- targetCompanySize: {{employeeRange, revenueRange}}
- targetIndustries: [string]
- buyerPersonas: [{{title, role, seniority}}]
- painPointsAndTriggers: [string]
- messagingAngles: [string]
- caseStudiesOrProof: [string]
- recommendedApolloSearchParams: {{employeeCount, titles, seniorityLevels, industries, technologies, locations}}"""


def build_playbook_prompt(website_url: str, icp, gtm_form) -> str:
    return f"""Create a GTM playbook for {website_url}.

ICP:
{json.dumps(icp, indent=2)}

GTM form answers:
{json.dumps(gtm_form, indent=2)}

Return a JSON object with keys: playbookTitle (string), summary (string),
steps (ordered list of strings)."""


def generate_icp(website_url: str, gateway: LLMGateway = None,
                 catalogue: DemoCatalogue = DEMO_CATALOGUE) -> dict:
    gateway = gateway or LLMGateway()
    if not gateway.configured:
        logger.info("OpenRouter not configured, using demo ICP for %s", website_url)
        return demo_data.demo_icp(catalogue)
    return gateway.complete_json(build_icp_prompt(website_url, catalogue), stage_name="icp",
                                 system=ICP_SYSTEM, max_tokens=2000)


def generate_playbook(website_url: str, icp, gtm_form, gateway: LLMGateway = None,
                      catalogue: DemoCatalogue = DEMO_CATALOGUE) -> dict:
    gateway = gateway or LLMGateway()
    if not gateway.configured:
        logger.info("OpenRouter not configured, using demo playbook for %s", website_url)
        return demo_data.demo_playbook(website_url, icp, gtm_form, catalogue)
    playbook = gateway.complete_json(build_playbook_prompt(website_url, icp, gtm_form),
                                     stage_name="playbook", system=PLAYBOOK_SYSTEM)
    if not isinstance(playbook, dict):
        playbook = {"steps": playbook}
    playbook.setdefault("playbookTitle", f"GTM Playbook for {website_url}")
    playbook["icpUsed"] = icp
    playbook["gtmFormUsed"] = gtm_form
    return playbook


# ─── CACHED ENTRY POINTS ──────────────────────────────────────

def icp_for(user_id: str, website_url: str) -> dict:
    return cached_generate(
        "icp_analyses",
        {"user_id": user_id, "website_url": website_url},
        lambda: generate_icp(website_url),
        function_name="icp-generator",
    )


def playbook_for(user_id: str, website_url: str, icp, gtm_form) -> dict:
    return cached_generate(
        "playbook_analyses",
        {"user_id": user_id, "website_url": website_url, "icp": icp, "gtm_form": gtm_form},
        lambda: generate_playbook(website_url, icp, gtm_form),
        function_name="playbook-generator",
    )


def analysis_for(user_id: str, website_url: str) -> dict:
    """Sales intelligence report per (user, website), always from the demo catalogue."""
    return cached_generate(
        "company_analyses",
        {"user_id": user_id, "website_url": website_url},
        lambda: demo_data.sales_intelligence_report(website_url, extract_domain(website_url)),
        function_name="company-analysis",
    )
