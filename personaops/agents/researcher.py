"""
Research Agent - Multi-phase LLM research for company-analyze and gtm-generate.

Each phase sends one prompt built from the URL and the earlier phases'
output. A reply that is not JSON falls back to the phase's default dict;
a provider failure (including a missing key) propagates, since these paths
have no demo mode. Every phase is recorded in company_research_steps.

Usage:
    from personaops.agents.researcher import run_company_analysis

    analysis = run_company_analysis("https://acme.com", user_id="u1", run_id="run_abc")
"""

import json
import logging
import sqlite3
from collections import namedtuple
from typing import Optional
from urllib.parse import urlparse

from personaops.agents.error_handler import log_pipeline_error
from personaops.agents.llm_gateway import LLMGateway, extract_json
from personaops.db import models

logger = logging.getLogger("personaops.agents.researcher")

Phase = namedtuple("Phase", ["name", "system", "prompt", "fallback"])


def extract_domain(url: str) -> str:
    """Hostname without a leading www., tolerating scheme-less input."""
    parsed = urlparse(url if url.startswith("http") else f"https://{url}")
    host = parsed.hostname or url.split("/")[0]
    return host.replace("www.", "")


def _name(url: str, results: dict, key: str) -> str:
    return results.get(key, {}).get("companyName") or url


def _dump(value) -> str:
    return json.dumps(value, indent=2)


# ─── COMPANY ANALYSIS PHASES ──────────────────────────────────

def _profile_prompt(url, r):
    return f"""Analyze the company website: {url}

Please provide detailed information about:
1. Company name and basic profile
2. Industry and business model
3. Company size indicators
4. Location and headquarters
5. Core products/services
6. Target market indicators

Return your analysis as a structured JSON object with clear, actionable insights for B2B sales teams."""


def _market_prompt(url, r):
    p1 = r["company_profile"]
    return f"""Based on the company {p1.get('companyName') or url} in the {p1.get('industry') or 'technology'} industry:

1. Identify key market trends affecting this industry
2. Analyze the competitive landscape
3. Determine market positioning
4. Identify growth opportunities
5. Assess market maturity and dynamics

Provide actionable market intelligence that would be valuable for sales and marketing teams."""


def _competitive_prompt(url, r):
    p1 = r["company_profile"]
    return f"""For {p1.get('companyName') or url} competing in {p1.get('industry') or 'technology'}:

1. Identify direct and indirect competitors
2. Analyze competitive advantages and weaknesses
3. Determine unique value propositions
4. Assess competitive threats and opportunities
5. Map competitive positioning

Focus on insights that would help with competitive sales strategies."""


def _technology_prompt(url, r):
    return f"""Analyze the technology landscape for {_name(url, r, 'company_profile')}:

1. Identify likely technology stack components
2. Determine integration opportunities
3. Assess technology maturity and adoption
4. Identify potential pain points with current tech
5. Suggest technology trends they might be interested in

Provide insights that would be valuable for technology sales and partnerships."""


def _synthesis_prompt(url, r):
    return f"""Synthesize the following research phases into a comprehensive Ideal Customer Profile:

Phase 1 - Company Profile: {_dump(r['company_profile'])}
Phase 2 - Market Intelligence: {_dump(r['market_intelligence'])}
Phase 3 - Competitive Analysis: {_dump(r['competitive_analysis'])}
Phase 4 - Technology Analysis: {_dump(r['technology_stack'])}

Create a final, actionable company analysis that includes:
1. Complete company profile
2. Key decision makers and personas
3. Primary pain points and challenges
4. Technology stack and tools
5. Market position and trends
6. Go-to-market strategy insights
7. Executive summary for sales teams

Return as a well-structured JSON object optimized for B2B sales intelligence."""


COMPANY_ANALYSIS_PHASES = (
    Phase(
        "company_profile",
        "You are a B2B sales intelligence researcher specializing in company analysis. "
        "Your goal is to extract comprehensive information about a company from their website.",
        _profile_prompt,
        lambda url, r: {
            "companyName": extract_domain(url),
            "industry": "Technology",
            "companySize": "51-200",
            "location": "United States",
            "businessModel": "SaaS",
        },
    ),
    Phase(
        "market_intelligence",
        "You are a market intelligence analyst focusing on competitive landscape and market positioning.",
        _market_prompt,
        lambda url, r: {
            "marketTrends": ["Digital transformation", "AI adoption", "Remote work"],
            "competitors": ["Competitor A", "Competitor B", "Competitor C"],
            "marketPosition": "Growth stage",
            "opportunities": ["Market expansion", "Product diversification"],
        },
    ),
    Phase(
        "competitive_analysis",
        "You are a competitive intelligence specialist analyzing competitive positioning and differentiation.",
        _competitive_prompt,
        lambda url, r: {
            "directCompetitors": ["Competitor 1", "Competitor 2"],
            "indirectCompetitors": ["Alternative 1", "Alternative 2"],
            "competitiveAdvantages": ["Innovation", "Customer service", "Pricing"],
            "threats": ["New entrants", "Technology disruption"],
        },
    ),
    Phase(
        "technology_stack",
        "You are a technology analyst specializing in tech stack analysis and integration opportunities.",
        _technology_prompt,
        lambda url, r: {
            "technologies": ["React", "Node.js", "AWS", "Salesforce"],
            "integrations": ["CRM", "Marketing automation", "Analytics"],
            "techMaturity": "Moderate",
            "painPoints": ["Data silos", "Manual processes", "Scalability"],
        },
    ),
    Phase(
        "synthesis",
        "You are a senior sales strategist synthesizing comprehensive company intelligence "
        "into actionable ICP insights.",
        _synthesis_prompt,
        lambda url, r: {},
    ),
)


def build_company_analysis(url: str, r: dict) -> dict:
    """Merge the synthesis reply with earlier phases into the analysis shape."""
    parsed = r["synthesis"] if isinstance(r["synthesis"], dict) else {}
    p1, p2, p3, p4 = (r["company_profile"], r["market_intelligence"],
                      r["competitive_analysis"], r["technology_stack"])
    profile = parsed.get("companyProfile") if isinstance(parsed.get("companyProfile"), dict) else {}
    return {
        "companyName": parsed.get("companyName") or p1.get("companyName") or extract_domain(url),
        "companyProfile": {
            "industry": profile.get("industry") or p1.get("industry") or "Technology",
            "companySize": profile.get("companySize") or p1.get("companySize") or "51-200",
            "revenueRange": profile.get("revenueRange") or "$10M-$50M",
        },
        "decisionMakers": parsed.get("decisionMakers") or ["VP of Sales", "Head of Marketing", "CTO"],
        "painPoints": parsed.get("painPoints") or p4.get("painPoints") or ["Manual processes", "Scaling challenges"],
        "technologies": parsed.get("technologies") or p4.get("technologies") or ["CRM", "Marketing automation"],
        "location": parsed.get("location") or p1.get("location") or "United States",
        "marketTrends": parsed.get("marketTrends") or p2.get("marketTrends") or ["Digital transformation", "AI adoption"],
        "competitiveLandscape": (parsed.get("competitiveLandscape") or p3.get("directCompetitors")
                                 or ["Competitor A", "Competitor B"]),
        "goToMarketStrategy": parsed.get("goToMarketStrategy") or "Product-led growth with targeted outbound sales",
        "researchSummary": (parsed.get("researchSummary")
                            or "Multi-phase analysis completed with comprehensive market and competitive intelligence"),
        "website": url,
    }


# ─── GTM PLAYBOOK PHASES ──────────────────────────────────────

def _intel_prompt(url, r):
    return f"""Analyze the company at {url} for GTM intelligence:

1. Company Overview (size, stage, business model)
2. Product/Service Portfolio
3. Current Market Position
4. Revenue Model & Pricing
5. Customer Base Indicators
6. Technology Stack & Capabilities
7. Company Maturity & Growth Stage

Return structured JSON with actionable insights for GTM strategy development."""


def _market_research_prompt(url, r):
    return f"""Based on {_name(url, r, 'company_intelligence')}, research:

1. Total Addressable Market (TAM) sizing
2. Serviceable Addressable Market (SAM)
3. Direct & Indirect Competitors
4. Market Trends & Growth Drivers
5. Buyer Behavior Patterns
6. Market Maturity & Dynamics
7. Regulatory/Industry Factors

Provide data-driven insights with market size estimates and competitive positioning."""


def _icp_prompt(url, r):
    return f"""Develop comprehensive ICP for {_name(url, r, 'company_intelligence')}:

1. Firmographic Profile (company size, industry, revenue, geography)
2. Buyer Personas (titles, roles, responsibilities, pain points)
3. Buying Process & Decision Criteria
4. Budget Authority & Procurement Process
5. Technology Adoption Patterns
6. Pain Points & Trigger Events
7. Success Metrics & KPIs

Create detailed personas with buying influence, pain points, and messaging angles."""


def _strategy_prompt(url, r):
    return f"""Synthesize GTM strategy for {_name(url, r, 'company_intelligence')}:

Company Intel: {_dump(r['company_intelligence'])}
Market Research: {_dump(r['market_research'])}
ICP: {_dump(r['icp_development'])}

Develop:
1. Channel Strategy (inbound/outbound/partner)
2. Sales Motion (PLG/sales-led/hybrid)
3. Pricing & Packaging Strategy
4. Customer Acquisition Strategy
5. Sales Process & Methodology
6. Success Metrics & Benchmarks

Focus on actionable, measurable GTM tactics."""


def _playbook_prompt(url, r):
    return f"""Create a comprehensive GTM Playbook for {_name(url, r, 'company_intelligence')}:

All Research Data:
- Company Intelligence: {_dump(r['company_intelligence'])}
- Market Research: {_dump(r['market_research'])}
- ICP Development: {_dump(r['icp_development'])}
- GTM Strategy: {_dump(r['gtm_strategy'])}

Generate a complete GTM playbook with:
1. EXECUTIVE SUMMARY
2. MARKET ANALYSIS (TAM/SAM, competitors, trends)
3. IDEAL CUSTOMER PROFILE (firmographics, personas, pain points)
4. VALUE PROPOSITION (differentiators, competitive advantages)
5. GO-TO-MARKET STRATEGY (channels, sales motion, pricing)
6. MESSAGING FRAMEWORK (primary/secondary messages, objection handling)
7. SALES ENABLEMENT (battle cards, talk tracks, demo scripts)
8. DEMAND GENERATION (channels, content, campaigns)
9. METRICS & KPIs (leading/lagging indicators)

Return as structured JSON optimized for sales and marketing execution."""


GTM_PHASES = (
    Phase(
        "company_intelligence",
        "You are a senior GTM strategist and company intelligence analyst. "
        "Analyze the company comprehensively for GTM planning.",
        _intel_prompt,
        lambda url, r: {
            "companyName": extract_domain(url),
            "businessModel": "B2B SaaS",
            "companyStage": "Growth",
            "targetMarket": "SMB-Enterprise",
        },
    ),
    Phase(
        "market_research",
        "You are a market research analyst specializing in competitive intelligence and market sizing.",
        _market_research_prompt,
        lambda url, r: {
            "totalAddressableMarket": "$50B+",
            "competitiveLandscape": ["Competitor A", "Competitor B"],
            "marketTrends": ["Digital transformation", "AI adoption"],
            "marketMaturity": "Growth stage",
        },
    ),
    Phase(
        "icp_development",
        "You are an ICP development specialist focused on creating detailed buyer personas "
        "and firmographic profiles.",
        _icp_prompt,
        lambda url, r: {
            "firmographics": {
                "companySize": "51-500",
                "industry": ["Technology", "Professional Services"],
                "revenueRange": "$10M-$100M",
            },
            "personas": [{
                "title": "VP of Sales",
                "role": "Decision Maker",
                "painPoints": ["Manual processes", "Poor visibility"],
                "buyingInfluence": "High",
            }],
        },
    ),
    Phase(
        "gtm_strategy",
        "You are a GTM strategy consultant specializing in B2B go-to-market planning and execution.",
        _strategy_prompt,
        lambda url, r: {
            "channel": "Direct sales + Partner",
            "salesMotion": "Sales-led",
            "pricingStrategy": "Value-based",
            "acquisitionStrategy": "Outbound + Inbound",
        },
    ),
    Phase(
        "playbook",
        "You are a senior GTM consultant creating comprehensive, actionable GTM playbooks for B2B companies.",
        _playbook_prompt,
        lambda url, r: None,
    ),
)


def _default_playbook(url: str, r: dict) -> dict:
    intel, market, icp, strategy = (r["company_intelligence"], r["market_research"],
                                    r["icp_development"], r["gtm_strategy"])
    firmographics = icp.get("firmographics") or {}
    industries = firmographics.get("industry") or ["Technology"]
    return {
        "executiveSummary": (
            f"Comprehensive GTM playbook for {intel.get('companyName') or extract_domain(url)} "
            f"targeting {firmographics.get('companySize') or '50-500'} employee companies in "
            f"{industries[0] if industries else 'technology'} sector."
        ),
        "marketAnalysis": {
            "totalAddressableMarket": market.get("totalAddressableMarket") or "$10B+",
            "servicableAddressableMarket": "$1B+",
            "targetMarketSegments": firmographics.get("industry") or ["Technology", "Professional Services"],
            "competitiveLandscape": market.get("competitiveLandscape") or ["Competitor A", "Competitor B"],
            "marketTrends": market.get("marketTrends") or ["Digital transformation", "AI adoption"],
        },
        "idealCustomerProfile": {
            "firmographics": {
                "companySize": firmographics.get("companySize") or "51-500",
                "industry": industries,
                "revenueRange": firmographics.get("revenueRange") or "$10M-$100M",
                "geography": ["North America", "Europe"],
            },
            "personas": icp.get("personas") or [{
                "title": "VP of Sales",
                "role": "Decision Maker",
                "painPoints": ["Manual processes", "Poor visibility", "Scaling challenges"],
                "responsibilities": ["Sales strategy", "Team performance", "Revenue growth"],
                "buyingInfluence": "High",
            }],
        },
        "valueProposition": {
            "primaryValue": "Accelerate revenue growth through intelligent automation",
            "keyDifferentiators": ["AI-powered insights", "Easy integration", "Proven ROI"],
            "competitiveAdvantages": ["Superior UX", "Faster implementation", "Better support"],
        },
        "goToMarketStrategy": {
            "channel": strategy.get("channel") or "Direct sales + Partner",
            "salesMotion": strategy.get("salesMotion") or "Sales-led",
            "pricingStrategy": strategy.get("pricingStrategy") or "Value-based",
            "customerAcquisitionCost": "$2,500",
            "salesCycleLength": "45-60 days",
        },
        "messagingFramework": {
            "primaryMessage": "Transform your sales process with AI-powered intelligence",
            "secondaryMessages": [
                "Increase revenue by 30% in 90 days",
                "Eliminate manual processes",
                "Get real-time visibility into your pipeline",
            ],
            "objectionHandling": [
                {"objection": "Too expensive",
                 "response": "ROI typically achieved within 3 months through increased productivity"},
                {"objection": "Integration concerns",
                 "response": "Native integrations with 50+ popular sales tools, setup in under 30 minutes"},
            ],
        },
        "salesEnablement": {
            "battleCards": ["Competitive positioning vs top 3 competitors", "ROI calculator", "Security overview"],
            "talkTracks": ["Discovery questions", "Demo flow", "Objection handling"],
            "demoScripts": ["15-min discovery demo", "30-min deep dive", "Executive presentation"],
            "caseStudies": ["Technology company 3x growth", "Services firm 50% efficiency gain"],
        },
        "demandGeneration": {
            "channels": ["Content marketing", "LinkedIn outbound", "Partner referrals", "Events"],
            "contentStrategy": ["Thought leadership", "How-to guides", "Industry reports", "Webinars"],
            "campaignIdeas": ["Sales efficiency audit", "ROI assessment", "Free trial campaign"],
            "leadMagnets": ["Sales Process Audit Template", "ROI Calculator", "Industry Benchmark Report"],
        },
        "metricsAndKPIs": {
            "leadingIndicators": ["SQLs generated", "Demo completion rate", "Proposal sent"],
            "laggingIndicators": ["Deals closed", "Revenue growth", "Customer acquisition cost"],
            "successMetrics": ["30% increase in deal velocity", "25% higher close rate",
                               "40% more qualified leads"],
        },
    }


def build_gtm_playbook(url: str, r: dict) -> dict:
    parsed = r["playbook"]
    if isinstance(parsed, dict):
        return {
            "gtmPlaybook": parsed.get("gtmPlaybook") or parsed,
            "researchSummary": (parsed.get("researchSummary")
                                or "Comprehensive GTM analysis completed across 5 research phases"),
            "confidence": parsed.get("confidence") or 85,
            "sources": parsed.get("sources") or [url, "Market research", "Competitive analysis"],
        }
    return {
        "gtmPlaybook": _default_playbook(url, r),
        "researchSummary": ("Multi-phase GTM analysis completed with comprehensive market intelligence, "
                            "ICP development, and actionable go-to-market strategy"),
        "confidence": 85,
        "sources": [url, "Market research", "Competitive analysis", "ICP development"],
    }


# ─── PHASE RUNNER ─────────────────────────────────────────────

def _record_step(user_id, run_id, function_name, step_number, phase_name, output, used_fallback):
    try:
        models.record_research_step(user_id, run_id, function_name, step_number,
                                    phase_name, output, used_fallback)
    except sqlite3.Error as e:
        log_pipeline_error(phase=f"record_step:{phase_name}", error=e, user_id=user_id,
                           function_name=function_name, context={"run_id": run_id})


def run_phases(phases, url: str, user_id: str, run_id: str, function_name: str,
               gateway: LLMGateway = None, seeds: Optional[dict] = None) -> dict:
    """Run phases in order and return {phase_name: output}.

    `seeds` maps a phase name to a precomputed output that replaces the LLM
    call for that phase (e.g. a saved analysis).

    Raises:
        UpstreamProviderError: on any provider failure.
    """
    gateway = gateway or LLMGateway()
    seeds = seeds or {}
    results = {}

    for step_number, phase in enumerate(phases, start=1):
        logger.info("Phase %d: %s for %s", step_number, phase.name, url,
                    extra={"phase": phase.name, "function_name": function_name})
        used_fallback = False
        if phase.name in seeds:
            output = seeds[phase.name]
        else:
            reply = gateway.complete(phase.prompt(url, results), stage_name=phase.name,
                                     system=phase.system, max_tokens=4000)
            try:
                output = extract_json(reply)
            except ValueError:
                output = None
            if not isinstance(output, dict):
                logger.warning("Phase %s reply was not a JSON object, using defaults", phase.name)
                output = phase.fallback(url, results)
                used_fallback = True
        results[phase.name] = output
        _record_step(user_id, run_id, function_name, step_number, phase.name, output, used_fallback)

    return results


def run_company_analysis(url: str, user_id: str, run_id: str, gateway: LLMGateway = None) -> dict:
    results = run_phases(COMPANY_ANALYSIS_PHASES, url, user_id, run_id, "company-analyze", gateway)
    return build_company_analysis(url, results)


def run_gtm_playbook(url: str, user_id: str, run_id: str, existing_analysis: dict = None,
                     gateway: LLMGateway = None) -> dict:
    seeds = {"company_intelligence": existing_analysis} if existing_analysis else None
    results = run_phases(GTM_PHASES, url, user_id, run_id, "gtm-generate", gateway, seeds)
    return build_gtm_playbook(url, results)
