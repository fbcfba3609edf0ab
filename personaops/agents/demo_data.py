"""
Demo Data Catalogue - Deterministic placeholder data for demo mode.

When a provider key is missing (or a lead-data call fails) the functions
substitute data from this catalogue so the UI keeps working. The catalogue
is a frozen structure; generators receive it as an argument and return
fresh plain dicts, so callers can never mutate shared state.

Usage:
    from personaops.agents.demo_data import DEMO_CATALOGUE, mock_companies

    companies = mock_companies(10, DEMO_CATALOGUE)
"""

import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Tuple


def _freeze(value):
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def thaw(value):
    """Return a mutable deep copy of a frozen catalogue entry."""
    if isinstance(value, MappingProxyType):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


@dataclass(frozen=True)
class DemoCompany:
    name: str
    description: str
    industry: str
    url: str

    def as_dict(self) -> dict:
        return {"name": self.name, "description": self.description,
                "industry": self.industry, "url": self.url}


DEMO_SIMILAR_COMPANIES = (
    DemoCompany("Coda", "All-in-one doc that brings words, data, and teams together",
                "Productivity Software", "https://coda.io"),
    DemoCompany("ClickUp", "One app to replace them all - tasks, docs, goals & more",
                "Project Management", "https://clickup.com"),
    DemoCompany("Monday.com", "Work management platform for teams",
                "Project Management", "https://monday.com"),
    DemoCompany("Airtable", "Organize anything with the power of a database",
                "Productivity Software", "https://airtable.com"),
    DemoCompany("Figma", "Collaborative interface design tool",
                "Design Software", "https://figma.com"),
)

DEMO_MARKET_INTELLIGENCE = _freeze({
    "marketSize": {
        "totalAddressableMarket": "$50B+ collaboration software market",
        "currentRevenue": "$250M - $400M annual revenue",
        "marketShare": "15-20% in collaborative workspace segment",
        "growthRate": "60% YoY growth rate",
    },
    "marketMaturity": "Growth stage with increasing consolidation",
    "competitiveLandscape": {
        "totalCompetitors": "50+ direct competitors",
        "marketLeaders": ["Microsoft", "Google", "Atlassian"],
        "marketConcentration": "Moderate with several dominant players",
    },
})

DEMO_ICP = _freeze({
    "targetCompanySize": {"employeeRange": "11-50", "revenueRange": "$2M-$10M"},
    "targetIndustries": ["B2B SaaS", "Technology"],
    "buyerPersonas": [
        {"title": "VP of Sales", "role": "Sales leadership", "seniority": "VP"},
    ],
    "painPointsAndTriggers": [
        "Manual outbound takes too much time",
        "Struggling to personalize outreach at scale",
    ],
    "messagingAngles": [
        "Automated workflows for lead personalization",
        "AI-powered outbound",
    ],
    "caseStudiesOrProof": ["Used by leading RevOps teams"],
    "recommendedApolloSearchParams": {
        "employeeCount": "11-50",
        "titles": ["VP of Sales", "VP of Marketing"],
        "seniorityLevels": ["VP", "Director"],
        "industries": ["Software", "Technology"],
        "technologies": ["HubSpot", "Salesforce"],
        "locations": ["United States"],
    },
})

DEMO_PLAYBOOK_STEPS = (
    "Define target personas and pain points (from ICP)",
    "Incorporate GTM strategies (from GTM form)",
    "Craft outbound messaging",
    "Build lead lists using Apollo",
    "Launch multi-channel campaigns",
    "Measure and iterate",
)

# companyOverview identity fields are filled per request
DEMO_SALES_REPORT = _freeze({
    "companyOverview": {
        "headquarters": "Demo HQ",
        "foundingYear": 2015,
        "employeeRange": "100-500",
        "industryClassification": "Technology",
        "executiveTeam": [{
            "name": "John Doe",
            "title": "CEO",
            "linkedInUrl": "https://linkedin.com/in/johndoe",
            "background": "Demo background",
        }],
    },
    "marketIntelligence": {
        "totalAddressableMarket": "$1B+",
        "customerSegments": ["SMB", "Enterprise"],
        "positioningStatement": "Demo positioning",
        "competitiveLandscape": {
            "directCompetitors": ["Competitor A", "Competitor B"],
            "differentiators": ["Feature X", "Feature Y"],
            "marketTrends": ["Trend 1", "Trend 2"],
        },
    },
    "financialPerformance": {
        "estimatedAnnualRevenue": "$10M-$50M",
        "fundingRounds": [{"round": "Series A", "amount": "$5M", "date": "2020", "investors": ["VC1"]}],
        "totalAmountRaised": "$10M",
        "keyInvestors": ["VC1", "VC2"],
        "fundingStage": "Series A",
        "revenueModel": "SaaS",
    },
    "technologyStack": {
        "productOfferings": ["Product 1", "Product 2"],
        "integrations": ["Integration 1"],
        "techStackComponents": ["React", "Node.js"],
        "uniqueSellingPropositions": ["USP 1", "USP 2"],
    },
    "salesMarketingStrategy": {
        "goToMarketStrategy": "Demo GTM",
        "targetAudience": {
            "icpCharacteristics": {
                "companySize": ["11-50", "51-200"],
                "industryVerticals": ["Tech", "Finance"],
                "keyPersonas": ["CTO", "CFO"],
            },
        },
        "marketingChannels": ["Email", "Events"],
        "salesProcess": {
            "inboundOutboundRatio": "60/40",
            "salesCycleLength": "3 months",
            "averageDealSize": "$20k",
        },
    },
    "ibpCapabilityMaturity": {
        "ibpProcesses": ["Process 1"],
        "dataIntegration": {
            "dataSilos": "Low",
            "dataCentralizationPercentage": 80,
            "realTimeDataAvailability": True,
        },
        "analyticsForecasting": {
            "useOfAdvancedAnalytics": True,
            "forecastAccuracyPercentage": 90,
            "scenarioPlanningCapabilities": True,
        },
        "maturityLevel": 4,
        "maturityScore": 85,
    },
    "salesOpportunityInsights": {
        "buyingSignals": ["Signal 1"],
        "intentData": {"websiteVisits": 100, "contentDownloads": 10, "keywordSearches": ["AI"]},
        "engagementMetrics": {"emailOpenRate": 28, "clickThroughRate": 4.2, "eventAttendance": 2},
        "identifiedPainPoints": ["Pain 1"],
        "triggerScore": 75,
    },
})


@dataclass(frozen=True)
class DemoCatalogue:
    """Read-only bundle handed to every mock generator."""
    industries: Tuple[str, ...] = ("SaaS", "Fintech", "Healthcare", "E-commerce", "EdTech")
    cities: Tuple[str, ...] = ("San Francisco", "New York", "Austin", "Seattle", "Boston")
    first_names: Tuple[str, ...] = ("John", "Jane", "Mike", "Sarah", "David", "Emily", "Chris", "Lisa")
    last_names: Tuple[str, ...] = ("Smith", "Johnson", "Williams", "Brown", "Davis", "Miller", "Wilson", "Moore")
    default_titles: Tuple[str, ...] = ("CEO", "CTO", "VP Marketing", "Head of Sales", "Director")
    similar_companies: Tuple[DemoCompany, ...] = DEMO_SIMILAR_COMPANIES
    market_intelligence: MappingProxyType = field(default_factory=lambda: DEMO_MARKET_INTELLIGENCE)
    icp: MappingProxyType = field(default_factory=lambda: DEMO_ICP)
    playbook_steps: Tuple[str, ...] = DEMO_PLAYBOOK_STEPS
    sales_report: MappingProxyType = field(default_factory=lambda: DEMO_SALES_REPORT)


DEMO_CATALOGUE = DemoCatalogue()


# ─── GENERATORS ───────────────────────────────────────────────

def demo_icp(catalogue: DemoCatalogue = DEMO_CATALOGUE) -> dict:
    return thaw(catalogue.icp)


def demo_playbook(website_url: str, icp, gtm_form, catalogue: DemoCatalogue = DEMO_CATALOGUE) -> dict:
    return {
        "playbookTitle": f"GTM Playbook for {website_url}",
        "summary": (
            "This playbook is generated using the following ICP and GTM form data.\n\n"
            f"ICP: {json.dumps(icp, indent=2)}\n\n"
            f"GTM Form: {json.dumps(gtm_form, indent=2)}"
        ),
        "steps": list(catalogue.playbook_steps),
        "icpUsed": icp,
        "gtmFormUsed": gtm_form,
    }


def mock_companies(count: int, catalogue: DemoCatalogue = DEMO_CATALOGUE) -> list:
    """Exactly `count` companies, industries and cities cycling the catalogue lists."""
    companies = []
    for i in range(count):
        n = i + 1
        industry = catalogue.industries[i % len(catalogue.industries)]
        companies.append({
            "name": f"Company {n}",
            "domain": f"company{n}.com",
            "industry": industry,
            "employees": 50 + (i * 97) % 500,
            "location": catalogue.cities[i % len(catalogue.cities)],
            "description": f"A leading {industry} company",
            "linkedinUrl": f"https://linkedin.com/company/company{n}",
            "founded": 2015 + (i % 8),
            "revenue": f"${(i * 7) % 10 + 1}M",
        })
    return companies


def mock_contacts(company: dict, titles: list, catalogue: DemoCatalogue = DEMO_CATALOGUE) -> list:
    """One contact per title, at most three."""
    contacts = []
    domain = company.get("domain") or "example.com"
    for i, title in enumerate(titles[:3]):
        first = catalogue.first_names[i % len(catalogue.first_names)]
        last = catalogue.last_names[i % len(catalogue.last_names)]
        contacts.append({
            "firstName": first,
            "lastName": last,
            "email": f"{first.lower()}.{last.lower()}@{domain}",
            "title": title,
            "companyName": company.get("name"),
            "companyDomain": company.get("domain"),
            "companyIndustry": company.get("industry"),
            "linkedinUrl": f"https://linkedin.com/in/{first.lower()}-{last.lower()}",
            "location": company.get("location"),
            "verified": True,
            "apolloId": f"mock_{domain}_{i}",
        })
    return contacts


def lead_pain_points(icp_data) -> list:
    """Pain points of the first persona, or [] when the ICP has no usable persona list."""
    personas = icp_data.get("personas") if isinstance(icp_data, dict) else None
    if not isinstance(personas, list) or not personas or not isinstance(personas[0], dict):
        return []
    pain_points = personas[0].get("painPoints")
    return pain_points if isinstance(pain_points, list) else []


def template_email(contact: dict, icp_data: dict) -> dict:
    pain_points = lead_pain_points(icp_data)[:1] or ["operational challenges"]
    company = contact.get("companyName")
    industry = contact.get("companyIndustry")
    body = (
        f"Hi {contact.get('firstName')},\n\n"
        f"I noticed {company} has been expanding in the {industry} space. "
        f"Many {contact.get('title')}s I work with mention {pain_points[0]} as a key challenge.\n\n"
        "Would you be open to a brief conversation about how we've helped similar companies overcome this?\n\n"
        "Best regards"
    )
    return dict(contact, subject=f"Quick question about {company}'s growth", body=body,
                personalizedHook=f"Expanding in {industry}")


def similar_companies(catalogue: DemoCatalogue = DEMO_CATALOGUE) -> list:
    return [c.as_dict() for c in catalogue.similar_companies]


def market_intelligence(catalogue: DemoCatalogue = DEMO_CATALOGUE) -> dict:
    return thaw(catalogue.market_intelligence)


def sales_intelligence_report(website_url: str, domain: str,
                              catalogue: DemoCatalogue = DEMO_CATALOGUE) -> dict:
    report = thaw(catalogue.sales_report)
    overview = {"companyName": domain, "websiteUrl": website_url, "domain": domain}
    overview.update(report["companyOverview"])
    report["companyOverview"] = overview
    return report
