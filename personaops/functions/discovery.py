"""
PersonaOps - Company and Contact Discovery
Apollo searches with degrade-to-demo: a missing key or any failed Apollo call
substitutes catalogue data of the same shape and the request still succeeds.
"""

import logging

from personaops.agents import demo_data
from personaops.agents.apollo import ApolloClient, format_company, format_contact
from personaops.agents.demo_data import DEMO_CATALOGUE, DemoCatalogue
from personaops.errors import UpstreamProviderError

logger = logging.getLogger("personaops.functions.discovery")

CONTACTS_PER_COMPANY = 5
MOCK_TITLES_PER_COMPANY = 2


# ─── SEARCH PARAMETERS ────────────────────────────────────────

def company_size_to_ranges(company_size: str) -> list:
    size = company_size.lower()
    if "startup" in size or "small" in size:
        return ["1-10", "11-50"]
    if "medium" in size or "mid" in size:
        return ["51-200", "201-500"]
    if "large" in size or "enterprise" in size:
        return ["501-1000", "1001-5000", "5001+"]
    return ["1-50", "51-200", "201-1000"]


def extract_search_params(icp_data: dict) -> dict:
    """Derive Apollo filters from firmographics; apolloSearchParams keys override."""
    params = {}
    firmographics = icp_data.get("firmographics") or {}
    if firmographics.get("industry"):
        params["industries"] = [firmographics["industry"]]
    if firmographics.get("companySize"):
        params["employeeRanges"] = company_size_to_ranges(str(firmographics["companySize"]))
    if firmographics.get("region"):
        params["locations"] = [firmographics["region"]]

    overrides = icp_data.get("apolloSearchParams")
    if isinstance(overrides, dict):
        params.update(overrides)
    return params


def extract_target_titles(personas, catalogue: DemoCatalogue = DEMO_CATALOGUE) -> list:
    titles = []
    for persona in personas or []:
        if not isinstance(persona, dict):
            continue
        if persona.get("title"):
            titles.append(persona["title"])
        if persona.get("role"):
            titles.append(persona["role"])
    return titles or list(catalogue.default_titles)


# ─── COMPANY DISCOVERY ────────────────────────────────────────

def search_companies(search_params: dict, limit: int, client: ApolloClient = None,
                     catalogue: DemoCatalogue = DEMO_CATALOGUE) -> list:
    client = client or ApolloClient()
    if not client.configured:
        logger.warning("Apollo API key not configured, returning mock companies")
        return demo_data.mock_companies(limit, catalogue)
    try:
        orgs = client.search_companies(search_params, limit)
    except UpstreamProviderError as e:
        logger.warning("Apollo company search failed (%s %s), returning mock companies",
                       e.message, e.details or "", extra={"provider": "apollo"})
        return demo_data.mock_companies(limit, catalogue)
    return [format_company(org) for org in orgs]


def discover_companies(icp_data: dict, batch_size: int = 10) -> dict:
    search_params = extract_search_params(icp_data)
    companies = search_companies(search_params, batch_size)
    logger.info("Found %d companies", len(companies), extra={"function_name": "company-discovery"})
    return {
        "success": True,
        "companies": companies,
        "searchParams": search_params,
        "totalFound": len(companies),
    }


# ─── CONTACT DISCOVERY ────────────────────────────────────────

def find_contacts_for_company(company: dict, titles: list, client: ApolloClient = None,
                              catalogue: DemoCatalogue = DEMO_CATALOGUE) -> list:
    client = client or ApolloClient()
    mock_titles = titles[:MOCK_TITLES_PER_COMPANY]
    if not client.configured:
        logger.warning("Apollo API key not configured, returning mock contacts")
        return demo_data.mock_contacts(company, mock_titles, catalogue)
    try:
        people = client.search_people(company.get("domain"), titles, CONTACTS_PER_COMPANY)
    except UpstreamProviderError as e:
        logger.warning("Apollo people search failed for %s (%s), returning mock contacts",
                       company.get("domain"), e.message, extra={"provider": "apollo"})
        return demo_data.mock_contacts(company, mock_titles, catalogue)
    return [format_contact(person, company) for person in people]


def discover_contacts(companies: list, target_personas: list = None) -> dict:
    titles = extract_target_titles(target_personas)
    client = ApolloClient()
    contacts = []
    for company in companies:
        contacts.extend(find_contacts_for_company(company, titles, client))
    logger.info("Found %d contacts across %d companies", len(contacts), len(companies),
                extra={"function_name": "contact-discovery"})
    return {
        "success": True,
        "contacts": contacts,
        "totalFound": len(contacts),
        "companiesProcessed": len(companies),
    }
