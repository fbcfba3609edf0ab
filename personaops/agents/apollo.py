"""
PersonaOps - Apollo Client
Company and people search against the Apollo lead-data API, plus the field
mapping from Apollo records to the shapes the UI renders.
"""

import logging

import httpx

from personaops import config
from personaops.agents.http_client import new_client
from personaops.errors import UpstreamProviderError

logger = logging.getLogger("personaops.agents.apollo")


class ApolloClient:
    """Thin Apollo HTTP client. Each search is a single POST; failures raise."""

    def __init__(self, api_key: str = None, base_url: str = None, timeout: float = None):
        self.api_key = api_key if api_key is not None else config.APOLLO_API_KEY
        self.base_url = (base_url or config.APOLLO_BASE_URL).rstrip("/")
        self.timeout = timeout or config.PROVIDER_TIMEOUT

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _post(self, path: str, payload: dict) -> dict:
        if not self.api_key:
            raise UpstreamProviderError("Apollo API key not configured", provider="apollo")
        headers = {"Content-Type": "application/json", "X-Api-Key": self.api_key}
        try:
            with new_client(self.timeout) as client:
                resp = client.post(f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamProviderError("Apollo request failed", details=str(e), provider="apollo") from e

        if resp.status_code >= 400:
            raise UpstreamProviderError(
                "Apollo API request failed", details=resp.text[:200],
                provider="apollo", status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamProviderError("Apollo returned non-JSON", details=str(e), provider="apollo") from e
        if not isinstance(data, dict):
            raise UpstreamProviderError("Apollo returned a malformed payload", provider="apollo")
        return data

    def search_companies(self, params: dict, limit: int) -> list:
        """POST /mixed_companies/search. Returns raw organization records."""
        data = self._post("/mixed_companies/search", {
            "q_organization_industries": params.get("industries") or [],
            "q_organization_num_employees": params.get("employeeRanges") or [],
            "q_organization_locations": params.get("locations") or [],
            "page": 1,
            "per_page": limit,
        })
        return data.get("organizations") or []

    def search_people(self, domain: str, titles: list, per_page: int = 5) -> list:
        """POST /mixed_people/search for one company domain. Returns raw person records."""
        data = self._post("/mixed_people/search", {
            "q_organization_domains": [domain],
            "q_person_titles": titles,
            "page": 1,
            "per_page": per_page,
        })
        return data.get("people") or []


# ─── RECORD MAPPING ───────────────────────────────────────────

def _location(record: dict):
    if record.get("city") and record.get("state"):
        return f"{record['city']}, {record['state']}"
    return record.get("country")


def format_company(org: dict) -> dict:
    return {
        "name": org.get("name"),
        "domain": org.get("website_url"),
        "industry": org.get("industry"),
        "employees": org.get("estimated_num_employees"),
        "location": _location(org),
        "description": org.get("short_description"),
        "linkedinUrl": org.get("linkedin_url"),
        "founded": org.get("founded_year"),
        "revenue": org.get("estimated_annual_revenue"),
    }


def format_contact(person: dict, company: dict) -> dict:
    return {
        "firstName": person.get("first_name"),
        "lastName": person.get("last_name"),
        "email": person.get("email"),
        "title": person.get("title"),
        "companyName": company.get("name"),
        "companyDomain": company.get("domain"),
        "companyIndustry": company.get("industry"),
        "linkedinUrl": person.get("linkedin_url"),
        "location": _location(person),
        "verified": bool(person.get("email")),
        "apolloId": person.get("id"),
    }
