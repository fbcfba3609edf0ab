"""
Tests for the browser-facing /api routes: proxies, workspace store routes,
analytics, placeholders and the service endpoints.
"""

import json

import httpx
import pytest

from personaops import config
from personaops.agents.error_handler import get_errors
from personaops.db import models


# =============================================================================
# PROXY ROUTES
# =============================================================================

class TestProxy:

    @pytest.fixture(autouse=True)
    def edge_urls(self, monkeypatch):
        monkeypatch.setattr(config, "EDGE_FUNCTIONS_URL", "https://edge.test/functions/v1")
        monkeypatch.setattr(config, "EDGE_COMPANY_ANALYZE_URL", "")
        monkeypatch.setattr(config, "EDGE_GTM_URL", "")

    def test_forwards_body_and_headers(self, client, mock_transport, monkeypatch):
        monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "anon-key")
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["apikey"] = request.headers.get("apikey")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"success": True, "reportId": 7})

        mock_transport(handler)
        resp = client.post("/api/company-analyze", json={"url": "https://acme.com"},
                           headers={"Authorization": "Bearer abc"})
        assert resp.status_code == 201
        assert resp.json() == {"success": True, "reportId": 7}
        assert seen["url"] == "https://edge.test/functions/v1/company-analyze"
        assert seen["auth"] == "Bearer abc"
        assert seen["apikey"] == "anon-key"
        assert seen["body"] == {"url": "https://acme.com"}

    def test_relays_upstream_errors_verbatim(self, client, mock_transport):
        mock_transport(lambda request: httpx.Response(401, json={"error": "Unauthorized"}))
        resp = client.post("/api/gtm-generate", json={"websiteUrl": "https://acme.com"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_explicit_function_url(self, client, mock_transport, monkeypatch):
        monkeypatch.setattr(config, "EDGE_GTM_URL", "https://other.test/gtm")
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={})

        mock_transport(handler)
        client.post("/api/gtm-generate", json={})
        assert seen["url"] == "https://other.test/gtm"

    def test_transport_failure(self, client, mock_transport):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        mock_transport(handler)
        resp = client.post("/api/company-analyze", json={"url": "https://acme.com"})
        assert resp.status_code == 500
        data = resp.json()
        assert data["error"] == "Proxy to Supabase Edge Function failed"
        assert "connection refused" in data["details"]

    def test_get_not_allowed(self, client):
        assert client.get("/api/company-analyze").status_code == 405


# =============================================================================
# PLACEHOLDERS
# =============================================================================

class TestPlaceholders:

    @pytest.mark.parametrize("method,path,feature", [
        ("POST", "/api/auth/login", "login"),
        ("POST", "/api/icp/generate", "ICP generation"),
        ("GET", "/api/email/tmpl-1", "get email templates"),
        ("DELETE", "/api/email/tmpl-1", "delete email template"),
        ("GET", "/api/sales-intelligence/report/acme.com/about", "get sales intelligence report"),
        ("POST", "/api/workflow/start", "start workflow"),
    ])
    def test_not_implemented(self, client, method, path, feature):
        resp = client.request(method, path, json={"anything": True})
        assert resp.status_code == 501
        assert resp.json() == {"error": f"Not implemented: {feature}"}

    @pytest.mark.parametrize("method,path", [
        ("GET", "/api/auth/login"),
        ("GET", "/api/icp/generate"),
        ("POST", "/api/email/tmpl-1"),
        ("PATCH", "/api/workflow/state"),
    ])
    def test_wrong_method_is_not_found(self, client, method, path):
        resp = client.request(method, path)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}

    def test_sibling_path_method_still_served(self, client):
        resp = client.get("/api/email/bulk-generate")
        assert resp.status_code == 501
        assert resp.json() == {"error": "Not implemented: get email templates"}

    def test_unknown_sub_route(self, client):
        resp = client.post("/api/icp/unknown")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Not found"}


# =============================================================================
# WORKSPACE
# =============================================================================

class TestInvitations:

    def test_create_and_list(self, client, auth_headers):
        resp = client.post("/api/invitations", json={"email": "new@acme.com"}, headers=auth_headers)
        assert resp.status_code == 200
        invitation = resp.json()["invitation"]
        assert invitation["email"] == "new@acme.com"
        assert invitation["inviter_user_id"] == "user-1"

        listed = client.get("/api/invitations", headers=auth_headers).json()["invitations"]
        assert [i["email"] for i in listed] == ["new@acme.com"]

    def test_email_required(self, client, auth_headers):
        resp = client.post("/api/invitations", json={}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Email required"

    def test_requires_auth(self, client):
        assert client.post("/api/invitations", json={"email": "a@b.com"}).status_code == 401
        assert client.get("/api/invitations").status_code == 401

    def test_mail_failure_is_recorded_not_raised(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(config, "SMTP_HOST", "smtp.test")

        def refuse(*args, **kwargs):
            raise OSError("connection refused")

        monkeypatch.setattr("smtplib.SMTP", refuse)
        resp = client.post("/api/invitations", json={"email": "new@acme.com"}, headers=auth_headers)
        assert resp.status_code == 200
        errors = get_errors()
        assert errors[0]["phase"] == "invitation_email"
        assert errors[0]["error_type"] == "OSError"


class TestSavedReports:

    def test_list_newest_first_and_owned_only(self, client, auth_headers):
        first = models.create_saved_report("user-1", "Acme", "https://acme.com", {"score": 1})
        second = models.create_saved_report("user-1", "Globex", "https://globex.com", {"score": 2})
        models.create_saved_report("user-2", "Initech", "https://initech.com", {})

        resp = client.get("/api/company-analysis", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert [r["id"] for r in data["reports"]] == [second, first]
        assert data["reports"][0]["report_data"] == {"score": 2}

    def test_get_one(self, client, auth_headers):
        report_id = models.create_saved_report("user-1", "Acme", "https://acme.com", {"score": 1})
        resp = client.get(f"/api/company-analysis/{report_id}", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["report"]["company_name"] == "Acme"
        assert resp.json()["report"]["report_data"] == {"score": 1}

    @pytest.mark.parametrize("report_id", ["999", "not-a-number"])
    def test_unknown_report(self, client, auth_headers, report_id):
        resp = client.get(f"/api/company-analysis/{report_id}", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Report not found"}

    def test_other_users_report_is_hidden(self, client, auth_headers):
        report_id = models.create_saved_report("user-2", "Initech", "https://initech.com", {})
        assert client.get(f"/api/company-analysis/{report_id}", headers=auth_headers).status_code == 404

    def test_requires_auth(self, client):
        assert client.get("/api/company-analysis").status_code == 401
        assert client.get("/api/company-analysis/1").status_code == 401


class TestProfileAndTeam:

    def test_profile_created_on_first_load(self, client, auth_headers):
        profile = client.get("/api/profile", headers=auth_headers).json()["profile"]
        assert profile["id"] == "user-1"
        assert profile["email"] == "user1@example.com"

    def test_patch_profile(self, client, auth_headers):
        resp = client.patch("/api/profile", json={"first_name": "Ada", "role": "Founder"},
                            headers=auth_headers)
        assert resp.status_code == 200
        profile = resp.json()["profile"]
        assert profile["first_name"] == "Ada"
        assert profile["role"] == "Founder"
        assert client.get("/api/profile", headers=auth_headers).json()["profile"]["first_name"] == "Ada"

    def test_team(self, client, auth_headers):
        client.get("/api/profile", headers=auth_headers)
        team = client.get("/api/team", headers=auth_headers).json()["team"]
        assert [m["id"] for m in team] == ["user-1"]

    def test_team_requires_auth(self, client):
        assert client.get("/api/team").status_code == 401


# =============================================================================
# ANALYTICS
# =============================================================================

class TestAnalytics:

    @pytest.fixture
    def deals(self, test_db):
        models.create_crm_deal("user-1", {"properties": {"dealstage": "closedwon"}})
        models.create_crm_deal("user-1", {"properties": {"dealstage": "appointmentscheduled"}})
        models.create_crm_deal("user-1", {"properties": {}})
        models.create_crm_deal("someone-else", {"properties": {"dealstage": "closedwon"}})

    def test_success_rate(self, client, auth_headers, deals):
        data = client.get("/api/analytics/success-rate", headers=auth_headers).json()
        assert data["total"] == 3
        assert data["won"] == 1
        assert data["successRate"] == pytest.approx(1 / 3)

    def test_success_rate_without_deals(self, client, auth_headers):
        data = client.get("/api/analytics/success-rate", headers=auth_headers).json()
        assert data == {"total": 0, "won": 0, "successRate": 0}

    def test_lead_funnel(self, client, auth_headers, deals):
        funnel = client.get("/api/analytics/lead-funnel", headers=auth_headers).json()["funnel"]
        assert funnel == {"closedwon": 1, "appointmentscheduled": 1, "Unknown": 1}

    def test_lead_volume(self, client, auth_headers):
        models.create_analyzer_output("user-1", "https://a.com", "A", {})
        models.create_analyzer_output("user-1", "https://b.com", "B", {})
        data = client.get("/api/analytics/lead-volume", headers=auth_headers).json()["data"]
        assert sum(row["count"] for row in data) == 2

    def test_playbook_outcomes(self, client, auth_headers):
        assert client.get("/api/analytics/playbook-outcomes", headers=auth_headers).json() == {"data": []}

    def test_post_not_allowed(self, client, auth_headers):
        assert client.post("/api/analytics/lead-funnel", headers=auth_headers).status_code == 405


# =============================================================================
# SERVICE ENDPOINTS
# =============================================================================

def test_health(client):
    data = client.get("/health").json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"
    assert data["providers"] == {"openrouter": "demo", "apollo": "demo"}


def test_unknown_route(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Not found"}


def test_app_registers_every_router():
    """Importing the app pulls in every module, including the frozen demo catalogue."""
    from personaops.api.app import app
    paths = {route.path for route in app.routes}
    assert {"/functions/v1/company-analysis", "/api/company-analysis/{report_id}",
            "/api/company-analyze", "/api/icp/generate", "/health"} <= paths
