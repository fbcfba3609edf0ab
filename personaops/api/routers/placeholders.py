"""Unfinished API routes. Each answers 501 regardless of input.

Any other method on a placeholder path answers 404, as an unknown route does.
"""

from fastapi import APIRouter

from personaops.errors import NotFoundError, NotImplementedRoute

router = APIRouter(prefix="/api", tags=["placeholders"])

# (method, path, feature)
PLACEHOLDER_ROUTES = [
    ("POST", "/auth/register", "register"),
    ("POST", "/auth/login", "login"),
    ("POST", "/auth/verify-email", "verify email"),
    ("POST", "/icp/comprehensive", "comprehensive IBP generation"),
    ("POST", "/icp/generate", "ICP generation"),
    ("POST", "/email/generate/{lead_id}", "email generation"),
    ("POST", "/email/upload/{template_id}", "upload to Instantly"),
    ("POST", "/email/bulk-generate", "bulk email generation"),
    ("GET", "/email/{email_id}", "get email templates"),
    ("PUT", "/email/{email_id}", "update email template"),
    ("DELETE", "/email/{email_id}", "delete email template"),
    ("POST", "/enrich/{lead_id}", "enrich lead"),
    ("GET", "/enrich/{lead_id}", "get enrichment"),
    ("POST", "/leads/search", "lead search"),
    ("POST", "/sales-intelligence/generate", "sales intelligence report generation"),
    ("GET", "/sales-intelligence/report/{url:path}", "get sales intelligence report"),
    ("GET", "/sales-intelligence/top", "get top sales intelligence reports"),
    ("POST", "/sales-intelligence/apollo-matches", "update Apollo lead matches"),
    ("GET", "/sales-intelligence/analytics", "sales intelligence analytics"),
    ("POST", "/upload/instantly", "upload to Instantly"),
    ("GET", "/upload/status/{icp_id}", "get upload status"),
    ("POST", "/workflow/start", "start workflow"),
    ("GET", "/workflow/state", "get workflow state"),
]

ROUTABLE_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE"}


def _not_implemented(feature: str):
    def endpoint():
        raise NotImplementedRoute(f"Not implemented: {feature}")
    endpoint.__name__ = "not_implemented_" + feature.lower().replace(" ", "_")
    return endpoint


for _method, _path, _feature in PLACEHOLDER_ROUTES:
    router.add_api_route(_path, _not_implemented(_feature), methods=[_method],
                         include_in_schema=False)


def _not_found():
    raise NotFoundError("Not found")


# Registered after every placeholder so a method served by a sibling path still wins
_methods_by_path = {}
for _method, _path, _feature in PLACEHOLDER_ROUTES:
    _methods_by_path.setdefault(_path, set()).add(_method)

for _path, _methods in _methods_by_path.items():
    router.add_api_route(_path, _not_found, methods=sorted(ROUTABLE_METHODS - _methods),
                         include_in_schema=False)
