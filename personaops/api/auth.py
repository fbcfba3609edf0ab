"""
Request authentication and body parsing dependencies.

Bearer tokens are verified with PyJWT (HS256 signature, exp, aud) against
SUPABASE_JWT_SECRET before the sub claim is trusted. Handlers declare
require_user before body_of(...) so a request is authenticated before its
body is read.
"""

import logging
from typing import Optional

import jwt
from fastapi import Header, Request
from pydantic import BaseModel, ValidationError as PydanticValidationError

from personaops import config
from personaops.errors import AuthError, ValidationError

logger = logging.getLogger("personaops.api.auth")


def verify_token(token: str) -> dict:
    """Verify a bearer token and return its claims.

    Raises:
        AuthError: no secret configured, bad signature, expired, wrong
            audience, or no sub claim.
    """
    secret = config.SUPABASE_JWT_SECRET
    if not secret:
        logger.warning("Rejecting token: SUPABASE_JWT_SECRET is not configured")
        raise AuthError()
    audience = config.SUPABASE_JWT_AUDIENCE or None
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=audience,
            options={"require": ["exp", "sub"], "verify_aud": audience is not None},
        )
    except jwt.PyJWTError as e:
        logger.info("Token rejected: %s", e)
        raise AuthError() from e
    if not claims.get("sub"):
        raise AuthError()
    return claims


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError()
    return token.strip()


def require_claims(authorization: Optional[str] = Header(None)) -> dict:
    """FastAPI dependency: verified claim set of the caller."""
    return verify_token(_bearer_token(authorization))


def require_user(authorization: Optional[str] = Header(None)) -> str:
    """FastAPI dependency: verified subject (user id) of the caller."""
    return require_claims(authorization)["sub"]


def body_of(model: type):
    """Build a dependency that parses the JSON body into `model`.

    Non-JSON bodies, non-object bodies and schema violations all raise
    ValidationError (400).
    """

    async def parse_body(request: Request) -> BaseModel:
        try:
            raw = await request.json()
        except ValueError:
            raise ValidationError()
        if not isinstance(raw, dict):
            raise ValidationError()
        try:
            return model.model_validate(raw)
        except PydanticValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or "body"
            raise ValidationError(details=f"{field}: {first.get('msg')}")

    return parse_body
