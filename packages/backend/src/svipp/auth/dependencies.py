"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

Two delivery channels, one token:
1. Authorization: Bearer <token> (API clients)
2. session_token cookie (browsers — HttpOnly, set at login/register)

The header wins when both are present. Every failure — missing,
malformed, expired, wrongly signed, no usable subject — produces the
same 401 so the response can't be used as an oracle. The real reason
is logged.
"""

import uuid
from typing import Optional

import structlog
from fastapi import Depends, HTTPException, Request

from svipp.auth.identity import resolve_subject_id
from svipp.auth.jwt import TokenError, TokenIssuer, TokenValidator
from svipp.auth.password import PasswordHasher
from svipp.config import Settings

logger = structlog.get_logger()

AUTH_FAILED_DETAIL = "Invalid or missing authentication token"


class CurrentIdentity:
    """Represents the authenticated account making the request.

    Learn: All downstream code uses `user_id` — for loading the
    account, and as the subject passed to the ownership guard.
    """

    def __init__(self, user_id: uuid.UUID, claims: Optional[dict] = None):
        self.user_id = user_id
        self.claims = claims or {}


# ─── Shared auth components (built once in create_app) ──────────


def get_settings(request: Request) -> Settings:
    """The Settings this app was built with (not the module default)."""
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_token_validator(request: Request) -> TokenValidator:
    return request.app.state.token_validator


# ─── Identity ──────────────────────────────────────────────────


def extract_token(request: Request) -> Optional[str]:
    """Pull the raw token from the Authorization header or the cookie."""
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return request.cookies.get(get_settings(request).session_cookie_name) or None


async def get_current_user_optional(
    request: Request,
    validator: TokenValidator = Depends(get_token_validator),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no token).

    Learn: A token that is present but invalid is still a 401 here;
    only a request with no token at all gets None.
    """
    token = extract_token(request)
    if token is None:
        return None
    return _authenticate_jwt(token, validator)


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        logger.info("auth.token_rejected", reason="missing")
        raise _unauthorized()
    return identity


def _authenticate_jwt(token: str, validator: TokenValidator) -> CurrentIdentity:
    """Validate the token, then resolve the subject id from its claims."""
    try:
        claims = validator.validate(token)
    except TokenError as e:
        logger.info("auth.token_rejected", reason=e.reason)
        raise _unauthorized()

    user_id = resolve_subject_id(claims)
    if user_id is None:
        logger.warning("auth.token_rejected", reason="no_subject", claim_keys=sorted(claims))
        raise _unauthorized()

    return CurrentIdentity(user_id=user_id, claims=claims)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=AUTH_FAILED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )
