"""Auth API — registration, login, logout.

Learn: Routes for account authentication:
- POST /auth/register → create an account → session token
- POST /auth/login → email/password → session token
- POST /auth/logout → expire the session cookie

Register and login deliver the *same* token twice: in the JSON body
(for Authorization: Bearer) and as an HttpOnly `session_token` cookie
(for browsers). Either one authenticates; neither is authoritative.
"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from svipp.auth.dependencies import get_password_hasher, get_settings, get_token_issuer
from svipp.auth.jwt import IssuedToken, TokenIssuer
from svipp.auth.password import PasswordHasher
from svipp.config import Settings
from svipp.db.engine import get_db
from svipp.db.models import User
from svipp.schemas.account import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UserRead,
)
from svipp.services.account_service import AccountService

router = APIRouter(prefix="/auth")


def _svc(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AccountService:
    return AccountService(db, hasher)


def set_session_cookie(
    response: Response, issued: IssuedToken, settings: Settings
) -> None:
    """Attach the session token as an HttpOnly cookie.

    Learn: Secure is only off in local development (plain http).
    The cookie expires at the same instant as the token.
    """
    response.set_cookie(
        key=settings.session_cookie_name,
        value=issued.token,
        expires=issued.expires_at,
        path="/",
        httponly=True,
        secure=not settings.is_development,
        samesite="strict",
    )


def _auth_response(user: User, issued: IssuedToken) -> AuthResponse:
    return AuthResponse(
        token=issued.token,
        expires_at=issued.expires_at,
        user=UserRead.model_validate(user),
    )


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    svc: AccountService = Depends(_svc),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """Create a new account and sign it in."""
    user = await svc.register(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone_number=body.phone_number,
        password=body.password,
    )
    issued = issuer.issue(user)
    set_session_cookie(response, issued, settings)
    return _auth_response(user, issued)


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    svc: AccountService = Depends(_svc),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """Login with email and password → session token."""
    user = await svc.authenticate(body.email, body.password)
    issued = issuer.issue(user)
    set_session_cookie(response, issued, settings)
    return _auth_response(user, issued)


# ─── Logout ──────────────────────────────────────────────


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response, settings: Settings = Depends(get_settings)):
    """Expire the session cookie.

    Learn: This only removes the browser's copy. The token itself stays
    valid until it expires — tokens are stateless and not revocable.
    """
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=not settings.is_development,
        samesite="strict",
    )
    return MessageResponse(message="Logged out")
