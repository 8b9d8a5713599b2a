"""Users API — the authenticated account's own profile.

Learn: All routes here act on "me" — the account id comes from the
token (via get_current_user), never from the URL, so there is no way
to address someone else's profile.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from svipp.auth.dependencies import CurrentIdentity, get_current_user, get_password_hasher
from svipp.auth.password import PasswordHasher
from svipp.db.engine import get_db
from svipp.schemas.account import ChangePasswordRequest, UpdateUserRequest, UserRead
from svipp.services.account_service import AccountService

router = APIRouter(prefix="/users")


def _svc(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> AccountService:
    return AccountService(db, hasher)


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AccountService = Depends(_svc),
):
    """Get the current account's profile."""
    return await svc.get_user(identity.user_id)


@router.put("/me", response_model=UserRead)
async def update_me(
    body: UpdateUserRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AccountService = Depends(_svc),
):
    """Update name, email and phone. 409 if email/phone belong to someone else."""
    return await svc.update_profile(
        identity.user_id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone_number=body.phone_number,
    )


@router.put("/me/password")
async def change_password(
    body: ChangePasswordRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AccountService = Depends(_svc),
):
    """Change the password. Requires the current password.

    Learn: Already-issued tokens keep working until they expire.
    """
    await svc.change_password(
        identity.user_id, body.current_password, body.new_password
    )
    return {
        "message": "Password changed successfully",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
