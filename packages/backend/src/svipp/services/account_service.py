"""Account service — registration, login, profile and password changes.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database.
This makes the code testable (test services without HTTP)
and keeps FastAPI out of the security logic.

Uniqueness (email case-insensitively, phone exactly) is checked up
front for a friendly error, but the database unique indexes are the
real guard: two concurrent registrations can both pass the pre-check,
and the loser's IntegrityError at commit becomes a ConflictError.

bcrypt is CPU-bound, so hashing and verifying run in the threadpool.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from svipp.auth.password import PasswordHasher
from svipp.db.models import User
from svipp.errors import (
    ConflictError,
    IncorrectPasswordError,
    InvalidCredentialsError,
    NotFoundError,
)

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    """Case-folded form used for uniqueness and lookups (users.email_normalized)."""
    return email.strip().casefold()


class AccountService:
    """Business logic for accounts."""

    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    # ─── Lookups ────────────────────────────────────────

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def find_by_email(self, email: str) -> Optional[User]:
        q = select(User).where(User.email_normalized == normalize_email(email))
        result = await self.db.execute(q)
        return result.scalars().first()

    async def find_by_phone(self, phone_number: str) -> Optional[User]:
        q = select(User).where(User.phone_number == phone_number.strip())
        result = await self.db.execute(q)
        return result.scalars().first()

    # ─── Registration ───────────────────────────────────

    async def register(
        self,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
        password: str,
    ) -> User:
        """Create an account. Raises ConflictError on duplicate email/phone."""
        if await self.find_by_email(email):
            logger.warning("auth.register_conflict", field="email", email=normalize_email(email))
            raise ConflictError("email")
        if await self.find_by_phone(phone_number):
            logger.warning("auth.register_conflict", field="phone_number")
            raise ConflictError("phone_number")

        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email.strip(),  # original casing preserved
            email_normalized=normalize_email(email),
            phone_number=phone_number.strip(),
            password_hash=await run_in_threadpool(self.hasher.hash, password),
        )
        self.db.add(user)
        await self._commit_or_conflict()

        logger.info("auth.registered", user_id=str(user.id))
        return user

    # ─── Login ──────────────────────────────────────────

    async def authenticate(self, email: str, password: str) -> User:
        """Return the account for valid credentials.

        Learn: Unknown email and wrong password raise the same
        InvalidCredentialsError, and both pay for one bcrypt verify,
        so neither the response nor its timing tells them apart.
        """
        user = await self.find_by_email(email)
        if user is None:
            await run_in_threadpool(self.hasher.verify_dummy, password)
            logger.warning("auth.login_failed", email=normalize_email(email))
            raise InvalidCredentialsError()

        if not await run_in_threadpool(self.hasher.verify, password, user.password_hash):
            logger.warning("auth.login_failed", email=normalize_email(email))
            raise InvalidCredentialsError()

        # Upgrade hashes made with a lower work factor on successful login
        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = await run_in_threadpool(self.hasher.hash, password)
            await self.db.commit()
            logger.info("auth.password_rehashed", user_id=str(user.id))

        logger.info("auth.login", user_id=str(user.id))
        return user

    # ─── Profile ────────────────────────────────────────

    async def update_profile(
        self,
        user_id: uuid.UUID,
        first_name: str,
        last_name: str,
        email: str,
        phone_number: str,
    ) -> User:
        user = await self.get_user(user_id)

        other = await self.find_by_email(email)
        if other and other.id != user.id:
            logger.warning("users.update_conflict", user_id=str(user_id), field="email")
            raise ConflictError("email")
        other = await self.find_by_phone(phone_number)
        if other and other.id != user.id:
            logger.warning("users.update_conflict", user_id=str(user_id), field="phone_number")
            raise ConflictError("phone_number")

        user.first_name = first_name.strip()
        user.last_name = last_name.strip()
        user.email = email.strip()
        user.email_normalized = normalize_email(email)
        user.phone_number = phone_number.strip()
        user.updated_at = datetime.now(timezone.utc)
        await self._commit_or_conflict()

        logger.info("users.profile_updated", user_id=str(user_id))
        return user

    async def change_password(
        self, user_id: uuid.UUID, current_password: str, new_password: str
    ) -> User:
        """Replace the password after re-verifying the current one.

        Learn: Tokens issued before the change stay valid until they
        expire — there is no revocation list (tokens are stateless).
        """
        user = await self.get_user(user_id)

        if not await run_in_threadpool(
            self.hasher.verify, current_password, user.password_hash
        ):
            logger.warning("users.password_change_rejected", user_id=str(user_id))
            raise IncorrectPasswordError()

        user.password_hash = await run_in_threadpool(self.hasher.hash, new_password)
        user.updated_at = datetime.now(timezone.utc)
        await self.db.commit()

        logger.info("users.password_changed", user_id=str(user_id))
        return user

    # ─── Helpers ────────────────────────────────────────

    async def _commit_or_conflict(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            field = "phone_number" if "phone" in str(e.orig).lower() else "email"
            logger.warning("accounts.unique_violation", field=field)
            raise ConflictError(field)
