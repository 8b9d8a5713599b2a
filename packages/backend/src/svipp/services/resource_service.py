"""Owned-resource service — driver and customer mutations.

Learn: Every method that changes a driver or customer takes the
caller's resolved subject id and runs it through ensure_owner() before
writing anything. New mutations must follow the same shape:

    row = await self._get("driver", driver_id)
    ensure_owner(subject_id, row.user_id, resource="driver", resource_id=row.id)
    ... mutate ...

The lookup happens first, so an unknown id is a 404 for everyone.
"""

import uuid
from datetime import datetime, timezone
from typing import Union

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from svipp.auth.ownership import ensure_owner
from svipp.db.models import Customer, Driver, User
from svipp.errors import ConflictError, NotFoundError
from svipp.services.account_service import normalize_email

logger = structlog.get_logger()

RESOURCE_MODELS = {"driver": Driver, "customer": Customer}


class ResourceService:
    """Business logic for drivers and customers."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Drivers ────────────────────────────────────────

    async def update_driver_location(
        self,
        subject_id: uuid.UUID,
        driver_id: int,
        latitude: float,
        longitude: float,
    ) -> Driver:
        driver = await self._get("driver", driver_id)
        ensure_owner(subject_id, driver.user_id, resource="driver", resource_id=driver_id)

        driver.current_latitude = latitude
        driver.current_longitude = longitude
        driver.last_location_updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        return driver

    async def update_driver_availability(
        self, subject_id: uuid.UUID, driver_id: int, availability_status: str
    ) -> Driver:
        driver = await self._get("driver", driver_id)
        ensure_owner(subject_id, driver.user_id, resource="driver", resource_id=driver_id)

        driver.availability_status = availability_status
        await self.db.commit()
        logger.info(
            "drivers.availability_changed",
            driver_id=driver_id,
            status=availability_status,
        )
        return driver

    # ─── Customers ──────────────────────────────────────

    async def update_customer_location(
        self,
        subject_id: uuid.UUID,
        customer_id: int,
        latitude: float,
        longitude: float,
    ) -> Customer:
        customer = await self._get("customer", customer_id)
        ensure_owner(
            subject_id, customer.user_id, resource="customer", resource_id=customer_id
        )

        customer.current_latitude = latitude
        customer.current_longitude = longitude
        customer.last_location_updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        return customer

    # ─── Ownership links (admin) ────────────────────────

    async def list_unlinked(self) -> dict[str, list[Union[Driver, Customer]]]:
        """Drivers and customers that nobody owns yet."""
        unlinked = {}
        for kind, model in RESOURCE_MODELS.items():
            result = await self.db.execute(
                select(model).where(model.user_id.is_(None)).order_by(model.id)
            )
            unlinked[kind] = list(result.scalars().all())
        return unlinked

    async def link_owner(self, kind: str, resource_id: int, email: str) -> uuid.UUID:
        """Attach an unlinked resource to the account with this email.

        Re-linking to the same account is a no-op; moving a resource
        from one account to another is refused.
        """
        row = await self._get(kind, resource_id)
        result = await self.db.execute(
            select(User).where(User.email_normalized == normalize_email(email))
        )
        user = result.scalars().first()
        if user is None:
            raise NotFoundError("User", email)

        if row.user_id is not None and row.user_id != user.id:
            raise ConflictError(
                "user_id", f"{kind} {resource_id} is already linked to another account"
            )

        row.user_id = user.id
        await self.db.commit()
        logger.info(
            "ownership.linked",
            resource=kind,
            resource_id=resource_id,
            user_id=str(user.id),
        )
        return user.id

    async def _get(self, kind: str, resource_id: int) -> Union[Driver, Customer]:
        model = RESOURCE_MODELS.get(kind)
        if model is None:
            raise ValueError(f"Unknown resource kind: {kind}")
        row = await self.db.get(model, resource_id)
        if not row:
            raise NotFoundError(kind.capitalize(), resource_id)
        return row
