"""Owned-resource API — driver and customer mutations.

Learn: Each route here is a mutation on a resource that may belong to
an account. The route only does HTTP work: it resolves the caller
(get_current_user) and hands the subject id to ResourceService, which
runs the ownership guard before writing. A 403 never says who the
real owner is.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from svipp.auth.dependencies import CurrentIdentity, get_current_user
from svipp.db.engine import get_db
from svipp.schemas.resource import (
    CustomerLocationRead,
    DriverLocationRead,
    DriverRead,
    UpdateAvailabilityRequest,
    UpdateLocationRequest,
)
from svipp.services.resource_service import ResourceService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> ResourceService:
    return ResourceService(db)


# ─── Locations ──────────────────────────────────────────

@router.put("/locations/drivers/{driver_id}", response_model=DriverLocationRead)
async def update_driver_location(
    driver_id: int,
    body: UpdateLocationRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResourceService = Depends(_svc),
):
    """Update a driver's last known position."""
    driver = await svc.update_driver_location(
        identity.user_id, driver_id, body.latitude, body.longitude
    )
    return DriverLocationRead(
        driver_id=driver.id,
        current_latitude=driver.current_latitude,
        current_longitude=driver.current_longitude,
        last_location_updated_at=driver.last_location_updated_at,
    )


@router.put("/locations/customers/{customer_id}", response_model=CustomerLocationRead)
async def update_customer_location(
    customer_id: int,
    body: UpdateLocationRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResourceService = Depends(_svc),
):
    """Update a customer's last known position."""
    customer = await svc.update_customer_location(
        identity.user_id, customer_id, body.latitude, body.longitude
    )
    return CustomerLocationRead(
        customer_id=customer.id,
        current_latitude=customer.current_latitude,
        current_longitude=customer.current_longitude,
        last_location_updated_at=customer.last_location_updated_at,
    )


# ─── Drivers ────────────────────────────────────────────

@router.put("/drivers/{driver_id}/availability", response_model=DriverRead)
async def update_driver_availability(
    driver_id: int,
    body: UpdateAvailabilityRequest,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ResourceService = Depends(_svc),
):
    """Set a driver to available, busy or offline."""
    return await svc.update_driver_availability(
        identity.user_id, driver_id, body.availability_status
    )
