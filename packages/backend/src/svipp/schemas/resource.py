"""Pydantic schemas for owned resources (drivers, customers)."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UpdateLocationRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class UpdateAvailabilityRequest(BaseModel):
    availability_status: str = Field(..., pattern=r"^(available|busy|offline)$")


class DriverLocationRead(BaseModel):
    driver_id: int
    current_latitude: Optional[float]
    current_longitude: Optional[float]
    last_location_updated_at: Optional[datetime]


class CustomerLocationRead(BaseModel):
    customer_id: int
    current_latitude: Optional[float]
    current_longitude: Optional[float]
    last_location_updated_at: Optional[datetime]


class DriverRead(BaseModel):
    id: int
    name: str
    availability_status: str
    current_latitude: Optional[float] = None
    current_longitude: Optional[float] = None
    last_location_updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
