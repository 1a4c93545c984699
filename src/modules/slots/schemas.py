"""Schemas for Slots module."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.database.base import as_utc
from src.modules.slots.models import SlotStatus


class SlotCreate(BaseModel):
    """Schema for creating a slot."""

    date: dt.date
    start_time: dt.datetime
    end_time: dt.datetime
    area_id: int
    capacity: int = Field(..., gt=0, description="Liters")
    booking_cutoff_time: dt.datetime

    @field_validator("start_time", "end_time", "booking_cutoff_time")
    @classmethod
    def to_utc(cls, v: dt.datetime) -> dt.datetime:
        return as_utc(v)

    @model_validator(mode="after")
    def check_window(self) -> "SlotCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotUpdate(BaseModel):
    """Schema for updating a slot. Changing the area does not enroll anyone."""

    date: dt.date | None = None
    start_time: dt.datetime | None = None
    end_time: dt.datetime | None = None
    area_id: int | None = None
    capacity: int | None = Field(None, gt=0)
    booking_cutoff_time: dt.datetime | None = None
    # Only Closed is stored meaningfully; Available reopens a closed slot
    status: SlotStatus | None = None
    is_active: bool | None = None

    @field_validator("start_time", "end_time", "booking_cutoff_time")
    @classmethod
    def to_utc(cls, v: dt.datetime | None) -> dt.datetime | None:
        return as_utc(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v: SlotStatus | None) -> SlotStatus | None:
        if v == SlotStatus.FULL:
            raise ValueError("Full is derived from bookings and cannot be set")
        return v


class SlotResponse(BaseModel):
    """Slot with live occupancy."""

    id: int
    date: dt.date
    start_time: dt.datetime
    end_time: dt.datetime
    area_id: int
    area_name: str | None = None
    capacity: int
    booking_cutoff_time: dt.datetime
    status: str
    is_active: bool
    occupied_liters: int
    booking_count: int
    available_liters: int
    progress_percentage: str
    created_at: dt.datetime
    updated_at: dt.datetime
