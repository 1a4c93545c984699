"""Schemas for Areas module."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

PINCODE_REGEX = re.compile(r"^\d{6}$")


def validate_pincode(v: str | None) -> str | None:
    """Pincode is exactly six digits."""
    if v is None:
        return v
    v = v.strip()
    if not PINCODE_REGEX.match(v):
        raise ValueError("Pincode must be a 6-digit number")
    return v


class AreaCreate(BaseModel):
    """Schema for creating an area."""

    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    city: str = Field(..., min_length=1, max_length=100)
    pincode: str

    @field_validator("name", "city", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v: str) -> str:
        return validate_pincode(v)


class AreaUpdate(BaseModel):
    """Schema for updating an area."""

    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    city: str | None = Field(None, min_length=1, max_length=100)
    pincode: str | None = None

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v: str | None) -> str | None:
        return validate_pincode(v)


class AreaResponse(BaseModel):
    """Schema for area response."""

    id: int
    name: str
    description: str
    city: str
    pincode: str
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AreaListItem(AreaResponse):
    """Area row in the admin list, with resident totals."""

    total_customer: int = 0
    total_liters: int = 0
