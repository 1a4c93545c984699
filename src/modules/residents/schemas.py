"""Schemas for Residents module."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.modules.areas.schemas import validate_pincode


def normalize_phone(v: str | None) -> str | None:
    """Strip spaces and dashes; require at least 10 digits."""
    if v is None:
        return v
    normalized = v.strip().replace(" ", "").replace("-", "")
    if not normalized.isdigit() or len(normalized) < 10:
        raise ValueError("Phone number must be at least 10 digits")
    return normalized


class ResidentCreate(BaseModel):
    """Schema for creating a resident (admin)."""

    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6)
    country_code: str = Field(..., min_length=1, max_length=8)
    phone: str

    house_no: str | None = Field(None, max_length=50)
    street: str | None = Field(None, max_length=200)
    area_id: int
    city: str | None = Field(None, max_length=100)
    pincode: str | None = None
    landmark: str | None = Field(None, max_length=200)

    water_quantity: int | None = Field(None, ge=0)
    notes: str | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return normalize_phone(v)

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v: str | None) -> str | None:
        return validate_pincode(v)


class ResidentRegister(ResidentCreate):
    """Self-registration: a resident signs up with their own login."""

    email: EmailStr
    password: str = Field(..., min_length=6)


class ResidentProfileUpdate(BaseModel):
    """Fields a resident may change on their own profile."""

    name: str | None = Field(None, min_length=1, max_length=200)
    country_code: str | None = Field(None, min_length=1, max_length=8)
    phone: str | None = None

    house_no: str | None = Field(None, max_length=50)
    street: str | None = Field(None, max_length=200)
    area_id: int | None = None
    city: str | None = Field(None, max_length=100)
    pincode: str | None = None
    landmark: str | None = Field(None, max_length=200)

    water_quantity: int | None = Field(None, ge=0)
    notes: str | None = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return normalize_phone(v)

    @field_validator("pincode")
    @classmethod
    def check_pincode(cls, v: str | None) -> str | None:
        return validate_pincode(v)


class ResidentUpdate(ResidentProfileUpdate):
    """Schema for updating a resident (admin)."""

    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6)
    is_enabled: bool | None = None
    is_verified: bool | None = None


class ResidentResponse(BaseModel):
    """Schema for resident response."""

    id: int
    name: str | None
    email: str | None
    country_code: str
    phone: str
    house_no: str | None
    street: str | None
    area_id: int | None
    area_name: str | None = None
    city: str | None
    pincode: str | None
    landmark: str | None
    water_quantity: int | None
    notes: str | None
    is_enabled: bool
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
