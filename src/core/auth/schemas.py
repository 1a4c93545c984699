from datetime import datetime

from pydantic import EmailStr, Field

from src.modules.residents.schemas import ResidentResponse
from src.shared.schemas import BaseSchema


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: EmailStr
    password: str


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseSchema):
    """Refresh token request schema."""

    refresh_token: str


class AdminResponse(BaseSchema):
    """Admin response schema."""

    id: int
    email: str
    name: str
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime


class AdminUpdate(BaseSchema):
    """Admin self-profile update."""

    name: str | None = Field(None, max_length=200)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6)


class AdminLoginResponse(BaseSchema):
    """Login response with admin and tokens."""

    admin: AdminResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class ResidentLoginResponse(BaseSchema):
    """Login response with resident and tokens."""

    resident: ResidentResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
