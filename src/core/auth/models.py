from datetime import datetime
from enum import StrEnum

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel


class PrincipalKind(StrEnum):
    """Who a bearer token was issued to. Each kind resolves against its own table."""

    ADMIN = "admin"
    RESIDENT = "resident"


class Admin(BaseModel):
    """
    Back-office operator.

    Admins manage areas, residents and slots, decide extra-quantity
    requests and record delivery outcomes.
    """

    __tablename__ = "admins"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Bumped on logout; tokens carrying an older version are refused
    token_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
