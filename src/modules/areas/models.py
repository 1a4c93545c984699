"""Area model."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import BaseModel


class Area(BaseModel):
    """
    Geographic delivery zone.

    Residents live in an area and slots are scheduled per area.
    Areas are soft-deleted only; deleted areas still resolve in joins
    so historical slots keep their area name.
    """

    __tablename__ = "areas"

    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(6), nullable=False)  # 6 digits, not unique

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
