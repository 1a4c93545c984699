"""Resident model."""

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel
from src.modules.areas.models import Area


class Resident(BaseModel):
    """
    Customer receiving water deliveries.

    The address embeds an area reference; every enabled, non-deleted
    resident of an area is subscribed to each new slot of that area
    at their default water_quantity.
    """

    __tablename__ = "residents"

    name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Login credentials (optional: residents created by admin may never log in)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True, index=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    country_code: Mapped[str] = mapped_column(String(8), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    # Address
    house_no: Mapped[str | None] = mapped_column(String(50), nullable=True)
    street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    area_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("areas.id"), nullable=True, index=True
    )
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pincode: Mapped[str | None] = mapped_column(String(6), nullable=True)
    landmark: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Default liters per delivery
    water_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    token_version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    area: Mapped["Area | None"] = relationship("Area")

    __table_args__ = (
        UniqueConstraint("country_code", "phone", name="uq_resident_country_code_phone"),
    )

    @property
    def can_login(self) -> bool:
        return self.password_hash is not None

    @property
    def is_active(self) -> bool:
        return self.is_enabled and not self.is_deleted
