"""Slot and SlotSubscription models."""

import datetime as dt
from enum import StrEnum

from sqlalchemy import BigInteger, Boolean, Date, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel
from src.modules.areas.models import Area
from src.modules.residents.models import Resident


class SlotStatus(StrEnum):
    """Slot status.

    Only CLOSED is meaningful when stored; AVAILABLE/FULL are derived from
    live subscriptions on every read.
    """

    AVAILABLE = "Available"
    FULL = "Full"
    CLOSED = "Closed"


class SubscriptionStatus(StrEnum):
    """Delivery status of a subscription."""

    BOOKED = "Booked"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    MISSED = "Missed"


class ExtraRequestStatus(StrEnum):
    """Status of a resident's extra-quantity request."""

    NONE = "None"
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class Slot(BaseModel):
    """
    Delivery window for one area with a capacity in liters.

    Creating a slot subscribes every enabled resident of the area.
    """

    __tablename__ = "slots"

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    area_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("areas.id"), nullable=False)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False)  # liters
    # Residents may cancel until this instant
    booking_cutoff_time: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SlotStatus.AVAILABLE.value
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    area: Mapped["Area"] = relationship("Area")
    subscriptions: Mapped[list["SlotSubscription"]] = relationship(
        "SlotSubscription", back_populates="slot"
    )

    __table_args__ = (Index("ix_slots_area_id_date", "area_id", "date"),)


class SlotSubscription(BaseModel):
    """
    A resident's claim on a slot, in liters.

    Occupancy counts quantity (plus extra_quantity once approved) for every
    subscription that is not cancelled.
    """

    __tablename__ = "slot_subscriptions"

    customer_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("residents.id"), nullable=False)
    slot_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("slots.id"), nullable=False)

    # Auto-enrollment writes 0 for residents without a configured quantity
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionStatus.BOOKED.value, index=True
    )
    delivered_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    extra_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    extra_request_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExtraRequestStatus.NONE.value, index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    slot: Mapped["Slot"] = relationship("Slot", back_populates="subscriptions")
    customer: Mapped["Resident"] = relationship("Resident")

    __table_args__ = (
        Index("ix_slot_subscriptions_customer_id_slot_id", "customer_id", "slot_id"),
    )
