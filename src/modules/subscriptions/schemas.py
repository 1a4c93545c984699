"""Schemas for Subscriptions module."""

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from src.modules.slots.models import ExtraRequestStatus, SubscriptionStatus
from src.modules.slots.schemas import SlotResponse


class ExtraQuantityRequest(BaseModel):
    """Resident asks for extra liters on a subscription."""

    quantity: int = Field(..., gt=0, description="Extra liters")


class ExtraDecisionRequest(BaseModel):
    """Admin decision on a pending extra request."""

    extra_request_status: ExtraRequestStatus

    @field_validator("extra_request_status")
    @classmethod
    def check_decision(cls, v: ExtraRequestStatus) -> ExtraRequestStatus:
        if v not in (ExtraRequestStatus.APPROVED, ExtraRequestStatus.REJECTED):
            raise ValueError("Decision must be Approved or Rejected")
        return v


class DeliveryStatusRequest(BaseModel):
    """Admin records a delivery outcome."""

    status: SubscriptionStatus

    @field_validator("status")
    @classmethod
    def check_outcome(cls, v: SubscriptionStatus) -> SubscriptionStatus:
        if v not in (SubscriptionStatus.DELIVERED, SubscriptionStatus.MISSED):
            raise ValueError("Status must be Delivered or Missed")
        return v


class SubscriptionResponse(BaseModel):
    """Schema for subscription response."""

    id: int
    customer_id: int
    slot_id: int
    quantity: int
    status: str
    delivered_at: dt.datetime | None
    extra_quantity: int
    extra_request_status: str
    liters: int = 0
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class CurrentSlotResponse(BaseModel):
    """A resident's next upcoming slot and their subscription to it."""

    slot: SlotResponse
    subscription: SubscriptionResponse


class HistoryItem(BaseModel):
    """One row of a resident's delivery history."""

    id: int
    date: dt.date | None
    area: str
    liters: str
    status: str


class PendingExtraRequestItem(BaseModel):
    """Pending extra request with customer, slot and area details."""

    id: int
    customer_id: int
    customer_name: str | None
    customer_phone: str
    slot_id: int
    slot_date: dt.date
    start_time: dt.datetime
    end_time: dt.datetime
    area_name: str | None
    quantity: int
    extra_quantity: int
    extra_request_status: str
    created_at: dt.datetime
