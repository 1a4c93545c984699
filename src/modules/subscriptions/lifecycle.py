"""
State transitions of a slot subscription.

Pure functions over a subscription (and its slot, where the rule needs
it). They mutate the object in place and raise on refused transitions;
loading, auditing and committing are left to SubscriptionService.
"""

from datetime import datetime
from typing import Any

from src.core.database.base import as_utc
from src.core.exceptions import (
    CancellationWindowClosedError,
    CapacityExceededError,
    ValidationError,
)
from src.modules.slots.capacity import SlotCapacity, is_counted
from src.modules.slots.models import ExtraRequestStatus, SubscriptionStatus

EXTRA_DECISIONS = (ExtraRequestStatus.APPROVED, ExtraRequestStatus.REJECTED)
DELIVERY_OUTCOMES = (SubscriptionStatus.DELIVERED, SubscriptionStatus.MISSED)


def can_cancel(slot: Any, now: datetime) -> bool:
    """Cancellation is open up to and including the booking cutoff."""
    return as_utc(now) <= as_utc(slot.booking_cutoff_time)


def cancel(subscription: Any, slot: Any, now: datetime) -> None:
    """
    Cancel a subscription.

    Raises:
        CancellationWindowClosedError: If ``now`` is past the slot's
            booking cutoff. The subscription is left unchanged.
    """
    if not can_cancel(slot, now):
        raise CancellationWindowClosedError(slot.id, as_utc(slot.booking_cutoff_time))
    subscription.status = SubscriptionStatus.CANCELLED.value


def request_extra(subscription: Any, quantity: int) -> None:
    """Ask for extra liters. Replaces any earlier request, whatever its state."""
    if quantity is None or quantity <= 0:
        raise ValidationError("Extra quantity must be greater than 0", field="quantity")
    subscription.extra_quantity = quantity
    subscription.extra_request_status = ExtraRequestStatus.PENDING.value


def decide_extra_request(subscription: Any, decision: ExtraRequestStatus | str) -> None:
    """Approve or reject the extra request. The requested quantity is kept as is."""
    if decision not in EXTRA_DECISIONS:
        raise ValidationError(
            "Decision must be Approved or Rejected", field="extra_request_status"
        )
    subscription.extra_request_status = ExtraRequestStatus(decision).value


def check_approval_fits(subscription: Any, capacity: SlotCapacity) -> None:
    """
    Refuse an approval that would push the slot past its capacity.

    Only the liters that approval adds are checked: nothing for a cancelled
    or already approved subscription.
    """
    if not is_counted(subscription):
        return
    if subscription.extra_request_status == ExtraRequestStatus.APPROVED.value:
        return
    requested = subscription.extra_quantity or 0
    if capacity.occupied_liters + requested > capacity.capacity:
        raise CapacityExceededError(
            slot_id=capacity.slot_id,
            requested=requested,
            available=capacity.available_liters,
        )


def mark_delivery(
    subscription: Any, outcome: SubscriptionStatus | str, now: datetime
) -> None:
    """Record the delivery outcome. Delivered stamps ``delivered_at``; a repeat overwrites it."""
    if outcome not in DELIVERY_OUTCOMES:
        raise ValidationError("Status must be Delivered or Missed", field="status")
    subscription.status = SubscriptionStatus(outcome).value
    if subscription.status == SubscriptionStatus.DELIVERED.value:
        subscription.delivered_at = now
