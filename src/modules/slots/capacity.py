"""
Slot occupancy and status computation.

Every read path (single slot, slot list, today's dashboard, a resident's
current slot) derives occupancy through these functions so the numbers
never drift between endpoints.

Functions take any object exposing the subscription attributes
(``status``, ``quantity``, ``extra_quantity``, ``extra_request_status``,
``customer_id``); ORM rows and plain dataclasses both work. Missing or
``None`` values count as zero.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from src.modules.slots.models import ExtraRequestStatus, SlotStatus, SubscriptionStatus


@dataclass(frozen=True)
class SlotCapacity:
    """Live occupancy snapshot of one slot."""

    slot_id: int | None
    capacity: int
    occupied_liters: int
    booking_count: int
    status: SlotStatus
    progress_percentage: str

    @property
    def available_liters(self) -> int:
        return max(self.capacity - self.occupied_liters, 0)


@dataclass(frozen=True)
class CapacitySummary:
    """Totals across several slots (e.g. all slots of one day)."""

    slots: list[SlotCapacity] = field(default_factory=list)
    total_occupied_liters: int = 0
    unique_customer_count: int = 0


def _as_int(value: Any) -> int:
    return int(value) if value else 0


def _status_value(value: Any) -> str | None:
    # Accept both enum members and raw strings from the store
    if value is None:
        return None
    return getattr(value, "value", value)


def is_counted(subscription: Any) -> bool:
    """A subscription occupies capacity unless it is cancelled."""
    return _status_value(getattr(subscription, "status", None)) != SubscriptionStatus.CANCELLED.value


def subscription_liters(subscription: Any) -> int:
    """Liters one subscription occupies: quantity plus approved extra, 0 when cancelled."""
    if not is_counted(subscription):
        return 0
    liters = _as_int(getattr(subscription, "quantity", 0))
    extra_status = _status_value(getattr(subscription, "extra_request_status", None))
    if extra_status == ExtraRequestStatus.APPROVED.value:
        liters += _as_int(getattr(subscription, "extra_quantity", 0))
    return liters


def occupied_liters(subscriptions: Iterable[Any]) -> int:
    return sum(subscription_liters(s) for s in subscriptions)


def booking_count(subscriptions: Iterable[Any]) -> int:
    """Number of non-cancelled subscriptions ("allotted")."""
    return sum(1 for s in subscriptions if is_counted(s))


def effective_status(stored_status: Any, capacity: int | None, occupied: int) -> SlotStatus:
    """
    Status shown to clients.

    A stored Closed always wins. Otherwise the slot is Full once the
    occupied liters reach the capacity, so a slot with no capacity is
    Full from the start.
    """
    if _status_value(stored_status) == SlotStatus.CLOSED.value:
        return SlotStatus.CLOSED
    if occupied >= _as_int(capacity):
        return SlotStatus.FULL
    return SlotStatus.AVAILABLE


def progress_percentage(occupied: int, capacity: int | None) -> str:
    """Floor of occupied/capacity as a whole percentage, as a string. "0" without capacity."""
    capacity = _as_int(capacity)
    if capacity <= 0:
        return "0"
    return str((occupied * 100) // capacity)


def unique_customer_count(subscriptions: Iterable[Any]) -> int:
    """Distinct customers holding a non-cancelled subscription, across any number of slots."""
    return len(
        {
            getattr(s, "customer_id", None)
            for s in subscriptions
            if is_counted(s) and getattr(s, "customer_id", None) is not None
        }
    )


def compute_slot_capacity(slot: Any, subscriptions: Iterable[Any] | None = None) -> SlotCapacity:
    """
    Build the occupancy snapshot of a slot.

    When ``subscriptions`` is omitted the slot's loaded ``subscriptions``
    relationship is used.
    """
    if subscriptions is None:
        subscriptions = getattr(slot, "subscriptions", None) or []
    subscriptions = list(subscriptions)

    capacity = _as_int(getattr(slot, "capacity", 0))
    occupied = occupied_liters(subscriptions)
    return SlotCapacity(
        slot_id=getattr(slot, "id", None),
        capacity=capacity,
        occupied_liters=occupied,
        booking_count=booking_count(subscriptions),
        status=effective_status(getattr(slot, "status", None), capacity, occupied),
        progress_percentage=progress_percentage(occupied, capacity),
    )


def summarize_slots(slots: Sequence[Any]) -> CapacitySummary:
    """Per-slot snapshots plus cross-slot totals for slots with loaded subscriptions."""
    snapshots: list[SlotCapacity] = []
    all_subscriptions: list[Any] = []
    for slot in slots:
        subscriptions = list(getattr(slot, "subscriptions", None) or [])
        all_subscriptions.extend(subscriptions)
        snapshots.append(compute_slot_capacity(slot, subscriptions))

    return CapacitySummary(
        slots=snapshots,
        total_occupied_liters=sum(s.occupied_liters for s in snapshots),
        unique_customer_count=unique_customer_count(all_subscriptions),
    )
