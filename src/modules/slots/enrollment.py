"""Auto-enrollment of area residents into a newly created slot."""

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.modules.residents.models import Resident
from src.modules.slots.models import (
    ExtraRequestStatus,
    Slot,
    SlotSubscription,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)


def build_enrollments(slot_id: int, residents: Iterable[Resident]) -> list[SlotSubscription]:
    """One Booked subscription per resident at their default water quantity (0 when unset)."""
    return [
        SlotSubscription(
            customer_id=resident.id,
            slot_id=slot_id,
            quantity=resident.water_quantity or 0,
            status=SubscriptionStatus.BOOKED.value,
            extra_quantity=0,
            extra_request_status=ExtraRequestStatus.NONE.value,
            is_active=True,
            is_deleted=False,
        )
        for resident in residents
    ]


async def list_enrollable_residents(session: AsyncSession, area_id: int) -> list[Resident]:
    """Enabled, non-deleted residents whose address points at the area."""
    result = await session.execute(
        select(Resident)
        .where(
            Resident.area_id == area_id,
            Resident.is_deleted.is_(False),
            Resident.is_enabled.is_(True),
        )
        .order_by(Resident.id)
    )
    return list(result.scalars().all())


async def enroll_area_residents(session: AsyncSession, slot: Slot) -> list[SlotSubscription]:
    """
    Subscribe every enrollable resident of the slot's area.

    Runs only when a slot is created. The slot must already be flushed.
    Subscriptions are added to the caller's session, so they commit or roll
    back together with the slot.
    """
    residents = await list_enrollable_residents(session, slot.area_id)
    subscriptions = build_enrollments(slot.id, residents)
    if subscriptions:
        session.add_all(subscriptions)
        await session.flush()
        logger.info(
            "Auto-subscribed %d residents to slot %s (area %s)",
            len(subscriptions),
            slot.id,
            slot.area_id,
        )
    return subscriptions
