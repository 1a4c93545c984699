"""Service for Subscriptions module."""

import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit import AuditAction, AuditService
from src.core.auth.models import PrincipalKind
from src.core.config import settings
from src.core.database.base import as_utc
from src.core.exceptions import (
    CancellationWindowClosedError,
    CapacityExceededError,
    NotFoundError,
)
from src.modules.areas.models import Area
from src.modules.residents.models import Resident
from src.modules.slots.capacity import SlotCapacity, compute_slot_capacity, subscription_liters
from src.modules.slots.models import (
    ExtraRequestStatus,
    Slot,
    SlotSubscription,
    SubscriptionStatus,
)
from src.modules.slots.service import SlotService
from src.modules.subscriptions import lifecycle
from src.modules.subscriptions.schemas import HistoryItem

logger = logging.getLogger(__name__)

ENTITY = "SlotSubscription"


class SubscriptionService:
    """Lifecycle operations on slot subscriptions."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.slots = SlotService(db)

    async def get_subscription(
        self, subscription_id: int, customer_id: int | None = None
    ) -> SlotSubscription:
        """Get a non-deleted subscription, optionally scoped to one customer."""
        query = select(SlotSubscription).where(
            SlotSubscription.id == subscription_id,
            SlotSubscription.is_deleted.is_(False),
        )
        if customer_id is not None:
            query = query.where(SlotSubscription.customer_id == customer_id)
        result = await self.db.execute(query)
        subscription = result.scalar_one_or_none()
        if not subscription:
            raise NotFoundError("Subscription", subscription_id)
        return subscription

    async def _save(self, subscription: SlotSubscription) -> SlotSubscription:
        await self.db.commit()
        await self.db.refresh(subscription)
        return subscription

    async def cancel_subscription(
        self, resident: Resident, subscription_id: int, now: datetime
    ) -> SlotSubscription:
        """Resident cancels their subscription before the slot's booking cutoff."""
        subscription = await self.get_subscription(subscription_id, customer_id=resident.id)
        slot = await self.slots.lock_slot(subscription.slot_id)
        old_status = subscription.status

        try:
            lifecycle.cancel(subscription, slot, now)
        except CancellationWindowClosedError:
            logger.warning(
                "Cancellation of subscription %s refused: cutoff %s passed",
                subscription_id,
                as_utc(slot.booking_cutoff_time).isoformat(),
            )
            raise

        await self.audit.log(
            action=AuditAction.CANCEL_SUBSCRIPTION,
            entity_type=ENTITY,
            entity_id=subscription.id,
            actor_id=resident.id,
            actor_kind=PrincipalKind.RESIDENT,
            old_values={"status": old_status},
            new_values={"status": subscription.status},
        )
        logger.info("Subscription %s cancelled by resident %s", subscription_id, resident.id)
        return await self._save(subscription)

    async def request_extra(
        self, resident: Resident, subscription_id: int, quantity: int
    ) -> SlotSubscription:
        """Resident asks for extra liters; the request waits for an admin decision."""
        subscription = await self.get_subscription(subscription_id, customer_id=resident.id)
        old_values = {
            "extra_quantity": subscription.extra_quantity,
            "extra_request_status": subscription.extra_request_status,
        }

        lifecycle.request_extra(subscription, quantity)

        await self.audit.log(
            action=AuditAction.REQUEST_EXTRA,
            entity_type=ENTITY,
            entity_id=subscription.id,
            actor_id=resident.id,
            actor_kind=PrincipalKind.RESIDENT,
            old_values=old_values,
            new_values={
                "extra_quantity": subscription.extra_quantity,
                "extra_request_status": subscription.extra_request_status,
            },
        )
        logger.info(
            "Extra %sL requested on subscription %s by resident %s",
            quantity,
            subscription_id,
            resident.id,
        )
        return await self._save(subscription)

    async def decide_extra_request(
        self,
        admin_id: int,
        subscription_id: int,
        decision: ExtraRequestStatus,
    ) -> SlotSubscription:
        """
        Approve or reject an extra request.

        With slot capacity enforcement on, the slot row is locked and an
        approval that would overfill the slot is refused.
        """
        subscription = await self.get_subscription(subscription_id)
        old_status = subscription.extra_request_status

        if settings.enforce_slot_capacity and decision == ExtraRequestStatus.APPROVED:
            slot = await self.slots.lock_slot(subscription.slot_id)
            capacity = compute_slot_capacity(slot)
            try:
                lifecycle.check_approval_fits(subscription, capacity)
            except CapacityExceededError:
                logger.warning(
                    "Approval of %sL on subscription %s refused: %sL available in slot %s",
                    subscription.extra_quantity,
                    subscription_id,
                    capacity.available_liters,
                    slot.id,
                )
                raise

        lifecycle.decide_extra_request(subscription, decision)

        await self.audit.log(
            action=(
                AuditAction.APPROVE_EXTRA
                if decision == ExtraRequestStatus.APPROVED
                else AuditAction.REJECT_EXTRA
            ),
            entity_type=ENTITY,
            entity_id=subscription.id,
            actor_id=admin_id,
            actor_kind=PrincipalKind.ADMIN,
            old_values={"extra_request_status": old_status},
            new_values={
                "extra_request_status": subscription.extra_request_status,
                "extra_quantity": subscription.extra_quantity,
            },
        )
        logger.info("Extra request on subscription %s %s", subscription_id, decision)
        return await self._save(subscription)

    async def mark_delivery(
        self,
        admin_id: int,
        subscription_id: int,
        outcome: SubscriptionStatus,
        now: datetime,
    ) -> SlotSubscription:
        """Record whether the delivery happened."""
        subscription = await self.get_subscription(subscription_id)
        old_status = subscription.status

        lifecycle.mark_delivery(subscription, outcome, now)

        await self.audit.log(
            action=(
                AuditAction.MARK_DELIVERED
                if outcome == SubscriptionStatus.DELIVERED
                else AuditAction.MARK_MISSED
            ),
            entity_type=ENTITY,
            entity_id=subscription.id,
            actor_id=admin_id,
            actor_kind=PrincipalKind.ADMIN,
            old_values={"status": old_status},
            new_values={"status": subscription.status},
        )
        logger.info("Subscription %s marked %s", subscription_id, subscription.status)
        return await self._save(subscription)

    async def list_pending_extra_requests(
        self, page: int = 1, limit: int = 10
    ) -> tuple[list[SlotSubscription], int]:
        """Pending extra requests, newest first, with customer, slot and area loaded."""
        query = select(SlotSubscription).where(
            SlotSubscription.extra_request_status == ExtraRequestStatus.PENDING.value,
            SlotSubscription.is_deleted.is_(False),
        )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.options(
                selectinload(SlotSubscription.customer),
                selectinload(SlotSubscription.slot).selectinload(Slot.area),
            )
            .order_by(SlotSubscription.updated_at.desc(), SlotSubscription.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total


class ResidentSlotService:
    """Read paths of the resident-facing slot screens."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.slots = SlotService(db)

    async def get_current_slot(
        self, resident: Resident, now: datetime
    ) -> tuple[Slot, SlotCapacity, SlotSubscription] | None:
        """
        The earliest upcoming slot of the resident's area that the resident
        still holds a subscription to.

        Returns None when there is no such slot.

        Raises:
            NotFoundError: If the resident has no area on their profile
        """
        if resident.area_id is None:
            raise NotFoundError("Resident area")

        query = (
            select(SlotSubscription.id, Slot.id)
            .join(Slot, SlotSubscription.slot_id == Slot.id)
            .where(
                Slot.area_id == resident.area_id,
                Slot.end_time > now,
                Slot.is_active.is_(True),
                Slot.is_deleted.is_(False),
                SlotSubscription.customer_id == resident.id,
                SlotSubscription.status != SubscriptionStatus.CANCELLED.value,
                SlotSubscription.is_deleted.is_(False),
            )
            .order_by(Slot.start_time, Slot.id, SlotSubscription.id)
            .limit(1)
        )
        row = (await self.db.execute(query)).first()
        if row is None:
            return None

        subscription_id, slot_id = row
        slot, capacity = await self.slots.get_slot(slot_id)
        subscription = next(s for s in slot.subscriptions if s.id == subscription_id)
        return slot, capacity, subscription

    async def get_history(
        self, resident: Resident, page: int = 1, limit: int = 10
    ) -> tuple[list[HistoryItem], int]:
        """Resident's subscriptions, latest slot first, as display rows."""
        query = (
            select(SlotSubscription, Slot.date, Area.name)
            .join(Slot, SlotSubscription.slot_id == Slot.id)
            .outerjoin(Area, Slot.area_id == Area.id)
            .where(
                SlotSubscription.customer_id == resident.id,
                SlotSubscription.is_deleted.is_(False),
            )
        )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = (
            query.order_by(Slot.date.desc(), SlotSubscription.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)

        items = [
            HistoryItem(
                id=subscription.id,
                date=slot_date,
                area=area_name or "N/A",
                liters=f"{subscription_liters(subscription)}L",
                status=subscription.status,
            )
            for subscription, slot_date, area_name in result.all()
        ]
        return items, total
