"""Service for Slots module."""

import logging
from datetime import date

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit import AuditAction, AuditService
from src.core.auth.models import PrincipalKind
from src.core.database.base import as_utc
from src.core.exceptions import NotFoundError, ValidationError
from src.modules.areas.models import Area
from src.modules.slots.capacity import SlotCapacity, compute_slot_capacity
from src.modules.slots.enrollment import enroll_area_residents
from src.modules.slots.models import Slot, SlotStatus, SlotSubscription
from src.modules.slots.schemas import SlotCreate, SlotUpdate

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "date": Slot.date,
    "start_time": Slot.start_time,
    "created_at": Slot.created_at,
}


def with_live_subscriptions():
    """Loader options for a slot with its area and non-deleted subscriptions."""
    return (
        selectinload(Slot.area),
        selectinload(Slot.subscriptions.and_(SlotSubscription.is_deleted.is_(False))),
    )


class SlotService:
    """Service for managing delivery slots."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _validate_area(self, area_id: int) -> Area:
        result = await self.db.execute(select(Area).where(Area.id == area_id))
        area = result.scalar_one_or_none()
        if not area:
            raise NotFoundError("Area", area_id)
        if area.is_deleted:
            raise ValidationError(f"Area '{area.name}' is deleted", field="area_id")
        return area

    async def create_slot(self, data: SlotCreate, created_by_id: int) -> tuple[Slot, SlotCapacity]:
        """
        Create a slot and subscribe the area's residents to it.

        The slot and its subscriptions are committed together; if enrollment
        fails nothing is written.
        """
        await self._validate_area(data.area_id)

        slot = Slot(
            date=data.date,
            start_time=data.start_time,
            end_time=data.end_time,
            area_id=data.area_id,
            capacity=data.capacity,
            booking_cutoff_time=data.booking_cutoff_time,
        )
        self.db.add(slot)
        await self.db.flush()

        subscriptions = await enroll_area_residents(self.db, slot)

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Slot",
            entity_id=slot.id,
            actor_id=created_by_id,
            actor_kind=PrincipalKind.ADMIN,
            new_values={
                "date": data.date.isoformat(),
                "area_id": data.area_id,
                "capacity": data.capacity,
            },
        )
        if subscriptions:
            await self.audit.log(
                action=AuditAction.AUTO_ENROLL,
                entity_type="Slot",
                entity_id=slot.id,
                new_values={"customer_ids": [s.customer_id for s in subscriptions]},
            )
        logger.info("Slot %s created for area %s on %s", slot.id, data.area_id, data.date)

        await self.db.commit()
        return await self.get_slot(slot.id)

    async def _load_slot(self, slot_id: int) -> Slot:
        result = await self.db.execute(
            select(Slot)
            .options(*with_live_subscriptions())
            .where(Slot.id == slot_id, Slot.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        slot = result.scalar_one_or_none()
        if not slot:
            raise NotFoundError("Slot", slot_id)
        return slot

    async def get_slot(self, slot_id: int) -> tuple[Slot, SlotCapacity]:
        """Get a slot with its live capacity."""
        slot = await self._load_slot(slot_id)
        return slot, compute_slot_capacity(slot)

    async def lock_slot(self, slot_id: int) -> Slot:
        """Lock the slot row for the rest of the transaction and load its subscriptions."""
        await self.db.execute(select(Slot.id).where(Slot.id == slot_id).with_for_update())
        return await self._load_slot(slot_id)

    async def list_slots(
        self,
        area_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str | None = None,
        descending: bool = True,
    ) -> tuple[list[tuple[Slot, SlotCapacity]], int]:
        """List slots with optional filters, each with its live capacity."""
        query = (
            select(Slot)
            .join(Area, Slot.area_id == Area.id)
            .options(*with_live_subscriptions())
            .where(Slot.is_deleted.is_(False))
        )

        if area_id is not None:
            query = query.where(Slot.area_id == area_id)
        if date_from is not None:
            query = query.where(Slot.date >= date_from)
        if date_to is not None:
            query = query.where(Slot.date <= date_to)
        if is_active is not None:
            query = query.where(Slot.is_active.is_(is_active))
        if search:
            query = query.where(Area.name.ilike(f"%{search}%"))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        column = SORTABLE_FIELDS.get(sort_by or "date", Slot.date)
        query = query.order_by(desc(column) if descending else asc(column), Slot.id)
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        slots = list(result.scalars().all())
        return [(s, compute_slot_capacity(s)) for s in slots], total

    async def update_slot(
        self, slot_id: int, data: SlotUpdate, updated_by_id: int
    ) -> tuple[Slot, SlotCapacity]:
        """Update a slot. Existing subscriptions are kept as they are."""
        slot = await self._load_slot(slot_id)
        # Every slot column is required, so an explicit null leaves the field as is
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if "area_id" in changes and changes["area_id"] != slot.area_id:
            await self._validate_area(changes["area_id"])
        if "status" in changes:
            changes["status"] = SlotStatus(changes["status"]).value

        start_time = changes.get("start_time", slot.start_time)
        end_time = changes.get("end_time", slot.end_time)
        if "start_time" in changes or "end_time" in changes:
            if as_utc(end_time) <= as_utc(start_time):
                raise ValidationError("end_time must be after start_time", field="end_time")

        old_values = {}
        new_values = {}
        for field, value in changes.items():
            if getattr(slot, field) != value:
                old_values[field] = str(getattr(slot, field))
                setattr(slot, field, value)
                new_values[field] = str(value)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Slot",
                entity_id=slot_id,
                actor_id=updated_by_id,
                actor_kind=PrincipalKind.ADMIN,
                old_values=old_values,
                new_values=new_values,
            )
            logger.info("Slot %s updated: %s", slot_id, ", ".join(new_values))

        await self.db.commit()
        return await self.get_slot(slot_id)

    async def delete_slot(self, slot_id: int, deleted_by_id: int) -> None:
        """Soft-delete a slot."""
        slot = await self._load_slot(slot_id)
        slot.is_deleted = True

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Slot",
            entity_id=slot_id,
            actor_id=deleted_by_id,
            actor_kind=PrincipalKind.ADMIN,
            old_values={"is_deleted": False},
            new_values={"is_deleted": True},
        )
        logger.info("Slot %s deleted", slot_id)

        await self.db.commit()
