"""Service for the admin dashboard (today's slots)."""

from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database.base import as_utc
from src.modules.areas.models import Area
from src.modules.slots.capacity import summarize_slots
from src.modules.slots.models import Slot
from src.modules.slots.service import with_live_subscriptions


class DashboardService:
    """Aggregates today's slots for the admin main page."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_today_slots(self, day: date, search: str | None = None) -> dict:
        """
        Build today's slot board.

        Every slot dated ``day`` gets its booked liters, allotted count and
        progress; the totals cover all of them. ``total_liters_today`` is
        thousands-separated ("2,400") and ``total_customer`` counts each
        customer once even when booked in several slots.
        """
        query = (
            select(Slot)
            .join(Area, Slot.area_id == Area.id)
            .options(*with_live_subscriptions())
            .where(Slot.date == day, Slot.is_deleted.is_(False))
            .order_by(Slot.start_time, Slot.id)
        )
        if search:
            query = query.where(Area.name.ilike(f"%{search}%"))

        result = await self.db.execute(query)
        slots = list(result.scalars().all())
        summary = summarize_slots(slots)

        rows = []
        for slot, capacity in zip(slots, summary.slots):
            rows.append(
                {
                    "id": slot.id,
                    "date": slot.date,
                    "start_time": as_utc(slot.start_time),
                    "end_time": as_utc(slot.end_time),
                    "status": capacity.status.value,
                    "capacity": capacity.capacity,
                    "customer_booked_liter": capacity.occupied_liters,
                    "progress_percentage": capacity.progress_percentage,
                    "allotted": capacity.booking_count,
                    "area": {"id": slot.area.id, "name": slot.area.name} if slot.area else None,
                }
            )

        return {
            "total_count": len(rows),
            "total_liters_today": f"{summary.total_occupied_liters:,}",
            "total_customer": str(summary.unique_customer_count),
            "slots": rows,
        }
