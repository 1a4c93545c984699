"""Service for Areas module."""

import logging

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit import AuditAction, AuditService
from src.core.auth.models import PrincipalKind
from src.core.exceptions import NotFoundError
from src.modules.areas.models import Area
from src.modules.areas.schemas import AreaCreate, AreaUpdate
from src.modules.residents.models import Resident

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": Area.name,
    "city": Area.city,
    "pincode": Area.pincode,
    "created_at": Area.created_at,
}


class AreaService:
    """Service for managing delivery areas."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_area(self, data: AreaCreate, created_by_id: int) -> Area:
        """Create a new area."""
        area = Area(
            name=data.name,
            description=data.description,
            city=data.city,
            pincode=data.pincode,
        )
        self.db.add(area)
        await self.db.flush()

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Area",
            entity_id=area.id,
            actor_id=created_by_id,
            actor_kind=PrincipalKind.ADMIN,
            new_values={"name": area.name, "city": area.city, "pincode": area.pincode},
        )
        logger.info("Area %s (%s) created", area.id, area.name)

        await self.db.commit()
        await self.db.refresh(area)
        return area

    async def get_area_by_id(self, area_id: int, include_deleted: bool = False) -> Area:
        """Get area by ID."""
        query = select(Area).where(Area.id == area_id)
        if not include_deleted:
            query = query.where(Area.is_deleted.is_(False))
        result = await self.db.execute(query)
        area = result.scalar_one_or_none()
        if not area:
            raise NotFoundError("Area", area_id)
        return area

    async def list_areas(
        self,
        search: str | None = None,
        city: str | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str | None = None,
        descending: bool = True,
    ) -> tuple[list[tuple[Area, int, int]], int]:
        """
        List areas with the number of enabled residents and their
        combined default water quantity.

        Returns:
            Tuple of ([(area, total_customer, total_liters)], total)
        """
        base = select(Area).where(Area.is_deleted.is_(False))
        if city:
            base = base.where(Area.city.ilike(city))
        if search:
            search_term = f"%{search}%"
            base = base.where(
                or_(
                    Area.name.ilike(search_term),
                    Area.city.ilike(search_term),
                    Area.pincode.ilike(search_term),
                )
            )

        count_query = select(func.count()).select_from(base.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        column = SORTABLE_FIELDS.get(sort_by or "created_at", Area.created_at)
        base = base.order_by(desc(column) if descending else asc(column), Area.id)
        base = base.offset((page - 1) * limit).limit(limit)

        areas = list((await self.db.execute(base)).scalars().all())
        totals = await self._resident_totals([a.id for a in areas])

        return [(a, *totals.get(a.id, (0, 0))) for a in areas], total

    async def _resident_totals(self, area_ids: list[int]) -> dict[int, tuple[int, int]]:
        if not area_ids:
            return {}
        query = (
            select(
                Resident.area_id,
                func.count(Resident.id),
                func.coalesce(func.sum(Resident.water_quantity), 0),
            )
            .where(
                Resident.area_id.in_(area_ids),
                Resident.is_enabled.is_(True),
                Resident.is_deleted.is_(False),
            )
            .group_by(Resident.area_id)
        )
        result = await self.db.execute(query)
        return {row[0]: (int(row[1]), int(row[2])) for row in result.all()}

    async def update_area(self, area_id: int, data: AreaUpdate, updated_by_id: int) -> Area:
        """Update an area."""
        area = await self.get_area_by_id(area_id)
        old_values = {}
        new_values = {}

        for field, value in data.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
            if getattr(area, field) != value:
                old_values[field] = getattr(area, field)
                setattr(area, field, value)
                new_values[field] = value

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Area",
                entity_id=area_id,
                actor_id=updated_by_id,
                actor_kind=PrincipalKind.ADMIN,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        await self.db.refresh(area)
        return area

    async def delete_area(self, area_id: int, deleted_by_id: int) -> None:
        """Soft-delete an area. Slots and residents keep their reference."""
        area = await self.get_area_by_id(area_id)
        area.is_deleted = True

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Area",
            entity_id=area_id,
            actor_id=deleted_by_id,
            actor_kind=PrincipalKind.ADMIN,
            old_values={"is_deleted": False},
            new_values={"is_deleted": True},
        )
        logger.info("Area %s deleted", area_id)

        await self.db.commit()
