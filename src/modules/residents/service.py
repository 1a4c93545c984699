"""Service for Residents module."""

import logging

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit import AuditAction, AuditService
from src.core.auth.models import PrincipalKind
from src.core.auth.password import hash_password
from src.core.exceptions import DuplicateError, NotFoundError, ValidationError
from src.modules.areas.models import Area
from src.modules.residents.models import Resident
from src.modules.residents.schemas import (
    ResidentCreate,
    ResidentProfileUpdate,
    ResidentRegister,
    ResidentUpdate,
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "name": Resident.name,
    "phone": Resident.phone,
    "water_quantity": Resident.water_quantity,
    "created_at": Resident.created_at,
}


class ResidentService:
    """Service for managing residents."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def _validate_area(self, area_id: int) -> Area:
        """Validate area exists and is not deleted."""
        result = await self.db.execute(select(Area).where(Area.id == area_id))
        area = result.scalar_one_or_none()
        if not area:
            raise NotFoundError("Area", area_id)
        if area.is_deleted:
            raise ValidationError(f"Area '{area.name}' is deleted", field="area_id")
        return area

    async def _check_phone_available(
        self, country_code: str, phone: str, exclude_id: int | None = None
    ) -> None:
        query = select(Resident.id).where(
            Resident.country_code == country_code, Resident.phone == phone
        )
        if exclude_id is not None:
            query = query.where(Resident.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise DuplicateError("Resident", "phone", f"{country_code}{phone}")

    async def _check_email_available(self, email: str, exclude_id: int | None = None) -> None:
        query = select(Resident.id).where(Resident.email == email)
        if exclude_id is not None:
            query = query.where(Resident.id != exclude_id)
        if (await self.db.execute(query)).first():
            raise DuplicateError("Resident", "email", email)

    async def _insert_resident(self, data: ResidentCreate, is_verified: bool = False) -> Resident:
        await self._validate_area(data.area_id)
        await self._check_phone_available(data.country_code, data.phone)
        email = data.email.lower() if data.email else None
        if email:
            await self._check_email_available(email)

        resident = Resident(
            name=data.name,
            email=email,
            password_hash=hash_password(data.password) if data.password else None,
            country_code=data.country_code,
            phone=data.phone,
            house_no=data.house_no,
            street=data.street,
            area_id=data.area_id,
            city=data.city,
            pincode=data.pincode,
            landmark=data.landmark,
            water_quantity=data.water_quantity,
            notes=data.notes,
            is_enabled=True,
            is_verified=is_verified,
        )
        self.db.add(resident)
        await self.db.flush()
        return resident

    async def create_resident(self, data: ResidentCreate, created_by_id: int) -> Resident:
        """Create a new resident."""
        resident = await self._insert_resident(data)

        await self.audit.log(
            action=AuditAction.CREATE,
            entity_type="Resident",
            entity_id=resident.id,
            actor_id=created_by_id,
            actor_kind=PrincipalKind.ADMIN,
            new_values={
                "name": data.name,
                "phone": f"{data.country_code}{data.phone}",
                "area_id": data.area_id,
                "water_quantity": data.water_quantity,
            },
        )
        logger.info("Resident %s created in area %s", resident.id, data.area_id)

        await self.db.commit()
        return await self.get_resident_by_id(resident.id)

    async def register_resident(self, data: ResidentRegister) -> Resident:
        """
        Sign a resident up on their own.

        The same duplicate checks as admin creation apply. Self-registered
        residents are verified and can log in straight away.
        """
        resident = await self._insert_resident(data, is_verified=True)

        await self.audit.log(
            action=AuditAction.REGISTER,
            entity_type="Resident",
            entity_id=resident.id,
            actor_id=resident.id,
            actor_kind=PrincipalKind.RESIDENT,
            new_values={
                "email": resident.email,
                "phone": f"{data.country_code}{data.phone}",
                "area_id": data.area_id,
            },
        )
        logger.info("Resident %s registered in area %s", resident.id, data.area_id)

        await self.db.commit()
        return await self.get_resident_by_id(resident.id)

    async def get_resident_by_id(self, resident_id: int) -> Resident:
        """Get a non-deleted resident by ID, with area loaded."""
        result = await self.db.execute(
            select(Resident)
            .options(selectinload(Resident.area))
            .where(Resident.id == resident_id, Resident.is_deleted.is_(False))
            .execution_options(populate_existing=True)
        )
        resident = result.scalar_one_or_none()
        if not resident:
            raise NotFoundError("Resident", resident_id)
        return resident

    async def list_residents(
        self,
        area_id: int | None = None,
        is_enabled: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str | None = None,
        descending: bool = True,
    ) -> tuple[list[Resident], int]:
        """List residents with optional filters."""
        query = (
            select(Resident)
            .options(selectinload(Resident.area))
            .where(Resident.is_deleted.is_(False))
        )

        if area_id is not None:
            query = query.where(Resident.area_id == area_id)
        if is_enabled is not None:
            query = query.where(Resident.is_enabled.is_(is_enabled))
        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    Resident.name.ilike(search_term),
                    Resident.phone.ilike(search_term),
                    Resident.email.ilike(search_term),
                )
            )

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        column = SORTABLE_FIELDS.get(sort_by or "created_at", Resident.created_at)
        query = query.order_by(desc(column) if descending else asc(column), Resident.id)
        query = query.offset((page - 1) * limit).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def _apply_changes(
        self, resident: Resident, changes: dict
    ) -> tuple[dict, dict]:
        old_values = {}
        new_values = {}

        if "area_id" in changes and changes["area_id"] != resident.area_id:
            await self._validate_area(changes["area_id"])

        country_code = changes.get("country_code", resident.country_code)
        phone = changes.get("phone", resident.phone)
        if (country_code, phone) != (resident.country_code, resident.phone):
            await self._check_phone_available(country_code, phone, exclude_id=resident.id)

        if "email" in changes:
            changes["email"] = changes["email"].lower()
            if changes["email"] != resident.email:
                await self._check_email_available(changes["email"], exclude_id=resident.id)

        password = changes.pop("password", None)
        if password:
            resident.password_hash = hash_password(password)
            new_values["password"] = "***"

        for field, value in changes.items():
            if getattr(resident, field) != value:
                old_values[field] = getattr(resident, field)
                setattr(resident, field, value)
                new_values[field] = value

        return old_values, new_values

    async def update_resident(
        self, resident_id: int, data: ResidentUpdate, updated_by_id: int
    ) -> Resident:
        """Update a resident (admin). Existing slot subscriptions are not touched."""
        resident = await self.get_resident_by_id(resident_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        old_values, new_values = await self._apply_changes(resident, changes)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Resident",
                entity_id=resident_id,
                actor_id=updated_by_id,
                actor_kind=PrincipalKind.ADMIN,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        return await self.get_resident_by_id(resident_id)

    async def update_profile(self, resident: Resident, data: ResidentProfileUpdate) -> Resident:
        """Update the logged-in resident's own profile. Email and password are not editable."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        old_values, new_values = await self._apply_changes(resident, changes)

        if new_values:
            await self.audit.log(
                action=AuditAction.UPDATE,
                entity_type="Resident",
                entity_id=resident.id,
                actor_id=resident.id,
                actor_kind=PrincipalKind.RESIDENT,
                old_values=old_values,
                new_values=new_values,
            )

        await self.db.commit()
        return await self.get_resident_by_id(resident.id)

    async def delete_resident(self, resident_id: int, deleted_by_id: int) -> None:
        """Soft-delete a resident. Future slots no longer enroll them."""
        resident = await self.get_resident_by_id(resident_id)
        resident.is_deleted = True

        await self.audit.log(
            action=AuditAction.DELETE,
            entity_type="Resident",
            entity_id=resident_id,
            actor_id=deleted_by_id,
            actor_kind=PrincipalKind.ADMIN,
            old_values={"is_deleted": False},
            new_values={"is_deleted": True},
        )
        logger.info("Resident %s deleted", resident_id)

        await self.db.commit()
