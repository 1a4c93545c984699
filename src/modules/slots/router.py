"""API endpoints for Slots module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentAdmin
from src.core.database.base import as_utc
from src.core.database.session import get_db
from src.modules.slots.capacity import SlotCapacity
from src.modules.slots.models import Slot
from src.modules.slots.schemas import SlotCreate, SlotResponse, SlotUpdate
from src.modules.slots.service import SlotService
from src.shared.pagination import get_page_params
from src.shared.schemas.base import ApiResponse, PageParams, PaginatedResponse

router = APIRouter(prefix="/slots", tags=["Slots"])


def slot_to_response(slot: Slot, capacity: SlotCapacity) -> SlotResponse:
    """Helper to convert Slot and its live capacity to response."""
    return SlotResponse(
        id=slot.id,
        date=slot.date,
        start_time=as_utc(slot.start_time),
        end_time=as_utc(slot.end_time),
        area_id=slot.area_id,
        area_name=slot.area.name if slot.area else None,
        capacity=capacity.capacity,
        booking_cutoff_time=as_utc(slot.booking_cutoff_time),
        status=capacity.status.value,
        is_active=slot.is_active,
        occupied_liters=capacity.occupied_liters,
        booking_count=capacity.booking_count,
        available_liters=capacity.available_liters,
        progress_percentage=capacity.progress_percentage,
        created_at=as_utc(slot.created_at),
        updated_at=as_utc(slot.updated_at),
    )


@router.post(
    "",
    response_model=ApiResponse[SlotResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_slot(
    data: SlotCreate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Create a slot. Every enabled resident of the area is subscribed to it."""
    service = SlotService(db)
    slot, capacity = await service.create_slot(data, admin.id)
    return ApiResponse(
        success=True,
        message="Slot created successfully",
        data=slot_to_response(slot, capacity),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[SlotResponse]],
)
async def list_slots(
    admin: CurrentAdmin,
    area_id: int | None = Query(None, description="Filter by area"),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, description="Search by area name"),
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    """List slots with live occupancy."""
    service = SlotService(db)
    rows, total = await service.list_slots(
        area_id=area_id,
        date_from=date_from,
        date_to=date_to,
        is_active=is_active,
        search=search,
        page=params.page,
        limit=params.limit,
        sort_by=params.sort_by,
        descending=params.descending,
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[slot_to_response(slot, capacity) for slot, capacity in rows],
            total=total,
            page=params.page,
            limit=params.limit,
        ),
    )


@router.get(
    "/{slot_id}",
    response_model=ApiResponse[SlotResponse],
)
async def get_slot(
    slot_id: int,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Get slot by ID."""
    service = SlotService(db)
    slot, capacity = await service.get_slot(slot_id)
    return ApiResponse(success=True, data=slot_to_response(slot, capacity))


@router.put(
    "/{slot_id}",
    response_model=ApiResponse[SlotResponse],
)
async def update_slot(
    slot_id: int,
    data: SlotUpdate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Update a slot."""
    service = SlotService(db)
    slot, capacity = await service.update_slot(slot_id, data, admin.id)
    return ApiResponse(
        success=True,
        message="Slot updated successfully",
        data=slot_to_response(slot, capacity),
    )


@router.delete(
    "/{slot_id}",
    response_model=ApiResponse[None],
)
async def delete_slot(
    slot_id: int,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a slot."""
    service = SlotService(db)
    await service.delete_slot(slot_id, admin.id)
    return ApiResponse(success=True, message="Slot deleted successfully", data=None)
