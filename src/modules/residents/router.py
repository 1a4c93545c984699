"""API endpoints for Residents module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentAdmin
from src.core.database.session import get_db
from src.modules.residents.models import Resident
from src.modules.residents.schemas import ResidentCreate, ResidentResponse, ResidentUpdate
from src.modules.residents.service import ResidentService
from src.shared.pagination import get_page_params
from src.shared.schemas.base import ApiResponse, PageParams, PaginatedResponse

router = APIRouter(prefix="/residents", tags=["Residents"])


def resident_to_response(resident: Resident) -> ResidentResponse:
    """Helper to convert Resident to response."""
    response = ResidentResponse.model_validate(resident)
    response.area_name = resident.area.name if resident.area else None
    return response


@router.post(
    "",
    response_model=ApiResponse[ResidentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_resident(
    data: ResidentCreate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Create a new resident."""
    service = ResidentService(db)
    resident = await service.create_resident(data, admin.id)
    return ApiResponse(
        success=True,
        message="Resident created successfully",
        data=resident_to_response(resident),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[ResidentResponse]],
)
async def list_residents(
    admin: CurrentAdmin,
    area_id: int | None = Query(None, description="Filter by area"),
    is_enabled: bool | None = Query(None),
    search: str | None = Query(None, description="Search by name, phone, email"),
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    """List residents with optional filters."""
    service = ResidentService(db)
    residents, total = await service.list_residents(
        area_id=area_id,
        is_enabled=is_enabled,
        search=search,
        page=params.page,
        limit=params.limit,
        sort_by=params.sort_by,
        descending=params.descending,
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[resident_to_response(r) for r in residents],
            total=total,
            page=params.page,
            limit=params.limit,
        ),
    )


@router.get(
    "/{resident_id}",
    response_model=ApiResponse[ResidentResponse],
)
async def get_resident(
    resident_id: int,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Get resident by ID."""
    service = ResidentService(db)
    resident = await service.get_resident_by_id(resident_id)
    return ApiResponse(success=True, data=resident_to_response(resident))


@router.put(
    "/{resident_id}",
    response_model=ApiResponse[ResidentResponse],
)
async def update_resident(
    resident_id: int,
    data: ResidentUpdate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Update a resident."""
    service = ResidentService(db)
    resident = await service.update_resident(resident_id, data, admin.id)
    return ApiResponse(
        success=True,
        message="Resident updated successfully",
        data=resident_to_response(resident),
    )


@router.delete(
    "/{resident_id}",
    response_model=ApiResponse[None],
)
async def delete_resident(
    resident_id: int,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a resident."""
    service = ResidentService(db)
    await service.delete_resident(resident_id, admin.id)
    return ApiResponse(success=True, message="Resident deleted successfully", data=None)
