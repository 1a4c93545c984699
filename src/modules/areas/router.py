"""API endpoints for Areas module."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentAdmin
from src.core.database.session import get_db
from src.modules.areas.schemas import AreaCreate, AreaListItem, AreaResponse, AreaUpdate
from src.modules.areas.service import AreaService
from src.shared.pagination import get_page_params
from src.shared.schemas.base import ApiResponse, PageParams, PaginatedResponse

router = APIRouter(prefix="/areas", tags=["Areas"])


@router.post(
    "",
    response_model=ApiResponse[AreaResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_area(
    data: AreaCreate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Create a new area."""
    service = AreaService(db)
    area = await service.create_area(data, admin.id)
    return ApiResponse(
        success=True,
        message="Area created successfully",
        data=AreaResponse.model_validate(area),
    )


@router.get(
    "",
    response_model=ApiResponse[PaginatedResponse[AreaListItem]],
)
async def list_areas(
    admin: CurrentAdmin,
    search: str | None = Query(None, description="Search by name, city, pincode"),
    city: str | None = Query(None),
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    """List areas with resident totals."""
    service = AreaService(db)
    rows, total = await service.list_areas(
        search=search,
        city=city,
        page=params.page,
        limit=params.limit,
        sort_by=params.sort_by,
        descending=params.descending,
    )
    items = [
        AreaListItem(
            **AreaResponse.model_validate(area).model_dump(),
            total_customer=total_customer,
            total_liters=total_liters,
        )
        for area, total_customer, total_liters in rows
    ]
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=items, total=total, page=params.page, limit=params.limit
        ),
    )


@router.get(
    "/{area_id}",
    response_model=ApiResponse[AreaResponse],
)
async def get_area(
    area_id: int,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Get area by ID."""
    service = AreaService(db)
    area = await service.get_area_by_id(area_id)
    return ApiResponse(success=True, data=AreaResponse.model_validate(area))


@router.put(
    "/{area_id}",
    response_model=ApiResponse[AreaResponse],
)
async def update_area(
    area_id: int,
    data: AreaUpdate,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Update an area."""
    service = AreaService(db)
    area = await service.update_area(area_id, data, admin.id)
    return ApiResponse(
        success=True,
        message="Area updated successfully",
        data=AreaResponse.model_validate(area),
    )


@router.delete(
    "/{area_id}",
    response_model=ApiResponse[None],
)
async def delete_area(
    area_id: int,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete an area."""
    service = AreaService(db)
    await service.delete_area(area_id, admin.id)
    return ApiResponse(success=True, message="Area deleted successfully", data=None)
