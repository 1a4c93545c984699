"""Resident-facing slot endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentResident
from src.core.clock import Clock, get_clock
from src.core.database.base import as_utc
from src.core.database.session import get_db
from src.modules.slots.capacity import subscription_liters
from src.modules.slots.models import SlotSubscription
from src.modules.slots.router import slot_to_response
from src.modules.subscriptions.schemas import (
    CurrentSlotResponse,
    ExtraQuantityRequest,
    HistoryItem,
    SubscriptionResponse,
)
from src.modules.subscriptions.service import ResidentSlotService, SubscriptionService
from src.shared.pagination import get_page_params
from src.shared.schemas.base import ApiResponse, PageParams, PaginatedResponse

router = APIRouter(prefix="/resident/slots", tags=["Resident Slots"])


def subscription_to_response(subscription: SlotSubscription) -> SubscriptionResponse:
    """Helper to convert SlotSubscription to response."""
    response = SubscriptionResponse.model_validate(subscription)
    response.liters = subscription_liters(subscription)
    response.delivered_at = as_utc(subscription.delivered_at)
    return response


@router.get(
    "/current",
    response_model=ApiResponse[CurrentSlotResponse | None],
)
async def get_current_slot(
    resident: CurrentResident,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """The resident's next upcoming slot with live occupancy, or null."""
    service = ResidentSlotService(db)
    current = await service.get_current_slot(resident, clock.now())
    if current is None:
        return ApiResponse(
            success=True,
            message="No upcoming slots found for your area",
            data=None,
        )

    slot, capacity, subscription = current
    return ApiResponse(
        success=True,
        message="Current slot fetched successfully",
        data=CurrentSlotResponse(
            slot=slot_to_response(slot, capacity),
            subscription=subscription_to_response(subscription),
        ),
    )


@router.post(
    "/subscriptions/{subscription_id}/cancel",
    response_model=ApiResponse[SubscriptionResponse],
)
async def cancel_subscription(
    subscription_id: int,
    resident: CurrentResident,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Cancel a subscription. Allowed until the slot's booking cutoff."""
    service = SubscriptionService(db)
    subscription = await service.cancel_subscription(resident, subscription_id, clock.now())
    return ApiResponse(
        success=True,
        message="Subscription cancelled successfully",
        data=subscription_to_response(subscription),
    )


@router.post(
    "/subscriptions/{subscription_id}/extra",
    response_model=ApiResponse[SubscriptionResponse],
)
async def request_extra_quantity(
    subscription_id: int,
    data: ExtraQuantityRequest,
    resident: CurrentResident,
    db: AsyncSession = Depends(get_db),
):
    """Request extra liters on a subscription."""
    service = SubscriptionService(db)
    subscription = await service.request_extra(resident, subscription_id, data.quantity)
    return ApiResponse(
        success=True,
        message="Extra quantity requested successfully",
        data=subscription_to_response(subscription),
    )


@router.get(
    "/history",
    response_model=ApiResponse[PaginatedResponse[HistoryItem]],
)
async def get_history(
    resident: CurrentResident,
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    """The resident's delivery history."""
    service = ResidentSlotService(db)
    items, total = await service.get_history(resident, page=params.page, limit=params.limit)
    return ApiResponse(
        success=True,
        message="History fetched successfully",
        data=PaginatedResponse.create(
            items=items, total=total, page=params.page, limit=params.limit
        ),
    )
