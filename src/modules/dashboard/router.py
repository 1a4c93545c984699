"""API for the admin dashboard: today's slots and subscription decisions."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth.dependencies import CurrentAdmin
from src.core.clock import Clock, get_clock
from src.core.database.base import as_utc
from src.core.database.session import get_db
from src.modules.dashboard.schemas import TodaySlotsResponse
from src.modules.dashboard.service import DashboardService
from src.modules.slots.models import SlotSubscription
from src.modules.subscriptions.router import subscription_to_response
from src.modules.subscriptions.schemas import (
    DeliveryStatusRequest,
    ExtraDecisionRequest,
    PendingExtraRequestItem,
    SubscriptionResponse,
)
from src.modules.subscriptions.service import SubscriptionService
from src.shared.pagination import get_page_params
from src.shared.schemas.base import ApiResponse, PageParams, PaginatedResponse

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _pending_to_item(subscription: SlotSubscription) -> PendingExtraRequestItem:
    slot = subscription.slot
    customer = subscription.customer
    return PendingExtraRequestItem(
        id=subscription.id,
        customer_id=subscription.customer_id,
        customer_name=customer.name,
        customer_phone=f"{customer.country_code}{customer.phone}",
        slot_id=slot.id,
        slot_date=slot.date,
        start_time=as_utc(slot.start_time),
        end_time=as_utc(slot.end_time),
        area_name=slot.area.name if slot.area else None,
        quantity=subscription.quantity,
        extra_quantity=subscription.extra_quantity,
        extra_request_status=subscription.extra_request_status,
        created_at=as_utc(subscription.created_at),
    )


@router.get(
    "/today-slots",
    response_model=ApiResponse[TodaySlotsResponse],
)
async def get_today_slots(
    admin: CurrentAdmin,
    day: date | None = Query(None, description="Defaults to today (UTC)"),
    search: str | None = Query(None, description="Search by area name"),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Today's slots with booked liters, allotted count and progress."""
    service = DashboardService(db)
    data = await service.get_today_slots(day or clock.today(), search=search)
    return ApiResponse(
        message="Today's slots fetched successfully",
        data=TodaySlotsResponse(**data),
    )


@router.get(
    "/extra-requests",
    response_model=ApiResponse[PaginatedResponse[PendingExtraRequestItem]],
)
async def list_pending_extra_requests(
    admin: CurrentAdmin,
    params: PageParams = Depends(get_page_params),
    db: AsyncSession = Depends(get_db),
):
    """Extra-quantity requests waiting for a decision."""
    service = SubscriptionService(db)
    subscriptions, total = await service.list_pending_extra_requests(
        page=params.page, limit=params.limit
    )
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[_pending_to_item(s) for s in subscriptions],
            total=total,
            page=params.page,
            limit=params.limit,
        ),
    )


@router.put(
    "/subscriptions/{subscription_id}/extra-request",
    response_model=ApiResponse[SubscriptionResponse],
)
async def decide_extra_request(
    subscription_id: int,
    data: ExtraDecisionRequest,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject an extra-quantity request."""
    service = SubscriptionService(db)
    subscription = await service.decide_extra_request(
        admin.id, subscription_id, data.extra_request_status
    )
    return ApiResponse(
        message=f"Extra request {subscription.extra_request_status.lower()}",
        data=subscription_to_response(subscription),
    )


@router.put(
    "/subscriptions/{subscription_id}/status",
    response_model=ApiResponse[SubscriptionResponse],
)
async def update_subscription_status(
    subscription_id: int,
    data: DeliveryStatusRequest,
    admin: CurrentAdmin,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Mark a subscription Delivered or Missed."""
    service = SubscriptionService(db)
    subscription = await service.mark_delivery(
        admin.id, subscription_id, data.status, clock.now()
    )
    return ApiResponse(
        message="Subscription status updated",
        data=subscription_to_response(subscription),
    )
