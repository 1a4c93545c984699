"""Enum values shared with clients."""

from fastapi import APIRouter

from src.core.auth.models import PrincipalKind
from src.modules.slots.models import ExtraRequestStatus, SlotStatus, SubscriptionStatus
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/constants", tags=["Constants"])


@router.get("", response_model=ApiResponse[dict[str, list[str]]])
async def get_constants():
    """Status and role values used across the API."""
    return ApiResponse(
        data={
            "subscription_status": [s.value for s in SubscriptionStatus],
            "slot_status": [s.value for s in SlotStatus],
            "extra_request_status": [s.value for s in ExtraRequestStatus],
            "roles": [k.value for k in PrincipalKind],
        }
    )
