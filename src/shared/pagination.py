from typing import Literal

from fastapi import Query

from src.core.config import settings
from src.shared.schemas.base import PageParams


def get_page_params(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1, le=500),
    sort_by: str | None = Query(None),
    sort_order: Literal["asc", "desc"] = Query("desc"),
) -> PageParams:
    """Query-string pagination shared by list endpoints."""
    return PageParams(
        page=page,
        limit=limit or settings.default_page_size,
        sort_by=sort_by,
        sort_order=sort_order,
    )
