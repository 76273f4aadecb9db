from datetime import datetime
from typing import Optional

from fastapi import HTTPException, Query, Request, status
from pydantic import ValidationError

from lms_analytics.core.cache import CacheManager
from lms_analytics.schemas.analytics import DateRange
from lms_analytics.services.analytics import AnalyticsService


def get_analytics_service(request: Request) -> AnalyticsService:
    return request.app.state.analytics_service

def get_cache_manager(request: Request) -> CacheManager:
    return request.app.state.cache_manager

def get_date_range(
    from_: Optional[datetime] = Query(None, alias="from"),
    to: Optional[datetime] = Query(None),
) -> Optional[DateRange]:
    """Both bounds or nothing: a half-open range falls back to the default window."""
    if from_ is None or to is None:
        return None
    try:
        return DateRange(from_=from_, to=to)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="'from' must not be after 'to'",
        )
