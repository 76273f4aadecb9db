from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from lms_analytics.core.cache import CacheManager
from lms_analytics.schemas.analytics import (
    CourseMetrics,
    DateRange,
    InstructorMetrics,
    PlatformMetrics,
    StudentMetrics,
)
from lms_analytics.schemas.response import APIResponse
from lms_analytics.services.analytics import AnalyticsService
from lms_analytics.utils import deps
from lms_analytics.utils.performance import performance_monitor

router = APIRouter()


@router.get("/platform", response_model=APIResponse[PlatformMetrics], response_model_by_alias=True)
async def get_platform_metrics(
    *,
    service: AnalyticsService = Depends(deps.get_analytics_service),
    date_range: Optional[DateRange] = Depends(deps.get_date_range),
):
    data = await service.get_platform_metrics(date_range)
    return APIResponse(message="Platform metrics retrieved successfully", data=data)


@router.get("/instructor/{instructor_id}", response_model=APIResponse[InstructorMetrics], response_model_by_alias=True)
async def get_instructor_metrics(
    *,
    instructor_id: int,
    service: AnalyticsService = Depends(deps.get_analytics_service),
    date_range: Optional[DateRange] = Depends(deps.get_date_range),
):
    data = await service.get_instructor_metrics(instructor_id, date_range)
    return APIResponse(message="Instructor metrics retrieved successfully", data=data)


@router.get("/student/{student_id}", response_model=APIResponse[StudentMetrics], response_model_by_alias=True)
async def get_student_metrics(
    *,
    student_id: int,
    service: AnalyticsService = Depends(deps.get_analytics_service),
):
    data = await service.get_student_metrics(student_id)
    return APIResponse(message="Student metrics retrieved successfully", data=data)


@router.get("/course/{course_id}", response_model=APIResponse[CourseMetrics], response_model_by_alias=True)
async def get_course_metrics(
    *,
    course_id: int,
    service: AnalyticsService = Depends(deps.get_analytics_service),
    date_range: Optional[DateRange] = Depends(deps.get_date_range),
):
    data = await service.get_course_metrics(course_id, date_range)
    return APIResponse(message="Course metrics retrieved successfully", data=data)


@router.get("/cache/stats", response_model=APIResponse[Dict[str, Any]])
async def get_cache_stats(cache: CacheManager = Depends(deps.get_cache_manager)):
    return APIResponse(
        message="Cache statistics retrieved successfully",
        data={
            "namespaces": cache.get_stats(),
            "timings": performance_monitor.get_metrics(),
        },
    )
