import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from fastapi import HTTPException, status

from lms_analytics.core.cache import CacheManager
from lms_analytics.core.cache_config import CACHE_KEYS, SNAPSHOT_TTL
from lms_analytics.core.config import settings
from lms_analytics.core.constants import (
    ACTIVE_USER_WINDOW_DAYS,
    COURSE_REVIEWS_LIMIT,
    POPULAR_COURSES_LIMIT,
    STUDENT_FEEDBACK_LIMIT,
    USER_ANALYTICS_DAYS,
    WEEKLY_PROGRESS_WINDOW_DAYS,
    CacheNamespace,
)
from lms_analytics.schemas.analytics import (
    CourseMetrics,
    DateRange,
    InstructorMetrics,
    PlatformMetrics,
    StudentMetrics,
)
from lms_analytics.services import metrics
from lms_analytics.services.data_source import AnalyticsDataSource
from lms_analytics.utils.cache import cached_query
from lms_analytics.utils.performance import performance_monitor
from lms_analytics.utils.time import subtract_months


class AnalyticsService:
    """Computes and caches the four dashboard snapshots.

    Every method fans its reads out to the data source concurrently, folds
    the rows with the pure functions in ``services.metrics`` and memoizes the
    frozen result in its own cache namespace. Data-source errors propagate;
    a failed computation is never cached.
    """

    def __init__(
        self,
        data_source: AnalyticsDataSource,
        cache: CacheManager,
        now_fn: Callable[[], datetime] = datetime.utcnow,
    ):
        self.data_source = data_source
        self.cache = cache
        self.now_fn = now_fn

    def _resolve_range(self, date_range: Optional[DateRange], now: datetime) -> Tuple[datetime, datetime]:
        if date_range is not None:
            return date_range.from_, date_range.to
        return now - timedelta(days=settings.DEFAULT_DATE_RANGE_DAYS), now

    @staticmethod
    def _range_key(date_range: Optional[DateRange]) -> str:
        return date_range.cache_key() if date_range is not None else "default"

    async def _cached(self, namespace: CacheNamespace, key: str, compute_fn):
        stop = performance_monitor.start_timer(namespace.value)
        try:
            return await cached_query(self.cache, namespace, key, compute_fn, ttl=SNAPSHOT_TTL[namespace])
        finally:
            stop()

    async def get_platform_metrics(self, date_range: Optional[DateRange] = None) -> PlatformMetrics:
        key = CACHE_KEYS["platform_metrics"].format(self._range_key(date_range))
        return await self._cached(
            CacheNamespace.PLATFORM_METRICS, key, lambda: self._compute_platform_metrics(date_range)
        )

    async def _compute_platform_metrics(self, date_range: Optional[DateRange]) -> PlatformMetrics:
        now = self.now_fn()
        start_date, end_date = self._resolve_range(date_range, now)
        month_start = subtract_months(now, 1)
        source = self.data_source

        (
            total_users,
            active_users,
            new_users_this_month,
            total_courses,
            total_enrollments,
            courses_completed_this_month,
            total_revenue,
            popular_courses,
            payments,
            signups,
            completion_counts,
        ) = await asyncio.gather(
            source.count_users(),
            source.count_active_users(now - timedelta(days=ACTIVE_USER_WINDOW_DAYS)),
            source.count_new_users(month_start),
            source.count_published_courses(),
            source.count_enrollments(),
            source.count_completed_progress(month_start),
            source.sum_completed_payments(start_date, end_date),
            source.list_popular_courses(POPULAR_COURSES_LIMIT),
            source.list_completed_payments(start_date, end_date),
            source.list_user_signups(start_date, end_date),
            source.list_course_completion_counts(),
        )

        return PlatformMetrics(
            total_users=total_users,
            total_courses=total_courses,
            total_enrollments=total_enrollments,
            total_revenue=metrics.round2(total_revenue or 0.0),
            active_users=active_users,
            new_users_this_month=new_users_this_month,
            courses_completed_this_month=courses_completed_this_month,
            average_completion_rate=metrics.average_completion_rate(completion_counts),
            popular_courses=tuple(metrics.popular_courses(popular_courses)),
            revenue_by_month=tuple(metrics.revenue_by_month(payments)),
            user_growth=tuple(metrics.user_growth_series(signups)),
        )

    async def get_instructor_metrics(self, instructor_id: int, date_range: Optional[DateRange] = None) -> InstructorMetrics:
        key = CACHE_KEYS["instructor_metrics"].format(instructor_id, self._range_key(date_range))
        return await self._cached(
            CacheNamespace.INSTRUCTOR_METRICS, key, lambda: self._compute_instructor_metrics(instructor_id, date_range)
        )

    async def _compute_instructor_metrics(self, instructor_id: int, date_range: Optional[DateRange]) -> InstructorMetrics:
        now = self.now_fn()
        start_date, end_date = self._resolve_range(date_range, now)
        source = self.data_source

        courses, enrollments, progress, reviews, course_analytics, total_revenue = await asyncio.gather(
            source.list_courses(instructor_id=instructor_id),
            source.list_enrollments(instructor_id=instructor_id),
            source.list_progress(instructor_id=instructor_id),
            source.list_reviews(instructor_id=instructor_id),
            source.list_course_analytics(start_date, end_date, instructor_id=instructor_id),
            source.sum_completed_payments(start_date, end_date, instructor_id=instructor_id),
        )

        return InstructorMetrics(
            instructor_id=instructor_id,
            total_courses=len(courses),
            total_students=len({row.user_id for row in enrollments}),
            total_revenue=metrics.round2(total_revenue or 0.0),
            average_rating=metrics.average_rating(reviews),
            completion_rate=metrics.enrollment_completion_rate(enrollments, progress),
            engagement_rate=metrics.engagement_rate(enrollments, progress, now),
            top_courses=tuple(metrics.top_courses(courses, enrollments, progress, reviews, course_analytics)),
            recent_activity=tuple(metrics.recent_activity(enrollments)),
            monthly_stats=tuple(metrics.monthly_stats(course_analytics)),
        )

    async def get_student_metrics(self, student_id: int) -> StudentMetrics:
        key = CACHE_KEYS["student_metrics"].format(student_id)
        return await self._cached(
            CacheNamespace.STUDENT_METRICS, key, lambda: self._compute_student_metrics(student_id)
        )

    async def _compute_student_metrics(self, student_id: int) -> StudentMetrics:
        now = self.now_fn()
        source = self.data_source

        (
            enrollments,
            progress,
            certificates,
            user_analytics,
            quiz_attempts,
            catalog,
            achievements,
            lesson_progress,
        ) = await asyncio.gather(
            source.list_enrollments(user_id=student_id),
            source.list_progress(user_id=student_id),
            source.list_certificates(student_id),
            source.list_user_analytics(student_id, USER_ANALYTICS_DAYS),
            source.list_quiz_attempts(student_id),
            source.list_courses(published_only=True),
            source.list_achievements(student_id),
            source.list_lesson_progress(
                user_id=student_id,
                completed_since=now - timedelta(days=WEEKLY_PROGRESS_WINDOW_DAYS),
            ),
        )

        return StudentMetrics(
            student_id=student_id,
            courses_enrolled=len(enrollments),
            courses_completed=sum(1 for row in progress if row.completed),
            certificates_earned=len(certificates),
            total_watch_time=sum(row.total_watch_time for row in user_analytics),
            current_streak=metrics.current_streak(user_analytics),
            average_score=metrics.average_score(quiz_attempts),
            learning_path=tuple(metrics.recommend_courses(progress, catalog)),
            achievements=tuple(metrics.achievement_summaries(achievements)),
            weekly_progress=tuple(metrics.weekly_progress(lesson_progress)),
        )

    async def get_course_metrics(self, course_id: int, date_range: Optional[DateRange] = None) -> CourseMetrics:
        course = await self.data_source.get_course(course_id)
        if course is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

        key = CACHE_KEYS["course_metrics"].format(course_id, self._range_key(date_range))
        return await self._cached(
            CacheNamespace.COURSE_METRICS, key, lambda: self._compute_course_metrics(course_id, date_range)
        )

    async def _compute_course_metrics(self, course_id: int, date_range: Optional[DateRange]) -> CourseMetrics:
        now = self.now_fn()
        start_date, end_date = self._resolve_range(date_range, now)
        source = self.data_source

        total_enrollments, progress, reviews, total_revenue, lesson_progress, course_analytics = await asyncio.gather(
            source.count_enrollments(course_id=course_id),
            source.list_progress(course_id=course_id),
            source.list_reviews(course_id=course_id, limit=COURSE_REVIEWS_LIMIT),
            source.sum_completed_payments(start_date, end_date, course_id=course_id),
            source.list_lesson_progress(course_id=course_id),
            source.list_course_analytics(start_date, end_date, course_id=course_id),
        )

        completed = sum(1 for row in progress if row.completed)
        return CourseMetrics(
            course_id=course_id,
            total_enrollments=total_enrollments,
            completion_rate=metrics.round2(metrics.percentage(completed, total_enrollments) or 0.0),
            average_rating=metrics.average_rating(reviews),
            total_revenue=metrics.round2(total_revenue or 0.0),
            average_watch_time=metrics.average_watch_time(progress),
            drop_off_points=tuple(metrics.drop_off_points(lesson_progress)),
            student_feedback=tuple(metrics.student_feedback(reviews, STUDENT_FEEDBACK_LIMIT)),
            engagement_by_lesson=tuple(metrics.lesson_engagement(lesson_progress)),
            conversion_rate=metrics.conversion_rate(total_enrollments, course_analytics),
        )
