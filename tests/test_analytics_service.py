from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from lms_analytics.core.constants import CacheNamespace, CourseLevelEnum
from lms_analytics.schemas.analytics import DateRange
from lms_analytics.schemas.records import (
    AchievementRecord,
    CertificateRecord,
    CourseAnalyticsRecord,
    CourseRecord,
    EnrollmentRecord,
    LessonProgressRecord,
    PaymentRecord,
    ProgressRecord,
    QuizAttemptRecord,
    ReviewRecord,
    UserAnalyticsRecord,
)
from lms_analytics.services.analytics import AnalyticsService
from lms_analytics.utils.performance import performance_monitor
from tests.helpers.fakes import InMemoryDataSource


class TestPlatformMetrics:

    @pytest.mark.asyncio
    async def test_platform_totals(self, analytics_service):
        snapshot = await analytics_service.get_platform_metrics()

        assert snapshot.total_users == 100
        assert snapshot.new_users_this_month == 10
        assert snapshot.active_users == 40
        assert snapshot.total_courses == 5
        assert snapshot.total_enrollments == 50
        assert snapshot.courses_completed_this_month == 20
        assert snapshot.total_revenue == 500.0
        assert snapshot.average_completion_rate == 40.0

    @pytest.mark.asyncio
    async def test_completion_rate_reads_grouped_counts(self, analytics_service, platform_source):
        await analytics_service.get_platform_metrics()

        assert platform_source.calls["list_course_completion_counts"] == 1
        assert platform_source.calls["list_progress"] == 0

    @pytest.mark.asyncio
    async def test_platform_series(self, analytics_service):
        snapshot = await analytics_service.get_platform_metrics()

        assert [(point.month, point.revenue) for point in snapshot.revenue_by_month] == [("2024-06", 500.0)]
        assert [(point.date, point.new_users) for point in snapshot.user_growth] == [("2024-06-10", 10)]
        assert len(snapshot.popular_courses) == 5
        assert snapshot.popular_courses[-1].average_rating == 0.0

    @pytest.mark.asyncio
    async def test_snapshot_is_immutable(self, analytics_service):
        snapshot = await analytics_service.get_platform_metrics()
        with pytest.raises(ValidationError):
            snapshot.total_users = 0

    @pytest.mark.asyncio
    async def test_second_call_hits_cache(self, analytics_service, platform_source):
        first = await analytics_service.get_platform_metrics()
        second = await analytics_service.get_platform_metrics()

        assert first == second
        assert platform_source.calls["count_users"] == 1
        assert "platform-metrics" in performance_monitor.get_metrics()

    @pytest.mark.asyncio
    async def test_date_ranges_are_cached_separately(self, analytics_service, platform_source, now):
        narrow = DateRange(from_=now - timedelta(days=2, hours=12), to=now)

        default_snapshot = await analytics_service.get_platform_metrics()
        narrow_snapshot = await analytics_service.get_platform_metrics(narrow)

        assert platform_source.calls["sum_completed_payments"] == 2
        assert default_snapshot.total_revenue == 500.0
        assert narrow_snapshot.total_revenue == 200.0

    @pytest.mark.asyncio
    async def test_data_source_failure_propagates_and_is_not_cached(self, analytics_service, platform_source, cache_manager):
        platform_source.failures["sum_completed_payments"] = ConnectionError("database unreachable")

        with pytest.raises(ConnectionError):
            await analytics_service.get_platform_metrics()
        assert cache_manager.get(CacheNamespace.PLATFORM_METRICS, "platform_metrics::default") is None

        del platform_source.failures["sum_completed_payments"]
        snapshot = await analytics_service.get_platform_metrics()
        assert snapshot.total_revenue == 500.0

    @pytest.mark.asyncio
    async def test_snapshot_expires(self, analytics_service, platform_source, fake_clock):
        await analytics_service.get_platform_metrics()
        fake_clock.advance(15 * 60 + 1)
        await analytics_service.get_platform_metrics()
        assert platform_source.calls["count_users"] == 2


def test_date_range_rejects_reversed_bounds():
    with pytest.raises(ValidationError):
        DateRange(from_=datetime(2024, 6, 2), to=datetime(2024, 6, 1))


def test_date_range_cache_key():
    date_range = DateRange(**{"from": datetime(2024, 6, 1), "to": datetime(2024, 6, 30)})
    assert date_range.cache_key() == "2024-06-01T00:00:00|2024-06-30T00:00:00"


@pytest.fixture
def instructor_source(now):
    courses = [
        CourseRecord(id=1, title="Statistics", instructor_id=7, published=True),
        CourseRecord(id=2, title="Probability", instructor_id=7, published=True),
        CourseRecord(id=3, title="Cooking", instructor_id=8, published=True),
    ]
    enrollments = [
        EnrollmentRecord(id=1, user_id=1, course_id=1, created_at=now - timedelta(days=3)),
        EnrollmentRecord(id=2, user_id=2, course_id=1, created_at=now - timedelta(days=2)),
        EnrollmentRecord(id=3, user_id=1, course_id=2, created_at=now - timedelta(days=1)),
        EnrollmentRecord(id=4, user_id=3, course_id=2, created_at=now - timedelta(hours=5)),
        EnrollmentRecord(id=5, user_id=9, course_id=3, created_at=now),
    ]
    progress = [
        ProgressRecord(user_id=1, course_id=1, completed=True, last_accessed_at=now - timedelta(days=1)),
        ProgressRecord(user_id=2, course_id=1, completed=False, last_accessed_at=now - timedelta(days=10)),
        ProgressRecord(user_id=1, course_id=2, completed=False, last_accessed_at=now - timedelta(days=2)),
    ]
    reviews = [
        ReviewRecord(course_id=1, rating=5),
        ReviewRecord(course_id=2, rating=4),
        ReviewRecord(course_id=3, rating=1),
    ]
    payments = [
        PaymentRecord(amount=40.0, course_id=1, created_at=now - timedelta(days=1)),
        PaymentRecord(amount=60.0, course_id=2, created_at=now - timedelta(days=1)),
        PaymentRecord(amount=999.0, course_id=3, created_at=now - timedelta(days=1)),
    ]
    course_analytics = [
        CourseAnalyticsRecord(course_id=1, date=date(2024, 5, 20), total_enrollments=1, total_revenue=40.0, total_views=80),
        CourseAnalyticsRecord(course_id=2, date=date(2024, 6, 10), total_enrollments=2, total_revenue=60.0, total_views=20),
    ]
    lesson_progress = {
        1: [
            LessonProgressRecord(user_id=1, lesson_id=11, lesson_title="Mean", lesson_position=1, completed=True, watch_time=300),
            LessonProgressRecord(user_id=2, lesson_id=11, lesson_title="Mean", lesson_position=1, completed=True, watch_time=200),
            LessonProgressRecord(user_id=1, lesson_id=12, lesson_title="Variance", lesson_position=2, completed=True, watch_time=100),
            LessonProgressRecord(user_id=2, lesson_id=12, lesson_title="Variance", lesson_position=2, completed=False, watch_time=50),
        ]
    }
    return InMemoryDataSource(
        courses=courses,
        enrollments=enrollments,
        progress=progress,
        reviews=reviews,
        payments=payments,
        course_analytics=course_analytics,
        lesson_progress=lesson_progress,
    )


class TestInstructorMetrics:

    @pytest.mark.asyncio
    async def test_instructor_snapshot(self, instructor_source, cache_manager, now):
        service = AnalyticsService(instructor_source, cache_manager, now_fn=lambda: now)

        snapshot = await service.get_instructor_metrics(7)

        assert snapshot.instructor_id == 7
        assert snapshot.total_courses == 2
        assert snapshot.total_students == 3
        assert snapshot.total_revenue == 100.0
        assert snapshot.average_rating == 4.5
        assert snapshot.completion_rate == 25.0
        assert snapshot.engagement_rate == 50.0
        assert [course.id for course in snapshot.top_courses] == [1, 2]
        assert [activity.user_id for activity in snapshot.recent_activity] == [3, 1, 2, 1]
        assert [(stat.month, stat.revenue) for stat in snapshot.monthly_stats] == [("2024-05", 40.0), ("2024-06", 60.0)]

    @pytest.mark.asyncio
    async def test_instructor_without_courses(self, instructor_source, cache_manager, now):
        service = AnalyticsService(instructor_source, cache_manager, now_fn=lambda: now)

        snapshot = await service.get_instructor_metrics(99)

        assert snapshot.total_courses == 0
        assert snapshot.completion_rate == 0.0
        assert snapshot.top_courses == ()


class TestCourseMetrics:

    @pytest.mark.asyncio
    async def test_course_snapshot(self, instructor_source, cache_manager, now):
        service = AnalyticsService(instructor_source, cache_manager, now_fn=lambda: now)

        snapshot = await service.get_course_metrics(1)

        assert snapshot.total_enrollments == 2
        assert snapshot.completion_rate == 50.0
        assert snapshot.average_rating == 5.0
        assert snapshot.total_revenue == 40.0
        assert snapshot.conversion_rate == 2.5
        assert [point.title for point in snapshot.drop_off_points] == ["Variance", "Mean"]
        assert [lesson.total_watch_time for lesson in snapshot.engagement_by_lesson] == [500, 150]
        assert len(snapshot.student_feedback) == 1

    @pytest.mark.asyncio
    async def test_course_without_enrollments(self, cache_manager, now):
        source = InMemoryDataSource(courses=[CourseRecord(id=5, title="Fresh", published=True)])
        service = AnalyticsService(source, cache_manager, now_fn=lambda: now)

        snapshot = await service.get_course_metrics(5)

        assert snapshot.total_enrollments == 0
        assert snapshot.completion_rate == 0.0
        assert snapshot.conversion_rate == 0.0
        assert snapshot.drop_off_points == ()

    @pytest.mark.asyncio
    async def test_unknown_course_is_not_found_and_not_cached(self, instructor_source, cache_manager, now):
        service = AnalyticsService(instructor_source, cache_manager, now_fn=lambda: now)

        with pytest.raises(HTTPException) as exc_info:
            await service.get_course_metrics(404)

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Course not found"
        assert instructor_source.calls["count_enrollments"] == 0
        assert cache_manager.get(CacheNamespace.COURSE_METRICS, "course_metrics:404:default") is None

    @pytest.mark.asyncio
    async def test_course_removed_after_caching_is_not_found(self, instructor_source, cache_manager, now):
        service = AnalyticsService(instructor_source, cache_manager, now_fn=lambda: now)

        await service.get_course_metrics(1)
        instructor_source.courses = [course for course in instructor_source.courses if course.id != 1]

        with pytest.raises(HTTPException):
            await service.get_course_metrics(1)
        assert instructor_source.calls["get_course"] == 2


class TestStudentMetrics:

    @pytest.mark.asyncio
    async def test_student_snapshot(self, cache_manager, now):
        source = InMemoryDataSource(
            courses=[
                CourseRecord(id=1, title="Intro", category="data", level=CourseLevelEnum.BEGINNER, published=True),
                CourseRecord(id=2, title="Deep Dive", category="data", level=CourseLevelEnum.ADVANCED, published=True),
                CourseRecord(id=3, title="Design", category="art", level=CourseLevelEnum.BEGINNER, published=True),
            ],
            enrollments=[
                EnrollmentRecord(id=1, user_id=4, course_id=1),
                EnrollmentRecord(id=2, user_id=4, course_id=2),
            ],
            progress=[
                ProgressRecord(user_id=4, course_id=1, completed=True),
                ProgressRecord(user_id=4, course_id=2, completed=False),
            ],
            lesson_progress={
                1: [
                    LessonProgressRecord(user_id=4, lesson_id=1, lesson_title="A", completed=True, completed_at=now - timedelta(days=1)),
                    LessonProgressRecord(user_id=4, lesson_id=2, lesson_title="B", completed=True, completed_at=now - timedelta(days=60)),
                ]
            },
            quiz_attempts={4: [QuizAttemptRecord(score=80), QuizAttemptRecord(score=90)]},
            certificates={4: [CertificateRecord(course_id=1)]},
            achievements={4: [AchievementRecord(type="streak", title="Seven days", points=50)]},
            user_analytics={4: [
                UserAnalyticsRecord(date=date(2024, 6, 14), total_watch_time=1200, current_streak=6),
                UserAnalyticsRecord(date=date(2024, 6, 13), total_watch_time=600, current_streak=5),
            ]},
        )
        service = AnalyticsService(source, cache_manager, now_fn=lambda: now)

        snapshot = await service.get_student_metrics(4)

        assert snapshot.courses_enrolled == 2
        assert snapshot.courses_completed == 1
        assert snapshot.certificates_earned == 1
        assert snapshot.total_watch_time == 1800
        assert snapshot.current_streak == 6
        assert snapshot.average_score == 85.0
        assert [course.id for course in snapshot.learning_path] == [3, 2]
        assert snapshot.achievements[0].title == "Seven days"
        assert [(point.week, point.completed_lessons) for point in snapshot.weekly_progress] == [("2024-W24", 1)]

    @pytest.mark.asyncio
    async def test_unknown_student_gets_empty_snapshot(self, cache_manager, now):
        source = InMemoryDataSource(
            courses=[CourseRecord(id=1, title="Intro", level=CourseLevelEnum.BEGINNER, published=True)],
        )
        service = AnalyticsService(source, cache_manager, now_fn=lambda: now)

        snapshot = await service.get_student_metrics(123)

        assert snapshot.courses_enrolled == 0
        assert snapshot.current_streak == 0
        assert [course.id for course in snapshot.learning_path] == [1]
