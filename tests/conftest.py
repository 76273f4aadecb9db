import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from lms_analytics.core.cache import CacheManager, NamespacedCacheStore
from lms_analytics.core.config import settings
from lms_analytics.schemas.records import (
    CourseRecord,
    EnrollmentRecord,
    PaymentRecord,
    PopularCourseRecord,
    ProgressRecord,
)
from lms_analytics.services.analytics import AnalyticsService
from lms_analytics.utils.events import EventBus
from lms_analytics.utils.performance import performance_monitor
from tests.helpers.fakes import FakeClock, FakeUser, InMemoryDataSource

NOW = datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def now():
    return NOW

@pytest.fixture
def fake_clock():
    return FakeClock()

@pytest.fixture
def cache_store(fake_clock):
    return NamespacedCacheStore(timer=fake_clock)

@pytest.fixture
def cache_manager(cache_store):
    return CacheManager(cache_store)

@pytest.fixture(autouse=True)
def _reset_performance_monitor():
    performance_monitor.clear()
    yield
    performance_monitor.clear()


def build_platform_source(now: datetime) -> InMemoryDataSource:
    """100 users (10 new this month), 5 courses, 50 enrollments, 20 completions, $500."""
    recent = now - timedelta(days=5)
    old = now - timedelta(days=200)
    users = [
        FakeUser(
            id=i,
            created_at=recent if i <= 10 else old,
            last_activity_at=now - timedelta(days=2) if i <= 40 else now - timedelta(days=90),
        )
        for i in range(1, 101)
    ]
    courses = [
        CourseRecord(id=c, title=f"Course {c}", category=f"cat-{c}", instructor_id=1000, published=True)
        for c in range(1, 6)
    ]
    enrollments = [
        EnrollmentRecord(id=i, user_id=i, course_id=(i - 1) % 5 + 1, created_at=now - timedelta(days=10))
        for i in range(1, 51)
    ]
    # 10 progress rows per course, 4 of them completed
    progress = [
        ProgressRecord(
            user_id=i,
            course_id=(i - 1) % 5 + 1,
            completed=i <= 20,
            completed_at=now - timedelta(days=3) if i <= 20 else None,
            watch_time=600,
        )
        for i in range(1, 51)
    ]
    payments = [
        PaymentRecord(amount=100.0, created_at=now - timedelta(days=d), course_id=1)
        for d in (1, 2, 3, 4, 5)
    ]
    popular = [
        PopularCourseRecord(id=c, title=f"Course {c}", enrollment_count=10, average_rating=None if c == 5 else 4.5)
        for c in range(1, 6)
    ]
    return InMemoryDataSource(
        users=users,
        courses=courses,
        enrollments=enrollments,
        progress=progress,
        payments=payments,
        popular_courses=popular,
    )


@pytest.fixture
def platform_source(now):
    return build_platform_source(now)

@pytest.fixture
def analytics_service(platform_source, cache_manager, now):
    return AnalyticsService(platform_source, cache_manager, now_fn=lambda: now)

@pytest.fixture
def client(platform_source, now, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LOG_DIR", str(tmp_path / "logs"))
    import main

    app = main.create_app(data_source=platform_source, bus=EventBus())
    app.state.analytics_service.now_fn = lambda: now
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
