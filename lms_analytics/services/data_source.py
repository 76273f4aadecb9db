"""Read-only access to the relational store behind the analytics engine.

``AnalyticsDataSource`` is the seam the facade depends on. Every method is a
coroutine so a facade can issue its reads together with ``asyncio.gather``.
``SQLDataSource`` satisfies it with the synchronous ORM query layer, running
each query in a worker thread with a session of its own.
"""
import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from lms_analytics.core.database import SessionLocal
from lms_analytics.crud.course import course as crud_course
from lms_analytics.crud.course_analytics import course_analytics as crud_course_analytics
from lms_analytics.crud.enrollment import enrollment as crud_enrollment
from lms_analytics.crud.learner import (
    achievement as crud_achievement,
    certificate as crud_certificate,
    quiz_attempt as crud_quiz_attempt,
    user_analytics as crud_user_analytics,
)
from lms_analytics.crud.payment import payment as crud_payment
from lms_analytics.crud.progress import lesson_progress as crud_lesson_progress, progress as crud_progress
from lms_analytics.crud.review import review as crud_review
from lms_analytics.crud.user import user as crud_user
from lms_analytics.schemas.records import (
    AchievementRecord,
    CertificateRecord,
    CourseAnalyticsRecord,
    CourseCompletionRecord,
    CourseRecord,
    EnrollmentRecord,
    LessonProgressRecord,
    PaymentRecord,
    PopularCourseRecord,
    ProgressRecord,
    QuizAttemptRecord,
    ReviewRecord,
    UserAnalyticsRecord,
    UserSignupRecord,
)

RecordType = TypeVar("RecordType")


class AnalyticsDataSource(ABC):

    # Lookups

    @abstractmethod
    async def get_course(self, course_id: int) -> Optional[CourseRecord]:
        """``None`` when the course does not exist or is soft-deleted."""

    # Counts and sums

    @abstractmethod
    async def count_users(self) -> int:
        pass

    @abstractmethod
    async def count_active_users(self, since: datetime) -> int:
        pass

    @abstractmethod
    async def count_new_users(self, since: datetime) -> int:
        pass

    @abstractmethod
    async def count_published_courses(self) -> int:
        pass

    @abstractmethod
    async def count_enrollments(self, *, course_id: Optional[int] = None) -> int:
        pass

    @abstractmethod
    async def count_completed_progress(self, since: datetime) -> int:
        pass

    @abstractmethod
    async def sum_completed_payments(
        self,
        start_date: datetime,
        end_date: datetime,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> float:
        pass

    # Row lists

    @abstractmethod
    async def list_user_signups(self, start_date: datetime, end_date: datetime) -> List[UserSignupRecord]:
        pass

    @abstractmethod
    async def list_completed_payments(self, start_date: datetime, end_date: datetime) -> List[PaymentRecord]:
        pass

    @abstractmethod
    async def list_popular_courses(self, limit: int) -> List[PopularCourseRecord]:
        pass

    @abstractmethod
    async def list_courses(
        self,
        *,
        instructor_id: Optional[int] = None,
        published_only: bool = False,
    ) -> List[CourseRecord]:
        pass

    @abstractmethod
    async def list_enrollments(
        self,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[EnrollmentRecord]:
        """Newest first."""

    @abstractmethod
    async def list_progress(
        self,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[ProgressRecord]:
        pass

    @abstractmethod
    async def list_course_completion_counts(self) -> List[CourseCompletionRecord]:
        pass

    @abstractmethod
    async def list_lesson_progress(
        self,
        *,
        course_id: Optional[int] = None,
        user_id: Optional[int] = None,
        completed_since: Optional[datetime] = None,
    ) -> List[LessonProgressRecord]:
        pass

    @abstractmethod
    async def list_reviews(
        self,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ReviewRecord]:
        """Newest first."""

    @abstractmethod
    async def list_course_analytics(
        self,
        start_date: datetime,
        end_date: datetime,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> List[CourseAnalyticsRecord]:
        pass

    @abstractmethod
    async def list_quiz_attempts(self, user_id: int) -> List[QuizAttemptRecord]:
        pass

    @abstractmethod
    async def list_certificates(self, user_id: int) -> List[CertificateRecord]:
        pass

    @abstractmethod
    async def list_achievements(self, user_id: int) -> List[AchievementRecord]:
        """Most recently earned first."""

    @abstractmethod
    async def list_user_analytics(self, user_id: int, limit: int) -> List[UserAnalyticsRecord]:
        """Most recent day first."""


class SQLDataSource(AnalyticsDataSource):
    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def _call(self, query_fn: Callable[..., Any], *args, **kwargs) -> Any:
        db: Session = self.session_factory()
        try:
            return query_fn(db, *args, **kwargs)
        finally:
            db.close()

    async def _run(self, query_fn: Callable[..., Any], *args, **kwargs) -> Any:
        return await asyncio.to_thread(self._call, query_fn, *args, **kwargs)

    async def _rows(self, record_type: Type[RecordType], query_fn: Callable[..., Any], *args, **kwargs) -> List[RecordType]:
        def fetch(db: Session):
            return [record_type.model_validate(row) for row in query_fn(db, *args, **kwargs)]
        return await self._run(fetch)

    async def get_course(self, course_id: int) -> Optional[CourseRecord]:
        def fetch(db: Session):
            row = crud_course.get(db, course_id)
            return CourseRecord.model_validate(row) if row is not None else None
        return await self._run(fetch)

    async def count_users(self) -> int:
        return await self._run(crud_user.count)

    async def count_active_users(self, since: datetime) -> int:
        return await self._run(crud_user.count_active_since, since)

    async def count_new_users(self, since: datetime) -> int:
        return await self._run(crud_user.count_created_since, since)

    async def count_published_courses(self) -> int:
        return await self._run(crud_course.count_published)

    async def count_enrollments(self, *, course_id: Optional[int] = None) -> int:
        return await self._run(crud_enrollment.count_filtered, course_id=course_id)

    async def count_completed_progress(self, since: datetime) -> int:
        return await self._run(crud_progress.count_completed_since, since)

    async def sum_completed_payments(
        self,
        start_date: datetime,
        end_date: datetime,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> float:
        return await self._run(
            crud_payment.sum_completed,
            start_date=start_date,
            end_date=end_date,
            course_id=course_id,
            instructor_id=instructor_id,
        )

    async def list_user_signups(self, start_date: datetime, end_date: datetime) -> List[UserSignupRecord]:
        return await self._rows(UserSignupRecord, crud_user.get_signups_between, start_date, end_date)

    async def list_completed_payments(self, start_date: datetime, end_date: datetime) -> List[PaymentRecord]:
        return await self._rows(PaymentRecord, crud_payment.get_completed, start_date=start_date, end_date=end_date)

    async def list_popular_courses(self, limit: int) -> List[PopularCourseRecord]:
        return await self._rows(PopularCourseRecord, crud_course.get_popular, limit=limit)

    async def list_courses(
        self,
        *,
        instructor_id: Optional[int] = None,
        published_only: bool = False,
    ) -> List[CourseRecord]:
        return await self._rows(
            CourseRecord,
            crud_course.get_filtered,
            instructor_id=instructor_id,
            published_only=published_only,
        )

    async def list_enrollments(
        self,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[EnrollmentRecord]:
        return await self._rows(
            EnrollmentRecord,
            crud_enrollment.get_filtered,
            course_id=course_id,
            instructor_id=instructor_id,
            user_id=user_id,
        )

    async def list_progress(
        self,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[ProgressRecord]:
        return await self._rows(
            ProgressRecord,
            crud_progress.get_filtered,
            course_id=course_id,
            instructor_id=instructor_id,
            user_id=user_id,
        )

    async def list_course_completion_counts(self) -> List[CourseCompletionRecord]:
        return await self._rows(CourseCompletionRecord, crud_progress.get_completion_counts)

    async def list_lesson_progress(
        self,
        *,
        course_id: Optional[int] = None,
        user_id: Optional[int] = None,
        completed_since: Optional[datetime] = None,
    ) -> List[LessonProgressRecord]:
        return await self._rows(
            LessonProgressRecord,
            crud_lesson_progress.get_filtered,
            course_id=course_id,
            user_id=user_id,
            completed_since=completed_since,
        )

    async def list_reviews(
        self,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ReviewRecord]:
        return await self._rows(
            ReviewRecord,
            crud_review.get_filtered,
            course_id=course_id,
            instructor_id=instructor_id,
            limit=limit,
        )

    async def list_course_analytics(
        self,
        start_date: datetime,
        end_date: datetime,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> List[CourseAnalyticsRecord]:
        return await self._rows(
            CourseAnalyticsRecord,
            crud_course_analytics.get_filtered,
            course_id=course_id,
            instructor_id=instructor_id,
            start_date=start_date,
            end_date=end_date,
        )

    async def list_quiz_attempts(self, user_id: int) -> List[QuizAttemptRecord]:
        return await self._rows(QuizAttemptRecord, crud_quiz_attempt.get_by_user, user_id)

    async def list_certificates(self, user_id: int) -> List[CertificateRecord]:
        return await self._rows(CertificateRecord, crud_certificate.get_by_user, user_id)

    async def list_achievements(self, user_id: int) -> List[AchievementRecord]:
        return await self._rows(AchievementRecord, crud_achievement.get_by_user, user_id)

    async def list_user_analytics(self, user_id: int, limit: int) -> List[UserAnalyticsRecord]:
        return await self._rows(UserAnalyticsRecord, crud_user_analytics.get_recent_by_user, user_id, limit=limit)
