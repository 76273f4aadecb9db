"""Typed shapes of the raw rows read from the data source.

Timestamps are normalised to naive UTC so they compare with ``datetime.utcnow()``.
Fields that the aggregator can survive without are optional; a row missing
one of them is left out of the calculation that needs it.
"""
from datetime import date as Date, datetime, timezone
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict

from lms_analytics.core.constants import CourseLevelEnum


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]


class RecordBase(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class UserSignupRecord(RecordBase):
    user_id: int
    created_at: Optional[UTCDateTime] = None

class CourseRecord(RecordBase):
    id: int
    title: str
    thumbnail: Optional[str] = None
    level: CourseLevelEnum = CourseLevelEnum.BEGINNER
    category: Optional[str] = None
    instructor_id: Optional[int] = None
    published: bool = False

class PopularCourseRecord(RecordBase):
    id: int
    title: str
    thumbnail: Optional[str] = None
    enrollment_count: int = 0
    average_rating: Optional[float] = None

class EnrollmentRecord(RecordBase):
    id: int
    user_id: int
    course_id: int
    created_at: Optional[UTCDateTime] = None

class ProgressRecord(RecordBase):
    user_id: int
    course_id: int
    completed: bool = False
    completed_at: Optional[UTCDateTime] = None
    watch_time: Optional[int] = None
    last_accessed_at: Optional[UTCDateTime] = None

class CourseCompletionRecord(RecordBase):
    course_id: int
    completed: int = 0
    total: int = 0

class LessonProgressRecord(RecordBase):
    user_id: int
    lesson_id: int
    lesson_title: str
    lesson_position: int = 0
    completed: bool = False
    completed_at: Optional[UTCDateTime] = None
    watch_time: Optional[int] = None

class PaymentRecord(RecordBase):
    amount: Optional[float] = None
    created_at: Optional[UTCDateTime] = None
    course_id: Optional[int] = None

class ReviewRecord(RecordBase):
    course_id: int
    rating: Optional[float] = None
    comment: Optional[str] = None
    created_at: Optional[UTCDateTime] = None
    user_name: Optional[str] = None

class QuizAttemptRecord(RecordBase):
    quiz_title: Optional[str] = None
    score: Optional[float] = None
    created_at: Optional[UTCDateTime] = None

class CertificateRecord(RecordBase):
    course_id: int
    course_title: Optional[str] = None
    issued_at: Optional[UTCDateTime] = None

class AchievementRecord(RecordBase):
    type: str
    title: str
    description: Optional[str] = None
    points: int = 0
    earned_at: Optional[UTCDateTime] = None

class UserAnalyticsRecord(RecordBase):
    date: Date
    total_watch_time: int = 0
    current_streak: int = 0

class CourseAnalyticsRecord(RecordBase):
    course_id: int
    date: Optional[Date] = None
    total_views: int = 0
    total_enrollments: int = 0
    total_revenue: float = 0.0
    completion_rate: Optional[float] = None
    average_rating: Optional[float] = None
