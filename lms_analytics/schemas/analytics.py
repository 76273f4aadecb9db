from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from lms_analytics.core.constants import CourseLevelEnum
from lms_analytics.schemas.records import UTCDateTime


class DateRange(BaseModel):
    """Inclusive ``{from, to}`` window passed by dashboard consumers."""
    from_: UTCDateTime = Field(..., alias="from")
    to: UTCDateTime

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="after")
    def check_order(self):
        if self.from_ > self.to:
            raise ValueError("'from' must not be after 'to'")
        return self

    def cache_key(self) -> str:
        return f"{self.from_.isoformat()}|{self.to.isoformat()}"


class SnapshotModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PopularCourse(SnapshotModel):
    id: int
    title: str
    enrollments: int
    average_rating: float
    thumbnail: Optional[str] = None

class UserGrowthPoint(SnapshotModel):
    date: str
    new_users: int

class RevenuePoint(SnapshotModel):
    month: str
    revenue: float

class BucketTotal(SnapshotModel):
    bucket: str
    total: float

class PlatformMetrics(SnapshotModel):
    total_users: int
    total_courses: int
    total_enrollments: int
    total_revenue: float
    active_users: int
    new_users_this_month: int
    courses_completed_this_month: int
    average_completion_rate: float
    popular_courses: Tuple[PopularCourse, ...] = ()
    revenue_by_month: Tuple[RevenuePoint, ...] = ()
    user_growth: Tuple[UserGrowthPoint, ...] = ()


class TopCourse(SnapshotModel):
    id: int
    title: str
    enrollments: int
    completion_rate: float
    average_rating: float
    revenue: float

class MonthlyStat(SnapshotModel):
    month: str
    enrollments: int
    revenue: float
    completion_rate: float
    average_rating: float

class RecentActivity(SnapshotModel):
    type: str
    user_id: int
    course_id: int
    occurred_at: datetime

class InstructorMetrics(SnapshotModel):
    instructor_id: int
    total_courses: int
    total_students: int
    total_revenue: float
    average_rating: float
    completion_rate: float
    engagement_rate: float
    top_courses: Tuple[TopCourse, ...] = ()
    recent_activity: Tuple[RecentActivity, ...] = ()
    monthly_stats: Tuple[MonthlyStat, ...] = ()


class RecommendedCourse(SnapshotModel):
    id: int
    title: str
    thumbnail: Optional[str] = None
    level: CourseLevelEnum

class AchievementSummary(SnapshotModel):
    type: str
    title: str
    description: Optional[str] = None
    earned_at: Optional[datetime] = None
    points: int

class WeeklyProgressPoint(SnapshotModel):
    week: str
    completed_lessons: int

class StudentMetrics(SnapshotModel):
    student_id: int
    courses_enrolled: int
    courses_completed: int
    certificates_earned: int
    total_watch_time: int
    current_streak: int
    average_score: float
    learning_path: Tuple[RecommendedCourse, ...] = ()
    achievements: Tuple[AchievementSummary, ...] = ()
    weekly_progress: Tuple[WeeklyProgressPoint, ...] = ()


class DropOffPoint(SnapshotModel):
    lesson_id: int
    title: str
    position: int
    started: int
    completed: int
    completion_rate: float
    drop_off_rate: float

class LessonEngagement(SnapshotModel):
    lesson_id: int
    title: str
    position: int
    total_watch_time: int
    total_students: int
    completed: int
    completion_rate: float

class StudentFeedback(SnapshotModel):
    rating: Optional[float] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    user_name: Optional[str] = None

class CourseMetrics(SnapshotModel):
    course_id: int
    total_enrollments: int
    completion_rate: float
    average_rating: float
    total_revenue: float
    average_watch_time: int
    drop_off_points: Tuple[DropOffPoint, ...] = ()
    student_feedback: Tuple[StudentFeedback, ...] = ()
    engagement_by_lesson: Tuple[LessonEngagement, ...] = ()
    conversion_rate: float
