"""Pure aggregation functions behind the analytics snapshots.

Nothing here performs I/O. Rows are assumed to be validated by the data
layer; a row missing the field a calculation needs is skipped by that
calculation only. Rates are percentages, and any group with an empty
denominator is left out instead of producing a zero or a division error.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

from lms_analytics.core.constants import (
    CourseLevelEnum,
    DROP_OFF_LIMIT,
    ENGAGEMENT_WINDOW_DAYS,
    RECENT_ACTIVITY_LIMIT,
    RECOMMENDATION_LIMIT,
    TOP_COURSES_LIMIT,
    TimeBucket,
)
from lms_analytics.schemas.analytics import (
    AchievementSummary,
    BucketTotal,
    DropOffPoint,
    LessonEngagement,
    MonthlyStat,
    PopularCourse,
    RecentActivity,
    RecommendedCourse,
    RevenuePoint,
    StudentFeedback,
    TopCourse,
    UserGrowthPoint,
    WeeklyProgressPoint,
)
from lms_analytics.schemas.records import (
    AchievementRecord,
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
from lms_analytics.utils.time import bucket_key

T = TypeVar("T")


def round2(value: float) -> float:
    return round(value, 2)


def percentage(part: float, whole: float) -> Optional[float]:
    if not whole:
        return None
    return part / whole * 100


def average(values: Iterable[Optional[float]]) -> float:
    present = [value for value in values if value is not None]
    if not present:
        return 0.0
    return sum(present) / len(present)


# Time-bucketed series

def bucket_series(
    rows: Iterable[T],
    timestamp: Callable[[T], Optional[datetime]],
    granularity: TimeBucket,
    value: Optional[Callable[[T], Optional[float]]] = None,
) -> List[BucketTotal]:
    """Fold rows into per-bucket totals.

    Each row counts as 1 unless ``value`` is given. Buckets come out in the
    order their keys are first seen, so callers wanting chronological order
    pass rows sorted by time.
    """
    totals: Dict[str, float] = {}
    for row in rows:
        moment = timestamp(row)
        if moment is None:
            continue
        amount = 1 if value is None else value(row)
        if amount is None:
            continue
        key = bucket_key(moment, granularity)
        totals[key] = totals.get(key, 0) + amount
    return [BucketTotal(bucket=key, total=total) for key, total in totals.items()]


def user_growth_series(signups: Iterable[UserSignupRecord]) -> List[UserGrowthPoint]:
    return [
        UserGrowthPoint(date=point.bucket, new_users=int(point.total))
        for point in bucket_series(signups, lambda row: row.created_at, TimeBucket.DAY)
    ]


def revenue_by_month(payments: Iterable[PaymentRecord]) -> List[RevenuePoint]:
    """Monthly revenue. Months without revenue are absent, not zero-filled."""
    series = bucket_series(payments, lambda row: row.created_at, TimeBucket.MONTH, lambda row: row.amount)
    return [
        RevenuePoint(month=point.bucket, revenue=round2(point.total))
        for point in series
        if point.total
    ]


def weekly_progress(lesson_progress: Iterable[LessonProgressRecord]) -> List[WeeklyProgressPoint]:
    completed = (row for row in lesson_progress if row.completed)
    return [
        WeeklyProgressPoint(week=point.bucket, completed_lessons=int(point.total))
        for point in bucket_series(completed, lambda row: row.completed_at, TimeBucket.WEEK)
    ]


def monthly_stats(course_analytics: Iterable[CourseAnalyticsRecord]) -> List[MonthlyStat]:
    months: Dict[str, List[CourseAnalyticsRecord]] = {}
    for row in course_analytics:
        if row.date is None:
            continue
        months.setdefault(bucket_key(row.date, TimeBucket.MONTH), []).append(row)

    return [
        MonthlyStat(
            month=month,
            enrollments=sum(row.total_enrollments for row in rows),
            revenue=round2(sum(row.total_revenue for row in rows)),
            completion_rate=round2(average(row.completion_rate for row in rows)),
            average_rating=round2(average(row.average_rating for row in rows)),
        )
        for month, rows in months.items()
    ]


# Completion and engagement

def average_completion_rate(counts: Iterable[CourseCompletionRecord]) -> float:
    """Mean of per-course completion rates over courses that have progress rows."""
    rates = [percentage(row.completed, row.total) for row in counts]
    return round2(average(rates))


def _completed_pairs(progress: Iterable[ProgressRecord]) -> Set[Tuple[int, int]]:
    return {(row.user_id, row.course_id) for row in progress if row.completed}


def enrollment_completion_rate(enrollments: Sequence[EnrollmentRecord], progress: Iterable[ProgressRecord]) -> float:
    """Share of enrollments whose learner has completed progress in that course."""
    completed_pairs = _completed_pairs(progress)
    completed = sum(1 for row in enrollments if (row.user_id, row.course_id) in completed_pairs)
    return round2(percentage(completed, len(enrollments)) or 0.0)


def is_active(timestamp: Optional[datetime], now: datetime, window_days: int) -> bool:
    """Plain recency test: did ``timestamp`` fall in the trailing window?"""
    return timestamp is not None and timestamp >= now - timedelta(days=window_days)


def engagement_rate(
    enrollments: Sequence[EnrollmentRecord],
    progress: Iterable[ProgressRecord],
    now: datetime,
    window_days: int = ENGAGEMENT_WINDOW_DAYS,
) -> float:
    active_pairs = {
        (row.user_id, row.course_id)
        for row in progress
        if is_active(row.last_accessed_at, now, window_days)
    }
    active = sum(1 for row in enrollments if (row.user_id, row.course_id) in active_pairs)
    return round2(percentage(active, len(enrollments)) or 0.0)


# Lesson funnel

@dataclass
class LessonFunnel:
    lesson_id: int
    title: str
    position: int
    started: int = 0
    completed: int = 0
    total_watch_time: int = 0


def lesson_funnels(lesson_progress: Iterable[LessonProgressRecord]) -> List[LessonFunnel]:
    funnels: Dict[int, LessonFunnel] = {}
    for row in lesson_progress:
        funnel = funnels.get(row.lesson_id)
        if funnel is None:
            funnel = funnels[row.lesson_id] = LessonFunnel(
                lesson_id=row.lesson_id,
                title=row.lesson_title,
                position=row.lesson_position,
            )
        funnel.started += 1
        if row.completed:
            funnel.completed += 1
        funnel.total_watch_time += row.watch_time or 0
    return list(funnels.values())


def rank_drop_off(funnels: Iterable[LessonFunnel], limit: int = DROP_OFF_LIMIT) -> List[DropOffPoint]:
    """Lessons losing the largest share of learners, worst first.

    Lessons nobody started are skipped.
    """
    points = []
    for funnel in funnels:
        if funnel.started <= 0:
            continue
        completion_rate = round2(percentage(funnel.completed, funnel.started))
        points.append(DropOffPoint(
            lesson_id=funnel.lesson_id,
            title=funnel.title,
            position=funnel.position,
            started=funnel.started,
            completed=funnel.completed,
            completion_rate=completion_rate,
            drop_off_rate=round2(100.0 - completion_rate),
        ))
    points.sort(key=lambda point: (-point.drop_off_rate, point.position))
    return points[:limit]


def drop_off_points(lesson_progress: Iterable[LessonProgressRecord], limit: int = DROP_OFF_LIMIT) -> List[DropOffPoint]:
    return rank_drop_off(lesson_funnels(lesson_progress), limit)


def lesson_engagement(lesson_progress: Iterable[LessonProgressRecord]) -> List[LessonEngagement]:
    funnels = sorted(lesson_funnels(lesson_progress), key=lambda funnel: (funnel.position, funnel.lesson_id))
    return [
        LessonEngagement(
            lesson_id=funnel.lesson_id,
            title=funnel.title,
            position=funnel.position,
            total_watch_time=funnel.total_watch_time,
            total_students=funnel.started,
            completed=funnel.completed,
            completion_rate=round2(percentage(funnel.completed, funnel.started) or 0.0),
        )
        for funnel in funnels
    ]


# Ratings, scores and money

def average_rating(reviews: Iterable[ReviewRecord]) -> float:
    return round2(average(row.rating for row in reviews))


def average_score(attempts: Iterable[QuizAttemptRecord]) -> float:
    return round2(average(row.score for row in attempts))


def average_watch_time(progress: Iterable[ProgressRecord]) -> int:
    return round(average(row.watch_time for row in progress))


def conversion_rate(enrollment_count: int, course_analytics: Iterable[CourseAnalyticsRecord]) -> float:
    """Enrollments per course-page view over the analytics window."""
    views = sum(row.total_views for row in course_analytics)
    return round2(percentage(enrollment_count, views) or 0.0)


# Rankings and listings

def popular_courses(rows: Iterable[PopularCourseRecord]) -> List[PopularCourse]:
    return [
        PopularCourse(
            id=row.id,
            title=row.title,
            enrollments=row.enrollment_count,
            average_rating=round2(row.average_rating or 0.0),
            thumbnail=row.thumbnail,
        )
        for row in rows
    ]


def top_courses(
    courses: Iterable[CourseRecord],
    enrollments: Iterable[EnrollmentRecord],
    progress: Iterable[ProgressRecord],
    reviews: Iterable[ReviewRecord],
    course_analytics: Iterable[CourseAnalyticsRecord],
    limit: int = TOP_COURSES_LIMIT,
) -> List[TopCourse]:
    """Rank courses by enrollment count, keeping source order on ties."""
    enrollments_by_course: Dict[int, List[EnrollmentRecord]] = {}
    for row in enrollments:
        enrollments_by_course.setdefault(row.course_id, []).append(row)
    reviews_by_course: Dict[int, List[ReviewRecord]] = {}
    for row in reviews:
        reviews_by_course.setdefault(row.course_id, []).append(row)
    revenue_by_course: Dict[int, float] = {}
    for row in course_analytics:
        revenue_by_course[row.course_id] = revenue_by_course.get(row.course_id, 0.0) + row.total_revenue
    progress = list(progress)

    ranked = []
    for course in courses:
        course_enrollments = enrollments_by_course.get(course.id, [])
        ranked.append(TopCourse(
            id=course.id,
            title=course.title,
            enrollments=len(course_enrollments),
            completion_rate=enrollment_completion_rate(course_enrollments, progress),
            average_rating=average_rating(reviews_by_course.get(course.id, [])),
            revenue=round2(revenue_by_course.get(course.id, 0.0)),
        ))
    ranked.sort(key=lambda course: course.enrollments, reverse=True)
    return ranked[:limit]


def recent_activity(enrollments: Iterable[EnrollmentRecord], limit: int = RECENT_ACTIVITY_LIMIT) -> List[RecentActivity]:
    dated = sorted(
        (row for row in enrollments if row.created_at is not None),
        key=lambda row: row.created_at,
        reverse=True,
    )
    return [
        RecentActivity(type="enrollment", user_id=row.user_id, course_id=row.course_id, occurred_at=row.created_at)
        for row in dated[:limit]
    ]


def recommend_courses(
    progress: Iterable[ProgressRecord],
    catalog: Sequence[CourseRecord],
    limit: int = RECOMMENDATION_LIMIT,
) -> List[RecommendedCourse]:
    """Suggest next courses for a learner.

    With nothing completed yet, beginner courses are suggested. Otherwise
    uncompleted courses are suggested, those in categories the learner has
    not completed anything in coming first.
    """
    completed_ids = {row.course_id for row in progress if row.completed}
    if not completed_ids:
        picks = [course for course in catalog if course.level == CourseLevelEnum.BEGINNER]
    else:
        completed_categories = {
            course.category for course in catalog
            if course.id in completed_ids and course.category is not None
        }
        candidates = [course for course in catalog if course.id not in completed_ids]
        picks = (
            [course for course in candidates if course.category not in completed_categories]
            + [course for course in candidates if course.category in completed_categories]
        )

    return [
        RecommendedCourse(id=course.id, title=course.title, thumbnail=course.thumbnail, level=course.level)
        for course in picks[:limit]
    ]


def student_feedback(reviews: Iterable[ReviewRecord], limit: int) -> List[StudentFeedback]:
    return [
        StudentFeedback(rating=row.rating, comment=row.comment, created_at=row.created_at, user_name=row.user_name)
        for row in list(reviews)[:limit]
    ]


def achievement_summaries(achievements: Iterable[AchievementRecord]) -> List[AchievementSummary]:
    return [
        AchievementSummary(
            type=row.type,
            title=row.title,
            description=row.description,
            earned_at=row.earned_at,
            points=row.points,
        )
        for row in achievements
    ]


def current_streak(user_analytics: Iterable[UserAnalyticsRecord]) -> int:
    latest = max(user_analytics, key=lambda row: row.date, default=None)
    return latest.current_streak if latest is not None else 0
