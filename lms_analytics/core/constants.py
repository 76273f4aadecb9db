from enum import Enum


class CacheNamespace(str, Enum):
    COURSES = "courses"
    USERS = "users"
    LESSONS = "lessons"
    QUIZZES = "quizzes"
    CERTIFICATES = "certificates"

    PLATFORM_METRICS = "platform-metrics"
    INSTRUCTOR_METRICS = "instructor-metrics"
    STUDENT_METRICS = "student-metrics"
    COURSE_METRICS = "course-metrics"

class EntityType(str, Enum):
    COURSE = "course"
    USER = "user"
    LESSON = "lesson"

class TimeBucket(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

class PaymentStatusEnum(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"

class CourseLevelEnum(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"

# Trailing windows, in days
ACTIVE_USER_WINDOW_DAYS = 30
ENGAGEMENT_WINDOW_DAYS = 7
WEEKLY_PROGRESS_WINDOW_DAYS = 49

DROP_OFF_LIMIT = 5
TOP_COURSES_LIMIT = 5
POPULAR_COURSES_LIMIT = 10
RECOMMENDATION_LIMIT = 3
RECENT_ACTIVITY_LIMIT = 10
STUDENT_FEEDBACK_LIMIT = 5
COURSE_REVIEWS_LIMIT = 10
USER_ANALYTICS_DAYS = 30
