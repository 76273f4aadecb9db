"""Cache configuration and TTL settings"""
from lms_analytics.core.constants import CacheNamespace

# Default TTL (Time To Live) per namespace, in seconds
CACHE_TTL = {
    # User/session lookups - must not be stale for long
    CacheNamespace.USERS: 300,                # 5 minutes

    # Entity lookups - moderately stable
    CacheNamespace.COURSES: 900,              # 15 minutes
    CacheNamespace.LESSONS: 900,              # 15 minutes
    CacheNamespace.QUIZZES: 900,              # 15 minutes

    # Certificates - very stable
    CacheNamespace.CERTIFICATES: 3600,        # 1 hour

    # Analytics snapshots - expensive, tolerate staleness
    CacheNamespace.PLATFORM_METRICS: 1800,    # 30 minutes
    CacheNamespace.INSTRUCTOR_METRICS: 1800,  # 30 minutes
    CacheNamespace.STUDENT_METRICS: 1800,     # 30 minutes
    CacheNamespace.COURSE_METRICS: 1800,      # 30 minutes
}

# TTL overrides applied by the analytics facade, in seconds
SNAPSHOT_TTL = {
    CacheNamespace.PLATFORM_METRICS: 900,     # 15 minutes
    CacheNamespace.INSTRUCTOR_METRICS: 600,   # 10 minutes
    CacheNamespace.STUDENT_METRICS: 300,      # 5 minutes
    CacheNamespace.COURSE_METRICS: 600,       # 10 minutes
}

# Cache key patterns
CACHE_KEYS = {
    "platform_metrics": "platform_metrics::{}",
    "instructor_metrics": "instructor_metrics:{}:{}",
    "student_metrics": "student_metrics:{}",
    "course_metrics": "course_metrics:{}:{}",

    "course_details": "{}",
    "user_profile": "{}",
    "lesson_details": "{}",
    "course_lesson": "course:{}:lesson:{}",
}
