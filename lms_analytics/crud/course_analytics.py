from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course
from lms_analytics.models.course_analytics import CourseAnalytics

class CRUDCourseAnalytics(CRUDBase[CourseAnalytics]):

    def get_filtered(
        self,
        db: Session,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[CourseAnalytics]:
        query = db.query(CourseAnalytics)
        if course_id is not None:
            query = query.filter(CourseAnalytics.course_id == course_id)
        if instructor_id is not None:
            query = (
                query.join(Course, Course.id == CourseAnalytics.course_id)
                .filter(Course.instructor_id == instructor_id)
            )
        if start_date:
            query = query.filter(CourseAnalytics.date >= start_date.date())
        if end_date:
            query = query.filter(CourseAnalytics.date <= end_date.date())
        return query.order_by(CourseAnalytics.date, CourseAnalytics.id).all()


course_analytics = CRUDCourseAnalytics(CourseAnalytics)
