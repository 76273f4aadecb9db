from typing import List, Optional

from sqlalchemy.orm import Session, Query

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course
from lms_analytics.models.enrollment import Enrollment

class CRUDEnrollment(CRUDBase[Enrollment]):

    def _query_filtered(
        self,
        db: Session,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> Query:
        query = db.query(Enrollment)
        if course_id is not None:
            query = query.filter(Enrollment.course_id == course_id)
        if instructor_id is not None:
            query = (
                query.join(Course, Course.id == Enrollment.course_id)
                .filter(Course.instructor_id == instructor_id)
                .filter(Course.deleted_at.is_(None))
            )
        if user_id is not None:
            query = query.filter(Enrollment.user_id == user_id)
        return query

    def count_filtered(self, db: Session, *, course_id: Optional[int] = None) -> int:
        return self._query_filtered(db, course_id=course_id).count()

    def get_filtered(
        self,
        db: Session,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[Enrollment]:
        return (
            self._query_filtered(db, course_id=course_id, instructor_id=instructor_id, user_id=user_id)
            .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
            .all()
        )


enrollment = CRUDEnrollment(Enrollment)
