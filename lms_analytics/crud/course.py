from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course
from lms_analytics.models.enrollment import Enrollment
from lms_analytics.models.review import Review

class CRUDCourse(CRUDBase[Course]):

    def count_published(self, db: Session) -> int:
        return self._query_active(db).filter(Course.published.is_(True)).count()

    def get_filtered(
        self,
        db: Session,
        *,
        instructor_id: Optional[int] = None,
        published_only: bool = False,
    ) -> List[Course]:
        query = self._query_active(db)
        if instructor_id is not None:
            query = query.filter(Course.instructor_id == instructor_id)
        if published_only:
            query = query.filter(Course.published.is_(True))
        return query.order_by(Course.id).all()

    def get_popular(self, db: Session, limit: int = 10) -> List:
        enrollment_count = (
            db.query(func.count(Enrollment.id))
            .filter(Enrollment.course_id == Course.id)
            .correlate(Course)
            .scalar_subquery()
        )
        average_rating = (
            db.query(func.avg(Review.rating))
            .filter(Review.course_id == Course.id)
            .correlate(Course)
            .scalar_subquery()
        )
        return (
            db.query(
                Course.id,
                Course.title,
                Course.thumbnail,
                enrollment_count.label("enrollment_count"),
                average_rating.label("average_rating"),
            )
            .filter(Course.published.is_(True))
            .filter(Course.deleted_at.is_(None))
            .order_by(enrollment_count.desc(), Course.id)
            .limit(limit)
            .all()
        )


course = CRUDCourse(Course)
