from typing import List, Optional

from sqlalchemy.orm import Session

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course
from lms_analytics.models.review import Review
from lms_analytics.models.user import User

class CRUDReview(CRUDBase[Review]):

    def get_filtered(
        self,
        db: Session,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List:
        query = (
            db.query(
                Review.course_id,
                Review.rating,
                Review.comment,
                Review.created_at,
                User.full_name.label("user_name"),
            )
            .outerjoin(User, User.id == Review.user_id)
        )
        if course_id is not None:
            query = query.filter(Review.course_id == course_id)
        if instructor_id is not None:
            query = (
                query.join(Course, Course.id == Review.course_id)
                .filter(Course.instructor_id == instructor_id)
            )
        query = query.order_by(Review.created_at.desc(), Review.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()


review = CRUDReview(Review)
