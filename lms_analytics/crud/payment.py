from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, Query

from lms_analytics.core.constants import PaymentStatusEnum
from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course
from lms_analytics.models.payment import Payment

class CRUDPayment(CRUDBase[Payment]):

    def _query_completed(
        self,
        query: Query,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> Query:
        query = query.filter(Payment.status == PaymentStatusEnum.COMPLETED)
        if start_date:
            query = query.filter(Payment.created_at >= start_date)
        if end_date:
            query = query.filter(Payment.created_at <= end_date)
        if course_id is not None:
            query = query.filter(Payment.course_id == course_id)
        if instructor_id is not None:
            query = (
                query.join(Course, Course.id == Payment.course_id)
                .filter(Course.instructor_id == instructor_id)
            )
        return query

    def sum_completed(
        self,
        db: Session,
        *,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> float:
        total = self._query_completed(
            db.query(func.sum(Payment.amount)), start_date, end_date, course_id, instructor_id
        ).scalar()
        return float(total or 0)

    def get_completed(
        self,
        db: Session,
        *,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[Payment]:
        return (
            self._query_completed(db.query(Payment), start_date, end_date)
            .order_by(Payment.created_at)
            .all()
        )


payment = CRUDPayment(Payment)
