from datetime import datetime
from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course, Lesson
from lms_analytics.models.progress import Progress, LessonProgress

class CRUDProgress(CRUDBase[Progress]):

    def count_completed_since(self, db: Session, since: datetime) -> int:
        return (
            db.query(Progress)
            .filter(Progress.completed.is_(True))
            .filter(Progress.completed_at >= since)
            .count()
        )

    def get_filtered(
        self,
        db: Session,
        *,
        course_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
        user_id: Optional[int] = None,
    ) -> List[Progress]:
        query = db.query(Progress)
        if course_id is not None:
            query = query.filter(Progress.course_id == course_id)
        if instructor_id is not None:
            query = (
                query.join(Course, Course.id == Progress.course_id)
                .filter(Course.instructor_id == instructor_id)
                .filter(Course.deleted_at.is_(None))
            )
        if user_id is not None:
            query = query.filter(Progress.user_id == user_id)
        return query.order_by(Progress.id).all()

    def get_completion_counts(self, db: Session) -> List:
        """One row per course: completed and total progress rows."""
        return (
            db.query(
                Progress.course_id,
                func.sum(case((Progress.completed.is_(True), 1), else_=0)).label("completed"),
                func.count(Progress.id).label("total"),
            )
            .group_by(Progress.course_id)
            .order_by(Progress.course_id)
            .all()
        )


class CRUDLessonProgress(CRUDBase[LessonProgress]):

    def get_filtered(
        self,
        db: Session,
        *,
        course_id: Optional[int] = None,
        user_id: Optional[int] = None,
        completed_since: Optional[datetime] = None,
    ) -> List:
        query = (
            db.query(
                LessonProgress.user_id,
                LessonProgress.lesson_id,
                Lesson.title.label("lesson_title"),
                Lesson.position.label("lesson_position"),
                LessonProgress.completed,
                LessonProgress.completed_at,
                LessonProgress.watch_time,
            )
            .join(Lesson, Lesson.id == LessonProgress.lesson_id)
        )
        if course_id is not None:
            query = query.filter(Lesson.course_id == course_id)
        if user_id is not None:
            query = query.filter(LessonProgress.user_id == user_id)
        if completed_since is not None:
            query = (
                query.filter(LessonProgress.completed.is_(True))
                .filter(LessonProgress.completed_at >= completed_since)
            )
        return query.order_by(Lesson.position, LessonProgress.id).all()


progress = CRUDProgress(Progress)
lesson_progress = CRUDLessonProgress(LessonProgress)
