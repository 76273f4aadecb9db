from typing import List

from sqlalchemy.orm import Session

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.course import Course
from lms_analytics.models.learner import Achievement, Certificate, QuizAttempt, UserAnalytics

class CRUDQuizAttempt(CRUDBase[QuizAttempt]):

    def get_by_user(self, db: Session, user_id: int) -> List[QuizAttempt]:
        return (
            db.query(QuizAttempt)
            .filter(QuizAttempt.user_id == user_id)
            .order_by(QuizAttempt.created_at.desc())
            .all()
        )


class CRUDCertificate(CRUDBase[Certificate]):

    def get_by_user(self, db: Session, user_id: int) -> List:
        return (
            db.query(
                Certificate.course_id,
                Course.title.label("course_title"),
                Certificate.issued_at,
            )
            .outerjoin(Course, Course.id == Certificate.course_id)
            .filter(Certificate.user_id == user_id)
            .order_by(Certificate.issued_at.desc())
            .all()
        )


class CRUDAchievement(CRUDBase[Achievement]):

    def get_by_user(self, db: Session, user_id: int) -> List[Achievement]:
        return (
            db.query(Achievement)
            .filter(Achievement.user_id == user_id)
            .order_by(Achievement.earned_at.desc())
            .all()
        )


class CRUDUserAnalytics(CRUDBase[UserAnalytics]):

    def get_recent_by_user(self, db: Session, user_id: int, limit: int = 30) -> List[UserAnalytics]:
        return (
            db.query(UserAnalytics)
            .filter(UserAnalytics.user_id == user_id)
            .order_by(UserAnalytics.date.desc())
            .limit(limit)
            .all()
        )


quiz_attempt = CRUDQuizAttempt(QuizAttempt)
certificate = CRUDCertificate(Certificate)
achievement = CRUDAchievement(Achievement)
user_analytics = CRUDUserAnalytics(UserAnalytics)
