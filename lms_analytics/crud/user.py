from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from lms_analytics.crud.base import CRUDBase
from lms_analytics.models.user import User

class CRUDUser(CRUDBase[User]):

    def count_active_since(self, db: Session, since: datetime) -> int:
        return self._query_active(db).filter(User.last_activity_at >= since).count()

    def count_created_since(self, db: Session, since: datetime) -> int:
        return self._query_active(db).filter(User.created_at >= since).count()

    def get_signups_between(self, db: Session, start_date: datetime, end_date: datetime) -> List:
        return (
            db.query(User.id.label("user_id"), User.created_at)
            .filter(User.deleted_at.is_(None))
            .filter(User.created_at >= start_date)
            .filter(User.created_at <= end_date)
            .order_by(User.created_at)
            .all()
        )


user = CRUDUser(User)
