from typing import Any, Generic, Optional, Type, TypeVar
from sqlalchemy.orm import Session, Query
from lms_analytics.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)

class CRUDBase(Generic[ModelType]):
    """Read-only queries shared by every model; soft-deleted rows are hidden."""

    def __init__(self, model: Type[ModelType]):
        self.model = model

    def _query_active(self, db: Session) -> Query:
        query = db.query(self.model)
        if hasattr(self.model, 'deleted_at'):
            query = query.filter(self.model.deleted_at.is_(None))
        return query

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        return self._query_active(db).filter(self.model.id == id).first()

    def count(self, db: Session) -> int:
        return self._query_active(db).count()
