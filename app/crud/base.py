from typing import Any, Generic, Optional, Type, TypeVar
from sqlalchemy.orm import Session, Query

from app.database.session import Base

ModelType = TypeVar("ModelType", bound=Base)


class CRUDBase(Generic[ModelType]):
    """
    Read helpers shared by the student, schedule and booking stores.

    Writes to the seat ledger go through CRUDBooking's conditional updates,
    never through generic setters.
    """
    def __init__(self, model: Type[ModelType]):
        self.model = model

    def get(self, db: Session, id: Any) -> Optional[ModelType]:
        """Get an object by primary key"""
        return db.get(self.model, id)

    def query_by(self, db: Session, **filters: Any) -> Query:
        """
        Equality filters on model columns; list values become IN (...).
        None values are skipped so optional query params can be passed through.
        """
        query = db.query(self.model)
        for attr, value in filters.items():
            if value is None:
                continue
            column = getattr(self.model, attr)
            if isinstance(value, (list, tuple, set)):
                query = query.filter(column.in_(value))
            else:
                query = query.filter(column == value)
        return query
