"""Base service class with common functionality."""

from abc import ABC
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from app.exceptions import RecordNotFoundException

ModelT = TypeVar("ModelT")


class BaseService(ABC):
    """Abstract base class for all services."""

    def __init__(self, db: Session):
        """Initialize service with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _get_or_raise(self, model: type[ModelT], identifier: Any, resource_type: str) -> ModelT:
        """Load a record by primary key or raise RecordNotFoundException."""
        record = self.db.get(model, identifier)
        if record is None:
            raise RecordNotFoundException(resource_type, identifier)
        return record
