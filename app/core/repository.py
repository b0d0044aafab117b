"""Base repository pattern implementation.

This module provides a generic repository that the catalog and scan
repositories build on. Every write commits immediately: reconciliation
favours many small durable statements over one long transaction.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """Generic repository with common CRUD operations.

    Example:
        ```python
        class BucketRepository(BaseRepository[Bucket]):
            def __init__(self, db: Session):
                super().__init__(db, Bucket)

            def get_by_name(self, name: str) -> Bucket | None:
                return self.db.query(self.model).filter(self.model.name == name).first()
        ```
    """

    def __init__(self, db: Session, model: type[ModelType]):
        """Initialize repository with database session and model class.

        Args:
            db: SQLAlchemy session.
            model: The model class this repository operates on.
        """
        self.db = db
        self.model = model

    def get_by_id(self, entity_id: int) -> ModelType | None:
        """Get a single entity by primary key, or None."""
        return self.db.get(self.model, entity_id)

    def count(self) -> int:
        result: int = self.db.query(self.model).count()
        return result

    def create(self, **kwargs: object) -> ModelType:
        """Create, commit and refresh a new entity."""
        instance = self.model(**kwargs)  # type: ignore[call-arg]
        self.db.add(instance)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def update(self, instance: ModelType, **kwargs: object) -> ModelType:
        """Set the given attributes on an entity and commit."""
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        self.db.commit()
        self.db.refresh(instance)
        return instance


def dialect_insert(db: Session, model: type[Any]) -> Any:
    """Return an INSERT supporting ``on_conflict_*`` for the session's backend."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql_insert(model)
    return sqlite_insert(model)
