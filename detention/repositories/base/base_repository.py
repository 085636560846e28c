"""
Base repository with standardized CRUD operations and error handling.

Repositories never commit: the calling service owns the transaction, so
every write here is flushed into the caller's unit of work.
"""

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from detention.core.exceptions import (
    ConflictError,
    DependencyUnavailableError,
    ResourceNotFoundError,
)
from detention.core.logging import get_logger
from detention.models.base import BaseModel

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing lookups, inserts and error translation
    for all domain repositories.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # ==================== Read Operations ====================

    def get_by_id(self, entity_id: str, for_update: bool = False) -> Optional[ModelType]:
        """
        Fetch an entity by primary key.

        Args:
            entity_id: Primary key value
            for_update: Lock the row for the rest of the transaction

        Returns:
            Entity or None
        """
        stmt = (
            select(self.model)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def get_or_raise(self, entity_id: str, for_update: bool = False) -> ModelType:
        entity = self.get_by_id(entity_id, for_update=for_update)
        if entity is None:
            raise ResourceNotFoundError(self.model.__name__, entity_id)
        return entity

    def refresh(self, entity: ModelType) -> ModelType:
        """Reload an entity after a statement-level update."""
        self.db.refresh(entity)
        return entity

    # ==================== Write Operations ====================

    def add(self, entity: ModelType) -> ModelType:
        """
        Stage a new entity and flush it so constraints are checked now.

        Raises:
            ConflictError: If a unique constraint rejects the row
            DependencyUnavailableError: If the store fails
        """
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as e:
            logger.warning(
                f"Integrity error creating {self.model.__name__}: {e.orig}",
                extra={"model": self.model.__name__},
            )
            raise ConflictError(
                f"{self.model.__name__} conflicts with an existing record",
                details={"constraint_error": str(e.orig)},
            ) from e
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("persistent store", f"Create failed: {e}") from e

        logger.debug(f"Created {self.model.__name__} with id: {entity.id}")
        return entity

    def flush(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            raise ConflictError(
                f"{self.model.__name__} update conflicts with an existing record",
                details={"constraint_error": str(e.orig)},
            ) from e
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("persistent store", f"Flush failed: {e}") from e
