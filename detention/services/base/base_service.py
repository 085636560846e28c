"""
Base service class providing common functionality for all services.
"""

from typing import TypeVar, Generic, Optional, Dict, Any, Iterator
from abc import ABC
from contextlib import contextmanager

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from detention.core.exceptions import BaseAppException, ErrorCode
from detention.core.logging import get_logger
from detention.models.base.enums import UserRole
from detention.repositories.base.base_repository import BaseRepository
from detention.services.base.service_result import (
    ServiceResult,
    ServiceError,
    ErrorSeverity,
)
from detention.services.base.transaction_manager import TransactionContext, TransactionManager


TModel = TypeVar("TModel")
TRepo = TypeVar("TRepo", bound=BaseRepository)


class Actor:
    """Acting user as supplied by the identity provider."""

    def __init__(self, user_id: str, role: UserRole = UserRole.TEACHER):
        self.user_id = user_id
        self.role = UserRole(role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        return f"Actor(user_id={self.user_id!r}, role={self.role.value!r})"


class BaseService(ABC, Generic[TModel, TRepo]):
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Consistent error handling via ServiceResult
    - Transaction management utilities
    """

    def __init__(self, repository: TRepo, db_session: Session):
        """
        Initialize base service.

        Args:
            repository: Repository instance for data access
            db_session: SQLAlchemy database session
        """
        self.repository: TRepo = repository
        self.db: Session = db_session
        self.tx = TransactionManager(db_session)
        self._logger = get_logger(self.__class__.__name__).add_context(service=self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Typed application errors keep their own code and are logged as
        warnings; anything else is logged with a traceback.

        Args:
            exception: The caught exception
            operation: Description of the operation that failed
            entity_ref: Reference to the entity involved (ID, name, etc.)
            additional_context: Extra context for logging/debugging

        Returns:
            ServiceResult with failure status and error details
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }
        if additional_context:
            context.update(additional_context)

        if isinstance(exception, BaseAppException):
            severity = (
                ErrorSeverity.ERROR
                if exception.error_code == ErrorCode.DEPENDENCY_UNAVAILABLE
                else ErrorSeverity.WARNING
            )
            log = self._logger.error if severity == ErrorSeverity.ERROR else self._logger.warning
            log(f"{operation} failed: {exception}", extra=context)
            return ServiceResult.from_app_exception(exception, severity=severity)

        self._logger.error(
            f"Error during {operation}: {exception}",
            exc_info=True,
            extra=context,
        )

        return ServiceResult.failure(
            ServiceError(
                code=self._map_exception_to_error_code(exception),
                message=f"Failed to {operation}",
                details={
                    "error": str(exception),
                    "entity_ref": str(entity_ref) if entity_ref is not None else None,
                },
                severity=ErrorSeverity.CRITICAL,
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ErrorCode:
        """
        Map exception types to appropriate error codes.
        """
        exception_mapping = {
            SQLAlchemyError: ErrorCode.DEPENDENCY_UNAVAILABLE,
            ValueError: ErrorCode.VALIDATION_ERROR,
            PermissionError: ErrorCode.FORBIDDEN,
        }

        for exc_type, error_code in exception_mapping.items():
            if isinstance(exception, exc_type):
                return error_code

        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self, name: Optional[str] = None) -> Iterator[TransactionContext]:
        """
        Context manager for one atomic unit of work.

        Example:
            with self.transaction("create slot"):
                self.repository.create_slot(...)
                # commit on success, rollback on exception
        """
        with self.tx.start(name) as ctx:
            yield ctx

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Log service operation with standardized format.
        """
        context = {"entity_ref": str(entity_ref) if entity_ref else None}
        if extra:
            context.update(extra)

        self._logger.info(f"Operation: {operation}", extra=context)
