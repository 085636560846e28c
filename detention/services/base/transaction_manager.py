"""
Transaction manager utilities for service layer operations.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional, Callable, List
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from detention.core.exceptions import ConflictError, DependencyUnavailableError
from detention.core.logging import get_logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TransactionContext:
    """Context information for a transaction."""

    transaction_id: str = field(default_factory=lambda: str(uuid4()))
    started_at: datetime = field(default_factory=_utcnow)
    committed: bool = False
    rolled_back: bool = False
    completed_at: Optional[datetime] = None
    error: Optional[Exception] = None
    after_commit_callbacks: List[Callable[[], None]] = field(default_factory=list)

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` only once this transaction has committed."""
        self.after_commit_callbacks.append(callback)

    @property
    def duration_ms(self) -> Optional[float]:
        """Get transaction duration in milliseconds."""
        if self.completed_at:
            delta = self.completed_at - self.started_at
            return delta.total_seconds() * 1000
        return None

    @property
    def is_completed(self) -> bool:
        """Check if transaction is completed."""
        return self.committed or self.rolled_back


class TransactionManager:
    """
    Transaction management for the service layer:
    - one commit or rollback per logical operation
    - after-commit callbacks for side effects
    - store failures surfaced as DependencyUnavailableError
    """

    def __init__(self, db_session: Session):
        """
        Initialize transaction manager.

        Args:
            db_session: SQLAlchemy database session
        """
        self.db = db_session
        self._logger = get_logger(self.__class__.__name__)

    @contextmanager
    def start(self, name: Optional[str] = None) -> Iterator[TransactionContext]:
        """
        Run a block as one transaction.

        Commits on success and rolls back on any exception, which is
        re-raised. A constraint violation is re-raised as ``ConflictError``
        and any other ``SQLAlchemyError`` as ``DependencyUnavailableError``,
        so nothing partial is ever persisted and callers see a typed error.

        Example:
            with transaction_manager.start("reserve seat") as ctx:
                ...
                ctx.after_commit(lambda: notify())
        """
        ctx = TransactionContext()
        self._logger.debug(
            f"Transaction started: {ctx.transaction_id}",
            extra={"transaction_id": ctx.transaction_id, "operation": name},
        )

        try:
            yield ctx
            self._commit(ctx)
        except IntegrityError as exc:
            self._rollback(ctx, exc)
            raise ConflictError(
                f"Conflicting write during {name or 'transaction'}",
                details={"constraint_error": str(exc.orig)},
            ) from exc
        except SQLAlchemyError as exc:
            self._rollback(ctx, exc)
            raise DependencyUnavailableError(
                "persistent store",
                f"Store error during {name or 'transaction'}: {exc}",
            ) from exc
        except Exception as exc:
            self._rollback(ctx, exc)
            raise
        finally:
            ctx.completed_at = _utcnow()
            self._logger.debug(
                f"Transaction completed: {ctx.transaction_id} "
                f"({'committed' if ctx.committed else 'rolled back'}) "
                f"in {ctx.duration_ms:.2f}ms",
                extra={
                    "transaction_id": ctx.transaction_id,
                    "committed": ctx.committed,
                    "duration_ms": ctx.duration_ms,
                },
            )

        self._run_after_commit(ctx)

    def _commit(self, ctx: TransactionContext) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self._logger.error(
                f"Commit failed for transaction {ctx.transaction_id}: {e}",
                exc_info=True,
                extra={"transaction_id": ctx.transaction_id},
            )
            raise
        ctx.committed = True

    def _rollback(self, ctx: TransactionContext, exc: Exception) -> None:
        ctx.error = exc
        try:
            self.db.rollback()
            ctx.rolled_back = True
        except SQLAlchemyError as e:
            # Keep the original error as the one the caller sees
            self._logger.error(
                f"Rollback failed for transaction {ctx.transaction_id}: {e}",
                exc_info=True,
            )
        self._logger.debug(
            f"Transaction rolled back: {ctx.transaction_id} - {exc}",
            extra={"transaction_id": ctx.transaction_id, "error": str(exc)},
        )

    def _run_after_commit(self, ctx: TransactionContext) -> None:
        for callback in ctx.after_commit_callbacks:
            try:
                callback()
            except Exception as e:
                self._logger.warning(
                    f"After-commit callback failed for transaction {ctx.transaction_id}: {e}",
                    exc_info=True,
                    extra={"transaction_id": ctx.transaction_id},
                )
