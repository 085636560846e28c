"""
Service base classes: results, transactions, notifications.
"""

from detention.services.base.base_service import Actor, BaseService
from detention.services.base.service_result import (
    BatchItemResult,
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
    summarize_batch,
)
from detention.services.base.transaction_manager import TransactionContext, TransactionManager

__all__ = [
    "Actor",
    "BaseService",
    "BatchItemResult",
    "ErrorCode",
    "ErrorSeverity",
    "ServiceError",
    "ServiceResult",
    "summarize_batch",
    "TransactionContext",
    "TransactionManager",
]
