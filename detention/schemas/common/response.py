"""
Standard API response wrappers for success, error, and batch operations.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import Field

from detention.schemas.common.base import BaseSchema

T = TypeVar("T")

__all__ = [
    "SuccessResponse",
    "ErrorBody",
    "ErrorResponse",
    "BatchItemResponse",
    "BatchResponse",
]


class SuccessResponse(BaseSchema, Generic[T]):
    """Standard success response."""

    success: bool = Field(default=True, description="Success flag")
    message: Optional[str] = Field(default=None, description="Response message")
    data: Optional[T] = Field(default=None, description="Response data")


class ErrorBody(BaseSchema):
    code: str = Field(..., description="Application error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Error context")
    type: Optional[str] = Field(default=None, description="Exception class")


class ErrorResponse(BaseSchema):
    """Body returned for every failed request."""

    error: ErrorBody


class BatchItemResponse(BaseSchema, Generic[T]):
    """Per-item outcome of a batch request."""

    key: str = Field(..., description="Item key (violation id)")
    success: bool
    data: Optional[T] = None
    error: Optional[ErrorBody] = None


class BatchResponse(BaseSchema, Generic[T]):
    """Batch outcome: one entry per submitted item plus totals."""

    total: int
    successful: int
    failed: int
    items: List[BatchItemResponse[T]]
