from detention.schemas.common.base import (
    BaseCreateSchema,
    BaseDBSchema,
    BaseSchema,
    BaseUpdateSchema,
)
from detention.schemas.common.response import (
    BatchItemResponse,
    BatchResponse,
    ErrorResponse,
    SuccessResponse,
)

__all__ = [
    "BaseCreateSchema",
    "BaseDBSchema",
    "BaseSchema",
    "BaseUpdateSchema",
    "BatchItemResponse",
    "BatchResponse",
    "ErrorResponse",
    "SuccessResponse",
]
