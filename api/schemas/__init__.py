"""Pydantic schemas package."""

from api.schemas.responses import ErrorDetail, ErrorResponse, SuccessResponse

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "SuccessResponse",
]
