"""
Common response DTOs shared across multiple endpoints.

ApiResponse      — standard {success, message, data} success envelope
ErrorResponse    — standard error shape from AppError.to_dict()
HealthResponse   — GET /health
PaginationMeta   — list metadata (limit/offset/total)
"""

from __future__ import annotations

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope returned by every auth endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


class PaginationMeta(BaseModel):
    """Reusable pagination metadata included in list responses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    limit: int
    offset: int
    total: int
    has_next: bool
