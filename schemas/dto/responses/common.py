"""
Common response DTOs shared across multiple endpoints.

ErrorResponse    standard error shape from AppError.to_dict()
HealthResponse   GET /health
MessageResponse  generic {success, message} shape used by many endpoints
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    success: bool = False
    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str
    checks: dict[str, str]


class MessageResponse(CamelResponse):
    """Generic success/message response returned by several endpoints."""

    success: bool = True
    message: Optional[str] = None
