"""
Common response schemas for consistent API structure.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponseSchema(BaseModel):
    """Standard error response format."""
    model_config = ConfigDict(from_attributes=True)

    error: str = Field(..., description="Error message", json_schema_extra={"example": "Approval level 1 of request 7 has already been decided"})
    code: str | None = Field(None, description="Machine-readable error code", json_schema_extra={"example": "CONFLICT"})
    retryable: bool = Field(False, description="Whether retrying after a refresh can succeed", json_schema_extra={"example": True})
    details: Any | None = Field(None, description="Additional error details", json_schema_extra={"example": {"message": "The request changed concurrently"}})


class PaginationQuerySchema(BaseModel):
    """Limit/offset pagination shared by list endpoints."""

    limit: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Maximum number of rows to return",
        json_schema_extra={"example": 50},
    )
    offset: int = Field(
        default=0,
        ge=0,
        description="Number of rows to skip",
        json_schema_extra={"example": 0},
    )
