"""Schemas for the health probe endpoints."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response body of the liveness and readiness probes."""

    status: str = Field(description="Probe status", json_schema_extra={"example": "ready"})
    ready: bool = Field(description="Whether the service accepts traffic", json_schema_extra={"example": True})
