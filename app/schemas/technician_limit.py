"""Schemas for technician limit policies and limit checks."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.technician_limit import LimitScope
from app.services.limit_checker_service import LimitCeiling, LimitCheckOutcome


class TechnicianLimitCreateSchema(BaseModel):
    """Schema for creating a technician limit policy."""

    technician_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Technician the limit applies to",
        json_schema_extra={"example": "tech-042"},
    )
    scope: LimitScope = Field(
        ...,
        description="Whether the limit applies to one part, one category or all parts",
        json_schema_extra={"example": LimitScope.TOTAL.value},
    )
    target_id: int | None = Field(
        None,
        description="Part or category identifier; empty for total limits",
        json_schema_extra={"example": None},
    )
    max_quantity_per_request: int | None = Field(None, ge=0, json_schema_extra={"example": 10})
    max_value_per_request: Decimal | None = Field(None, ge=0, json_schema_extra={"example": "1000.00"})
    max_quantity_per_day: int | None = Field(None, ge=0, json_schema_extra={"example": 20})
    max_value_per_day: Decimal | None = Field(None, ge=0, json_schema_extra={"example": "3000.00"})
    max_quantity_per_month: int | None = Field(None, ge=0, json_schema_extra={"example": 200})
    max_value_per_month: Decimal | None = Field(None, ge=0, json_schema_extra={"example": "25000.00"})
    requires_approval: bool = Field(
        default=False,
        description="Route every request within this limit's scope to an approver",
        json_schema_extra={"example": False},
    )
    auto_approve_below: Decimal | None = Field(
        None,
        ge=0,
        description="Requests valued below this amount may be approved automatically",
        json_schema_extra={"example": "500.00"},
    )

    @model_validator(mode="after")
    def _check_target(self) -> TechnicianLimitCreateSchema:
        if self.scope == LimitScope.TOTAL and self.target_id is not None:
            raise ValueError("target_id must be empty for a total limit")
        if self.scope != LimitScope.TOTAL and self.target_id is None:
            raise ValueError(f"target_id is required for a {self.scope.value} limit")
        return self


class TechnicianLimitResponseSchema(BaseModel):
    """Schema for a stored technician limit."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Limit identifier", json_schema_extra={"example": 3})
    technician_id: str = Field(description="Technician the limit applies to", json_schema_extra={"example": "tech-042"})
    scope: LimitScope = Field(description="Limit scope", json_schema_extra={"example": LimitScope.TOTAL.value})
    target_id: int | None = Field(description="Part or category identifier", json_schema_extra={"example": None})
    max_quantity_per_request: int | None
    max_value_per_request: Decimal | None
    max_quantity_per_day: int | None
    max_value_per_day: Decimal | None
    max_quantity_per_month: int | None
    max_value_per_month: Decimal | None
    requires_approval: bool
    auto_approve_below: Decimal | None
    is_active: bool = Field(description="Whether the limit applies to new checks", json_schema_extra={"example": True})
    created_at: datetime


class TechnicianLimitListQuerySchema(BaseModel):
    """Query parameters for listing technician limits."""

    technician_id: str | None = Field(None, description="Only limits of this technician")
    include_inactive: bool = Field(default=False, description="Include deactivated limits")


class LimitCheckRequestSchema(BaseModel):
    """Schema for evaluating a prospective request against technician limits."""

    technician_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Technician who would place the request",
        json_schema_extra={"example": "tech-042"},
    )
    quantity: int = Field(..., gt=0, description="Requested quantity", json_schema_extra={"example": 2})
    estimated_cost: Decimal = Field(
        ...,
        ge=0,
        description="Estimated value of the request",
        json_schema_extra={"example": "5000.00"},
    )
    part_id: int | None = Field(None, description="Part being requested", json_schema_extra={"example": 12})
    category_id: int | None = Field(None, description="Category of the part", json_schema_extra={"example": 4})


class LimitViolationSchema(BaseModel):
    """A limit ceiling the request would exceed."""

    model_config = ConfigDict(from_attributes=True)

    limit_id: int = Field(description="Violated limit", json_schema_extra={"example": 3})
    scope: LimitScope = Field(description="Scope of the violated limit", json_schema_extra={"example": LimitScope.TOTAL.value})
    target_id: int | None = Field(description="Part or category of the violated limit", json_schema_extra={"example": None})
    ceiling: LimitCeiling = Field(description="Which ceiling was exceeded", json_schema_extra={"example": LimitCeiling.DAILY_VALUE.value})
    limit_value: Decimal = Field(description="Configured ceiling", json_schema_extra={"example": "3000.00"})
    attempted_value: Decimal = Field(description="Value the request would reach", json_schema_extra={"example": "5000.00"})


class LimitCheckResponseSchema(BaseModel):
    """Outcome of a limit check."""

    model_config = ConfigDict(from_attributes=True)

    outcome: LimitCheckOutcome = Field(
        description="Auto approvable, approval required or limit exceeded",
        json_schema_extra={"example": LimitCheckOutcome.LIMIT_EXCEEDED.value},
    )
    requires_approval: bool = Field(description="Whether an approver must decide", json_schema_extra={"example": True})
    requested_quantity: int = Field(json_schema_extra={"example": 2})
    requested_value: Decimal = Field(json_schema_extra={"example": "5000.00"})
    violations: list[LimitViolationSchema] = Field(
        default_factory=list,
        description="Violated ceilings, most restrictive first",
    )
    applicable_limit_ids: list[int] = Field(
        default_factory=list,
        description="Active limits that were evaluated",
    )
