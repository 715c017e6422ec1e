"""Schemas for spare part requests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from app.models.spare_part_request import RequestPriority, RequestStatus
from app.schemas.reservation import ReservationResponseSchema
from app.schemas.technician_limit import LimitCheckResponseSchema


class SparePartRequestCreateSchema(BaseModel):
    """Schema for raising a spare part request against a service request."""

    service_request_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Service request (job) the part is needed for",
        json_schema_extra={"example": "SR-2024-0193"},
    )
    part_id: int = Field(..., description="Requested part", json_schema_extra={"example": 12})
    quantity: int = Field(..., gt=0, description="Requested quantity", json_schema_extra={"example": 2})
    requested_by: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Technician raising the request",
        json_schema_extra={"example": "tech-042"},
    )
    priority: RequestPriority = Field(
        default=RequestPriority.MEDIUM,
        description="Urgency of the request",
        json_schema_extra={"example": RequestPriority.HIGH.value},
    )
    estimated_cost: Decimal | None = Field(
        None,
        ge=0,
        description="Estimated value; defaults to unit price times quantity",
        json_schema_extra={"example": "240.00"},
    )
    justification: str | None = Field(
        None,
        description="Why the part is needed",
        json_schema_extra={"example": "Brake pads worn below minimum"},
    )
    store_id: int | None = Field(
        None,
        description="Store the part should come from",
        json_schema_extra={"example": 2},
    )
    fail_on_limit_exceeded: bool = Field(
        default=False,
        description="Reject the request instead of routing it to approval when a limit is exceeded",
        json_schema_extra={"example": False},
    )


class SparePartRequestCancelSchema(BaseModel):
    """Schema for cancelling a request."""

    cancelled_by: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="User cancelling the request",
        json_schema_extra={"example": "tech-042"},
    )
    reason: str | None = Field(
        None,
        description="Why the request was cancelled",
        json_schema_extra={"example": "Customer declined the repair"},
    )


class SparePartRequestListQuerySchema(BaseModel):
    """Query parameters for listing requests."""

    status: RequestStatus | None = Field(None, description="Only requests in this status")
    requested_by: str | None = Field(None, description="Only requests of this technician")
    service_request_id: str | None = Field(None, description="Only requests of this service request")
    part_id: int | None = Field(None, description="Only requests for this part")
    store_id: int | None = Field(None, description="Only requests served by this store")
    priority: RequestPriority | None = Field(None, description="Only requests with this priority")
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class SparePartRequestResponseSchema(BaseModel):
    """Schema for a spare part request and its lifecycle state."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Request identifier", json_schema_extra={"example": 7})
    service_request_id: str = Field(description="Service request reference", json_schema_extra={"example": "SR-2024-0193"})
    part_id: int = Field(description="Requested part", json_schema_extra={"example": 12})
    store_id: int | None = Field(description="Store serving the request", json_schema_extra={"example": 2})
    quantity: int = Field(description="Requested quantity", json_schema_extra={"example": 2})
    returned_quantity: int = Field(
        default=0,
        description="Unused units handed back after installation",
        json_schema_extra={"example": 0},
    )
    priority: RequestPriority = Field(json_schema_extra={"example": RequestPriority.HIGH.value})
    justification: str | None
    estimated_cost: Decimal = Field(description="Estimated value", json_schema_extra={"example": "240.00"})
    issued_cost: Decimal | None = Field(description="Cost recorded at issue", json_schema_extra={"example": None})
    actual_cost: Decimal | None = Field(description="Realized cost, set on installation", json_schema_extra={"example": None})
    status: RequestStatus = Field(description="Lifecycle status", json_schema_extra={"example": RequestStatus.PENDING.value})
    current_approval_level: int = Field(description="Level currently awaiting a decision", json_schema_extra={"example": 1})
    required_approval_levels: int = Field(description="Levels needed for final approval", json_schema_extra={"example": 2})
    limit_violation: str | None = Field(description="Most restrictive limit violation at creation", json_schema_extra={"example": None})
    requested_by: str
    approved_by: str | None
    issued_by: str | None
    cancelled_by: str | None
    cancel_reason: str | None
    requested_at: datetime
    approved_at: datetime | None
    issued_at: datetime | None
    installed_at: datetime | None
    cancelled_at: datetime | None
    updated_at: datetime


class SparePartRequestCreateResponseSchema(BaseModel):
    """Result of raising a request: the request, its limit check and any reservation."""

    model_config = ConfigDict(from_attributes=True)

    request: SparePartRequestResponseSchema
    limit_check: LimitCheckResponseSchema
    reservation: ReservationResponseSchema | None = Field(
        None,
        description="Reservation placed when the request was approved automatically",
    )
    reservation_pending: bool = Field(
        default=False,
        description="Approved automatically, but stock could not be reserved yet",
    )
