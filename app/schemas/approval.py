"""Schemas for approval decisions and history."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.models.approval_history import ApprovalDecision
from app.schemas.reservation import ReservationResponseSchema
from app.schemas.spare_part_request import SparePartRequestResponseSchema


class ApprovalDecisionChoice(str, Enum):
    """Decisions an approver may submit."""

    APPROVED = ApprovalDecision.APPROVED.value
    REJECTED = ApprovalDecision.REJECTED.value
    ESCALATED = ApprovalDecision.ESCALATED.value


class ApprovalDecisionSchema(BaseModel):
    """Schema for an approver's decision on one level."""

    approver_id: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Approver submitting the decision",
        json_schema_extra={"example": "manager-7"},
    )
    decision: ApprovalDecisionChoice = Field(
        ...,
        description="Approve, reject or escalate the level",
        json_schema_extra={"example": ApprovalDecisionChoice.APPROVED.value},
    )
    comments: str | None = Field(
        None,
        description="Free-text comments recorded with the decision",
        json_schema_extra={"example": "Vehicle is off the road, approved"},
    )


class ApprovalEntrySchema(BaseModel):
    """Schema for one approval level of a request."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Entry identifier", json_schema_extra={"example": 21})
    request_id: int = Field(description="Request under approval", json_schema_extra={"example": 7})
    level: int = Field(description="Approval level, starting at 1", json_schema_extra={"example": 1})
    approver_id: str | None = Field(description="Approver who decided the level", json_schema_extra={"example": "manager-7"})
    decision: ApprovalDecision = Field(description="Decision taken", json_schema_extra={"example": ApprovalDecision.PENDING.value})
    comments: str | None
    request_value: Decimal = Field(description="Request value when the level opened", json_schema_extra={"example": "270.00"})
    assigned_at: datetime
    processed_at: datetime | None
    is_active: bool = Field(description="Whether the level still awaits a decision", json_schema_extra={"example": True})


class PendingApprovalsQuerySchema(BaseModel):
    """Query parameters for the approver queue."""

    level: int | None = Field(None, ge=1, description="Only entries at this level")
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ApprovalOutcomeSchema(BaseModel):
    """Result of applying a decision."""

    model_config = ConfigDict(from_attributes=True)

    entry: ApprovalEntrySchema = Field(description="The decided entry")
    request: SparePartRequestResponseSchema = Field(description="Request after the decision")
    next_entry: ApprovalEntrySchema | None = Field(None, description="Level opened by this decision")
    reservation: ReservationResponseSchema | None = Field(None, description="Reservation placed on final approval")
    reservation_pending: bool = Field(
        default=False,
        description="Approved, but stock could not be reserved yet",
        json_schema_extra={"example": False},
    )
