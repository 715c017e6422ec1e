"""Schemas for stock reservations."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.stock_reservation import ReservationReleaseReason


class ReservationCreateSchema(BaseModel):
    """Schema for reserving stock for an approved request."""

    reserved_by: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="User placing the reservation",
        json_schema_extra={"example": "storekeeper-1"},
    )
    store_id: int | None = Field(
        None,
        description="Store to reserve from; defaults to the request's store",
        json_schema_extra={"example": 2},
    )
    ttl_seconds: int | None = Field(
        None,
        ge=0,
        description="Reservation lifetime in seconds; 0 holds the stock until released",
        json_schema_extra={"example": 3600},
    )


class ReservationReleaseSchema(BaseModel):
    """Schema for releasing a reservation."""

    reason: ReservationReleaseReason = Field(
        default=ReservationReleaseReason.MANUAL,
        description="Why the reservation is released",
        json_schema_extra={"example": ReservationReleaseReason.MANUAL.value},
    )


class ReservationResponseSchema(BaseModel):
    """Schema for a stock reservation."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Reservation identifier", json_schema_extra={"example": 15})
    request_id: int = Field(description="Request holding the stock", json_schema_extra={"example": 7})
    part_id: int = Field(description="Reserved part", json_schema_extra={"example": 12})
    store_id: int = Field(description="Store holding the stock", json_schema_extra={"example": 2})
    quantity: int = Field(description="Reserved quantity", json_schema_extra={"example": 6})
    reserved_by: str = Field(description="User who placed the reservation", json_schema_extra={"example": "storekeeper-1"})
    reserved_at: datetime
    expires_at: datetime | None = Field(description="When the reservation lapses; empty for no expiry")
    is_active: bool = Field(description="Whether the stock is still held", json_schema_extra={"example": True})
    released_at: datetime | None
    release_reason: ReservationReleaseReason | None = Field(
        description="Why the reservation stopped being active",
        json_schema_extra={"example": None},
    )
