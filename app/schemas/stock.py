"""Schemas for store stock levels."""

from pydantic import BaseModel, ConfigDict, Field


class StockReceiveSchema(BaseModel):
    """Schema for receiving stock into a store."""

    part_id: int = Field(..., description="Part being received", json_schema_extra={"example": 12})
    store_id: int = Field(..., description="Receiving store", json_schema_extra={"example": 2})
    quantity: int = Field(..., gt=0, description="Quantity received", json_schema_extra={"example": 10})


class StockAvailabilitySchema(BaseModel):
    """Schema describing stock of a part at a store."""

    model_config = ConfigDict(from_attributes=True)

    part_id: int = Field(description="Part identifier", json_schema_extra={"example": 12})
    store_id: int = Field(description="Store identifier", json_schema_extra={"example": 2})
    current: int = Field(description="Quantity physically on hand", json_schema_extra={"example": 10})
    reserved: int = Field(description="Quantity held by active reservations", json_schema_extra={"example": 6})
    available: int = Field(description="Quantity free to reserve", json_schema_extra={"example": 4})
    damaged: int = Field(
        default=0,
        description="Returned units unfit for reuse, not part of current",
        json_schema_extra={"example": 1},
    )
