"""Schemas for issuing, installing and returning requested parts."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.stock_return import ReturnCondition
from app.schemas.spare_part_request import SparePartRequestResponseSchema


class IssueRequestSchema(BaseModel):
    """Schema for issuing reserved stock to a technician."""

    store_id: int = Field(..., description="Store handing out the part", json_schema_extra={"example": 2})
    issued_by: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Storekeeper issuing the part",
        json_schema_extra={"example": "storekeeper-1"},
    )
    issued_cost: Decimal | None = Field(
        None,
        ge=0,
        description="Cost recorded at issue, if known",
        json_schema_extra={"example": "240.00"},
    )


class StockIssuanceSchema(BaseModel):
    """Schema for the stock movement recorded by an issue."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Issuance identifier", json_schema_extra={"example": 4})
    reservation_id: int = Field(description="Consumed reservation", json_schema_extra={"example": 15})
    request_id: int
    part_id: int
    store_id: int
    quantity: int = Field(description="Quantity taken out of the store", json_schema_extra={"example": 2})
    issued_by: str
    issued_at: datetime


class IssueResponseSchema(BaseModel):
    """Result of issuing a request."""

    model_config = ConfigDict(from_attributes=True)

    request: SparePartRequestResponseSchema
    issuance: StockIssuanceSchema


class InstallRequestSchema(BaseModel):
    """Schema for recording installation of an issued part."""

    installed_by: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Technician who installed the part",
        json_schema_extra={"example": "tech-042"},
    )
    quantity: int | None = Field(
        None,
        gt=0,
        description="Installed quantity; defaults to the requested quantity",
        json_schema_extra={"example": 2},
    )
    unit_cost: Decimal | None = Field(
        None,
        ge=0,
        description="Actual unit cost; defaults to the part's unit price",
        json_schema_extra={"example": "100.00"},
    )
    service_cost: Decimal = Field(default=Decimal("0"), ge=0, json_schema_extra={"example": "50.00"})
    labor_cost: Decimal = Field(default=Decimal("0"), ge=0, json_schema_extra={"example": "20.00"})
    warranty_start: date | None = Field(None, json_schema_extra={"example": "2024-05-01"})
    warranty_end: date | None = Field(None, json_schema_extra={"example": "2025-05-01"})
    mileage_at_installation: int | None = Field(None, ge=0, json_schema_extra={"example": 84210})
    notes: str | None = Field(None, json_schema_extra={"example": "Replaced front pads"})

    @model_validator(mode="after")
    def _check_warranty(self) -> InstallRequestSchema:
        if self.warranty_start and self.warranty_end and self.warranty_end < self.warranty_start:
            raise ValueError("warranty_end must not be before warranty_start")
        return self


class InstalledPartResponseSchema(BaseModel):
    """Schema for an installation record and its reconciled cost."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Installation identifier", json_schema_extra={"example": 9})
    request_id: int = Field(description="Installed request", json_schema_extra={"example": 7})
    quantity: int = Field(json_schema_extra={"example": 2})
    unit_cost: Decimal = Field(json_schema_extra={"example": "100.00"})
    service_cost: Decimal = Field(json_schema_extra={"example": "50.00"})
    labor_cost: Decimal = Field(json_schema_extra={"example": "20.00"})
    total_cost: Decimal = Field(
        description="Quantity times unit cost plus service and labor",
        json_schema_extra={"example": "270.00"},
    )
    installed_by: str
    installed_at: datetime
    warranty_start: date | None
    warranty_end: date | None
    mileage_at_installation: int | None
    notes: str | None


class ReturnUnusedSchema(BaseModel):
    """Schema for handing unused units of an installed request back to the store."""

    quantity: int = Field(..., gt=0, description="Units handed back", json_schema_extra={"example": 1})
    condition: ReturnCondition = Field(
        default=ReturnCondition.GOOD,
        description="Good units go back into stock; damaged units are only counted",
        json_schema_extra={"example": ReturnCondition.GOOD.value},
    )
    returned_by: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Technician returning the units",
        json_schema_extra={"example": "tech-042"},
    )
    reason: str | None = Field(None, json_schema_extra={"example": "Kit contained a spare pad"})


class StockReturnResponseSchema(BaseModel):
    """Schema for a recorded return of unused units."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Return identifier", json_schema_extra={"example": 3})
    request_id: int = Field(json_schema_extra={"example": 7})
    part_id: int
    store_id: int = Field(description="Store the units went back to", json_schema_extra={"example": 2})
    quantity: int = Field(json_schema_extra={"example": 1})
    condition: ReturnCondition
    returned_by: str
    returned_at: datetime
    reason: str | None
