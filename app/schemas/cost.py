"""Schemas for service request cost summaries."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ServiceRequestCostsSchema(BaseModel):
    """Spare part costs accumulated on a service request."""

    model_config = ConfigDict(from_attributes=True)

    service_request_id: str = Field(json_schema_extra={"example": "SR-2024-0193"})
    installed_count: int = Field(description="Installed requests", json_schema_extra={"example": 1})
    parts_cost: Decimal = Field(description="Quantity times unit cost over installed parts", json_schema_extra={"example": "200.00"})
    service_cost: Decimal = Field(json_schema_extra={"example": "50.00"})
    labor_cost: Decimal = Field(json_schema_extra={"example": "20.00"})
    total_cost: Decimal = Field(description="Realized cost of installed parts", json_schema_extra={"example": "270.00"})
    in_flight_count: int = Field(description="Approved or issued requests not yet installed", json_schema_extra={"example": 0})
    in_flight_estimated_cost: Decimal = Field(json_schema_extra={"example": "0.00"})
