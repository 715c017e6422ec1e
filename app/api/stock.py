"""Store stock API endpoints."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from app.schemas.common import ErrorResponseSchema
from app.schemas.stock import StockAvailabilitySchema, StockReceiveSchema
from app.services.container import ServiceContainer
from app.utils.error_handling import handle_api_errors
from app.utils.spectree_config import api

stock_bp = Blueprint("stock", __name__, url_prefix="/stock")


@stock_bp.route("", methods=["POST"])
@api.validate(
    json=StockReceiveSchema,
    resp=SpectreeResponse(
        HTTP_201=StockAvailabilitySchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def receive_stock(
    stock_service=Provide[ServiceContainer.stock_service],
):
    """Receive stock of a part into a store."""
    payload = StockReceiveSchema.model_validate(request.get_json())
    stock_service.add_stock(payload.part_id, payload.store_id, payload.quantity)
    availability = stock_service.get_availability(payload.part_id, payload.store_id)
    return StockAvailabilitySchema.model_validate(availability).model_dump(), 201


@stock_bp.route("/<int:part_id>/<int:store_id>", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=StockAvailabilitySchema,
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def get_availability(
    part_id: int,
    store_id: int,
    stock_service=Provide[ServiceContainer.stock_service],
):
    """Get current, reserved and available stock of a part at a store."""
    availability = stock_service.get_availability(part_id, store_id)
    return StockAvailabilitySchema.model_validate(availability).model_dump()
