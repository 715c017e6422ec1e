"""Service request cost summary API endpoint."""

from dependency_injector.wiring import Provide, inject
from flask import Blueprint
from spectree import Response as SpectreeResponse

from app.schemas.common import ErrorResponseSchema
from app.schemas.cost import ServiceRequestCostsSchema
from app.services.container import ServiceContainer
from app.utils.error_handling import handle_api_errors
from app.utils.spectree_config import api

service_costs_bp = Blueprint("service_costs", __name__, url_prefix="/service-requests")


@service_costs_bp.route("/<string:service_request_id>/costs", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=ServiceRequestCostsSchema,
        HTTP_400=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def get_service_request_costs(
    service_request_id: str,
    cost_reconciliation_service=Provide[ServiceContainer.cost_reconciliation_service],
):
    """Summarize realized and in-flight spare part costs of a service request."""
    costs = cost_reconciliation_service.get_service_request_costs(service_request_id)
    return ServiceRequestCostsSchema.model_validate(costs).model_dump(mode="json")
