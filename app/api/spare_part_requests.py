"""Spare part request lifecycle API endpoints."""

from __future__ import annotations

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from app.exceptions import RecordNotFoundException
from app.schemas.common import ErrorResponseSchema
from app.schemas.installation import (
    InstalledPartResponseSchema,
    InstallRequestSchema,
    IssueRequestSchema,
    IssueResponseSchema,
    ReturnUnusedSchema,
    StockReturnResponseSchema,
)
from app.schemas.spare_part_request import (
    SparePartRequestCancelSchema,
    SparePartRequestCreateResponseSchema,
    SparePartRequestCreateSchema,
    SparePartRequestListQuerySchema,
    SparePartRequestResponseSchema,
)
from app.services.container import ServiceContainer
from app.services.issuance_service import InstallationDetails
from app.utils.error_handling import handle_api_errors
from app.utils.spectree_config import api

spare_part_requests_bp = Blueprint(
    "spare_part_requests", __name__, url_prefix="/spare-part-requests"
)


@spare_part_requests_bp.route("", methods=["POST"])
@api.validate(
    json=SparePartRequestCreateSchema,
    resp=SpectreeResponse(
        HTTP_201=SparePartRequestCreateResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def create_request(
    spare_part_request_service=Provide[ServiceContainer.spare_part_request_service],
):
    """Raise a spare part request, checking technician limits.

    Requests within limits are approved and reserved immediately; others wait
    for the approval levels.
    """
    payload = SparePartRequestCreateSchema.model_validate(request.get_json())
    outcome = spare_part_request_service.create_request(
        service_request_id=payload.service_request_id,
        part_id=payload.part_id,
        quantity=payload.quantity,
        requested_by=payload.requested_by,
        priority=payload.priority,
        estimated_cost=payload.estimated_cost,
        justification=payload.justification,
        store_id=payload.store_id,
        fail_on_limit_exceeded=payload.fail_on_limit_exceeded,
    )
    return SparePartRequestCreateResponseSchema.model_validate(outcome).model_dump(mode="json"), 201


@spare_part_requests_bp.route("", methods=["GET"])
@api.validate(
    query=SparePartRequestListQuerySchema,
    resp=SpectreeResponse(
        HTTP_200=list[SparePartRequestResponseSchema],
        HTTP_400=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def list_requests(
    spare_part_request_service=Provide[ServiceContainer.spare_part_request_service],
):
    """List requests filtered by status, technician, service request, part, store or priority."""
    query = SparePartRequestListQuerySchema.model_validate(request.args.to_dict())
    requests = spare_part_request_service.list_requests(
        status=query.status,
        requested_by=query.requested_by,
        service_request_id=query.service_request_id,
        part_id=query.part_id,
        store_id=query.store_id,
        priority=query.priority,
        limit=query.limit,
        offset=query.offset,
    )
    return [
        SparePartRequestResponseSchema.model_validate(r).model_dump(mode="json")
        for r in requests
    ]


@spare_part_requests_bp.route("/<int:request_id>", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=SparePartRequestResponseSchema,
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def get_request(
    request_id: int,
    spare_part_request_service=Provide[ServiceContainer.spare_part_request_service],
):
    """Get a single request."""
    spare_part_request = spare_part_request_service.get_request(request_id)
    return SparePartRequestResponseSchema.model_validate(spare_part_request).model_dump(mode="json")


@spare_part_requests_bp.route("/<int:request_id>/cancel", methods=["POST"])
@api.validate(
    json=SparePartRequestCancelSchema,
    resp=SpectreeResponse(
        HTTP_200=SparePartRequestResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def cancel_request(
    request_id: int,
    spare_part_request_service=Provide[ServiceContainer.spare_part_request_service],
):
    """Cancel a pending, approved or issued request and release its stock."""
    payload = SparePartRequestCancelSchema.model_validate(request.get_json())
    spare_part_request = spare_part_request_service.cancel_request(
        request_id, cancelled_by=payload.cancelled_by, reason=payload.reason
    )
    return SparePartRequestResponseSchema.model_validate(spare_part_request).model_dump(mode="json")


@spare_part_requests_bp.route("/<int:request_id>/issue", methods=["POST"])
@api.validate(
    json=IssueRequestSchema,
    resp=SpectreeResponse(
        HTTP_200=IssueResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def issue_request(
    request_id: int,
    issuance_service=Provide[ServiceContainer.issuance_service],
):
    """Issue the reserved stock of an approved request."""
    payload = IssueRequestSchema.model_validate(request.get_json())
    event = issuance_service.issue(
        request_id,
        store_id=payload.store_id,
        issued_by=payload.issued_by,
        issued_cost=payload.issued_cost,
    )
    return IssueResponseSchema.model_validate(event).model_dump(mode="json")


@spare_part_requests_bp.route("/<int:request_id>/install", methods=["POST"])
@api.validate(
    json=InstallRequestSchema,
    resp=SpectreeResponse(
        HTTP_200=InstalledPartResponseSchema,
        HTTP_201=InstalledPartResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def install_request(
    request_id: int,
    issuance_service=Provide[ServiceContainer.issuance_service],
):
    """Record installation of an issued request.

    Repeating the call returns the existing installation with 200.
    """
    payload = InstallRequestSchema.model_validate(request.get_json())
    already_installed = issuance_service.get_installed_part(request_id) is not None

    installed_part = issuance_service.install(
        request_id,
        installed_by=payload.installed_by,
        details=InstallationDetails(
            quantity=payload.quantity,
            unit_cost=payload.unit_cost,
            service_cost=payload.service_cost,
            labor_cost=payload.labor_cost,
            warranty_start=payload.warranty_start,
            warranty_end=payload.warranty_end,
            mileage_at_installation=payload.mileage_at_installation,
            notes=payload.notes,
        ),
    )
    body = InstalledPartResponseSchema.model_validate(installed_part).model_dump(mode="json")
    return body, 200 if already_installed else 201


@spare_part_requests_bp.route("/<int:request_id>/installation", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=InstalledPartResponseSchema,
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def get_installation(
    request_id: int,
    issuance_service=Provide[ServiceContainer.issuance_service],
):
    """Get the installation record of a request."""
    installed_part = issuance_service.get_installed_part(request_id)
    if installed_part is None:
        raise RecordNotFoundException("Installation of request", request_id)
    return InstalledPartResponseSchema.model_validate(installed_part).model_dump(mode="json")


@spare_part_requests_bp.route("/<int:request_id>/returns", methods=["POST"])
@api.validate(
    json=ReturnUnusedSchema,
    resp=SpectreeResponse(
        HTTP_201=StockReturnResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def return_unused_parts(
    request_id: int,
    issuance_service=Provide[ServiceContainer.issuance_service],
):
    """Hand unused units of an installed request back to the issuing store."""
    payload = ReturnUnusedSchema.model_validate(request.get_json())
    stock_return = issuance_service.return_unused(
        request_id,
        quantity=payload.quantity,
        condition=payload.condition,
        returned_by=payload.returned_by,
        reason=payload.reason,
    )
    return StockReturnResponseSchema.model_validate(stock_return).model_dump(mode="json"), 201


@spare_part_requests_bp.route("/<int:request_id>/returns", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=list[StockReturnResponseSchema],
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def list_returns(
    request_id: int,
    issuance_service=Provide[ServiceContainer.issuance_service],
):
    """List the returns recorded for a request, oldest first."""
    returns = issuance_service.list_returns(request_id)
    return [StockReturnResponseSchema.model_validate(r).model_dump(mode="json") for r in returns]
