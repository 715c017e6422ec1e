"""Technician limit policy and limit check API endpoints."""

from __future__ import annotations

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from app.schemas.common import ErrorResponseSchema
from app.schemas.technician_limit import (
    LimitCheckRequestSchema,
    LimitCheckResponseSchema,
    TechnicianLimitCreateSchema,
    TechnicianLimitListQuerySchema,
    TechnicianLimitResponseSchema,
)
from app.services.container import ServiceContainer
from app.utils.error_handling import handle_api_errors
from app.utils.spectree_config import api

technician_limits_bp = Blueprint(
    "technician_limits", __name__, url_prefix="/technician-limits"
)


@technician_limits_bp.route("", methods=["POST"])
@api.validate(
    json=TechnicianLimitCreateSchema,
    resp=SpectreeResponse(
        HTTP_201=TechnicianLimitResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def create_limit(
    technician_limit_service=Provide[ServiceContainer.technician_limit_service],
):
    """Create a limit policy for a technician."""
    payload = TechnicianLimitCreateSchema.model_validate(request.get_json())
    limit = technician_limit_service.create_limit(**payload.model_dump())
    return TechnicianLimitResponseSchema.model_validate(limit).model_dump(mode="json"), 201


@technician_limits_bp.route("", methods=["GET"])
@api.validate(
    query=TechnicianLimitListQuerySchema,
    resp=SpectreeResponse(
        HTTP_200=list[TechnicianLimitResponseSchema],
        HTTP_400=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def list_limits(
    technician_limit_service=Provide[ServiceContainer.technician_limit_service],
):
    """List limit policies, optionally for one technician."""
    query = TechnicianLimitListQuerySchema.model_validate(request.args.to_dict())
    limits = technician_limit_service.list_limits(
        technician_id=query.technician_id, include_inactive=query.include_inactive
    )
    return [TechnicianLimitResponseSchema.model_validate(lim).model_dump(mode="json") for lim in limits]


@technician_limits_bp.route("/<int:limit_id>/deactivate", methods=["POST"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=TechnicianLimitResponseSchema,
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def deactivate_limit(
    limit_id: int,
    technician_limit_service=Provide[ServiceContainer.technician_limit_service],
):
    """Stop a limit from applying to future checks."""
    limit = technician_limit_service.deactivate_limit(limit_id)
    return TechnicianLimitResponseSchema.model_validate(limit).model_dump(mode="json")


@technician_limits_bp.route("/check", methods=["POST"])
@api.validate(
    json=LimitCheckRequestSchema,
    resp=SpectreeResponse(
        HTTP_200=LimitCheckResponseSchema,
        HTTP_400=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def check_limits(
    limit_checker_service=Provide[ServiceContainer.limit_checker_service],
):
    """Evaluate a prospective request against the technician's limits without side effects."""
    payload = LimitCheckRequestSchema.model_validate(request.get_json())
    result = limit_checker_service.check_limits(
        payload.technician_id,
        payload.quantity,
        payload.estimated_cost,
        part_id=payload.part_id,
        category_id=payload.category_id,
    )
    return LimitCheckResponseSchema.model_validate(result).model_dump(mode="json")
