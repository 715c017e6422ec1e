"""Stock reservation API endpoints."""

from __future__ import annotations

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from app.schemas.common import ErrorResponseSchema
from app.schemas.reservation import (
    ReservationCreateSchema,
    ReservationReleaseSchema,
    ReservationResponseSchema,
)
from app.services.container import ServiceContainer
from app.utils.error_handling import handle_api_errors
from app.utils.spectree_config import api

reservations_bp = Blueprint("reservations", __name__)


@reservations_bp.route("/spare-part-requests/<int:request_id>/reservations", methods=["POST"])
@api.validate(
    json=ReservationCreateSchema,
    resp=SpectreeResponse(
        HTTP_201=ReservationResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def reserve_stock(
    request_id: int,
    reservation_service=Provide[ServiceContainer.reservation_service],
):
    """Reserve the full quantity of an approved request.

    Used after approval when no stock was available, or after a reservation
    expired.
    """
    payload = ReservationCreateSchema.model_validate(request.get_json())
    reservation = reservation_service.reserve_for_request(
        request_id,
        reserved_by=payload.reserved_by,
        store_id=payload.store_id,
        ttl_seconds=payload.ttl_seconds,
    )
    return ReservationResponseSchema.model_validate(reservation).model_dump(mode="json"), 201


@reservations_bp.route("/spare-part-requests/<int:request_id>/reservations", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=list[ReservationResponseSchema],
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def list_reservations(
    request_id: int,
    reservation_service=Provide[ServiceContainer.reservation_service],
):
    """List all reservations ever placed for a request."""
    reservations = reservation_service.list_reservations(request_id)
    return [
        ReservationResponseSchema.model_validate(r).model_dump(mode="json")
        for r in reservations
    ]


@reservations_bp.route("/reservations/<int:reservation_id>/release", methods=["POST"])
@api.validate(
    json=ReservationReleaseSchema,
    resp=SpectreeResponse(
        HTTP_200=ReservationResponseSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def release_reservation(
    reservation_id: int,
    reservation_service=Provide[ServiceContainer.reservation_service],
):
    """Release a reservation. Releasing an already released reservation is a no-op."""
    payload = ReservationReleaseSchema.model_validate(request.get_json(silent=True) or {})
    reservation = reservation_service.release(reservation_id, reason=payload.reason)
    return ReservationResponseSchema.model_validate(reservation).model_dump(mode="json")
