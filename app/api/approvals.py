"""Approval decision and approver queue API endpoints."""

from __future__ import annotations

from dependency_injector.wiring import Provide, inject
from flask import Blueprint, request
from spectree import Response as SpectreeResponse

from app.models.approval_history import ApprovalDecision
from app.schemas.approval import (
    ApprovalDecisionSchema,
    ApprovalEntrySchema,
    ApprovalOutcomeSchema,
    PendingApprovalsQuerySchema,
)
from app.schemas.common import ErrorResponseSchema
from app.services.container import ServiceContainer
from app.utils.error_handling import handle_api_errors
from app.utils.spectree_config import api

approvals_bp = Blueprint("approvals", __name__)


@approvals_bp.route("/spare-part-requests/<int:request_id>/approvals", methods=["GET"])
@api.validate(
    resp=SpectreeResponse(
        HTTP_200=list[ApprovalEntrySchema],
        HTTP_404=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def get_approval_history(
    request_id: int,
    approval_service=Provide[ServiceContainer.approval_service],
):
    """List every approval level of a request in level order."""
    entries = approval_service.get_history(request_id)
    return [ApprovalEntrySchema.model_validate(e).model_dump(mode="json") for e in entries]


@approvals_bp.route(
    "/spare-part-requests/<int:request_id>/approvals/<int:level>", methods=["POST"]
)
@api.validate(
    json=ApprovalDecisionSchema,
    resp=SpectreeResponse(
        HTTP_200=ApprovalOutcomeSchema,
        HTTP_400=ErrorResponseSchema,
        HTTP_403=ErrorResponseSchema,
        HTTP_404=ErrorResponseSchema,
        HTTP_409=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def decide_approval(
    request_id: int,
    level: int,
    approval_service=Provide[ServiceContainer.approval_service],
):
    """Approve, reject or escalate the open approval level of a request.

    A second decision on the same level fails with a retryable conflict.
    """
    payload = ApprovalDecisionSchema.model_validate(request.get_json())
    outcome = approval_service.decide(
        request_id,
        level,
        ApprovalDecision(payload.decision.value),
        approver_id=payload.approver_id,
        comments=payload.comments,
    )
    return ApprovalOutcomeSchema.model_validate(outcome).model_dump(mode="json")


@approvals_bp.route("/approvals/pending", methods=["GET"])
@api.validate(
    query=PendingApprovalsQuerySchema,
    resp=SpectreeResponse(
        HTTP_200=list[ApprovalEntrySchema],
        HTTP_400=ErrorResponseSchema,
    ),
)
@handle_api_errors
@inject
def list_pending_approvals(
    approval_service=Provide[ServiceContainer.approval_service],
):
    """List approval levels awaiting a decision, oldest first."""
    query = PendingApprovalsQuerySchema.model_validate(request.args.to_dict())
    entries = approval_service.list_pending_approvals(
        level=query.level, limit=query.limit, offset=query.offset
    )
    return [ApprovalEntrySchema.model_validate(e).model_dump(mode="json") for e in entries]
