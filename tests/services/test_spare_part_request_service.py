"""Tests for SparePartRequestService creation, listing and cancellation."""

from decimal import Decimal

import pytest

from app.exceptions import (
    InvalidTransitionException,
    LimitExceededException,
    RecordNotFoundException,
    ValidationException,
)
from app.models.approval_history import ApprovalDecision
from app.models.spare_part_request import RequestPriority, RequestStatus, SparePartRequest
from app.models.stock_reservation import ReservationReleaseReason
from app.models.technician_limit import LimitScope
from app.services.approval_service import SYSTEM_APPROVER
from app.services.limit_checker_service import LimitCheckOutcome


class TestCreateRequest:
    def test_small_request_is_auto_approved_and_reserved(self, workflow, stocked_part, clock):
        part, store = stocked_part

        outcome = workflow.requests.create_request(
            "SR-1", part.id, 2, "tech-1", store_id=store.id
        )

        request = outcome.request
        assert outcome.limit_check.outcome == LimitCheckOutcome.AUTO_APPROVABLE
        assert request.status == RequestStatus.APPROVED
        assert request.approved_by == SYSTEM_APPROVER
        assert request.approved_at == clock.now()
        assert request.estimated_cost == Decimal("200.00")
        assert outcome.reservation is not None
        assert outcome.reservation.quantity == 2
        assert not outcome.reservation_pending

        history = workflow.approvals.get_history(request.id)
        assert len(history) == 1
        assert history[0].decision == ApprovalDecision.APPROVED
        assert history[0].is_active is False
        assert workflow.metrics.requests_created == ["auto_approvable"]

    def test_auto_approved_without_store_is_pending_reservation(self, workflow, stocked_part):
        part, _ = stocked_part

        outcome = workflow.requests.create_request("SR-1", part.id, 1, "tech-1")

        assert outcome.request.status == RequestStatus.APPROVED
        assert outcome.reservation is None
        assert outcome.reservation_pending

    def test_limit_exceeded_routes_to_two_levels(self, workflow, make_part):
        part = make_part(unit_price="2500.00")
        workflow.limits.create_limit(
            "tech-1", LimitScope.TOTAL, max_value_per_day=Decimal("3000")
        )

        outcome = workflow.requests.create_request("SR-1", part.id, 2, "tech-1")

        request = outcome.request
        assert outcome.limit_check.outcome == LimitCheckOutcome.LIMIT_EXCEEDED
        assert request.status == RequestStatus.PENDING
        assert request.required_approval_levels == 2
        assert request.current_approval_level == 1
        assert "daily_value" in request.limit_violation
        active = workflow.approvals.get_active_entry(request.id)
        assert active.level == 1
        assert active.decision == ApprovalDecision.PENDING
        assert active.request_value == Decimal("5000.00")

    def test_limit_exceeded_can_be_rejected_outright(self, workflow, session, make_part):
        part = make_part(unit_price="2500.00")
        workflow.limits.create_limit(
            "tech-1", LimitScope.TOTAL, max_value_per_day=Decimal("3000")
        )

        with pytest.raises(LimitExceededException):
            workflow.requests.create_request(
                "SR-1", part.id, 2, "tech-1", fail_on_limit_exceeded=True
            )

        assert session.query(SparePartRequest).count() == 0

    def test_required_levels_follow_value_thresholds(self, workflow, make_part):
        part = make_part(unit_price="3000.00")

        outcome = workflow.requests.create_request("SR-1", part.id, 3, "tech-1")

        # 9000 exceeds both thresholds
        assert outcome.limit_check.outcome == LimitCheckOutcome.APPROVAL_REQUIRED
        assert outcome.request.required_approval_levels == 3

    def test_explicit_estimate_overrides_unit_price(self, workflow, make_part):
        part = make_part(unit_price="100.00")

        outcome = workflow.requests.create_request(
            "SR-1", part.id, 1, "tech-1", estimated_cost=Decimal("750")
        )

        assert outcome.request.estimated_cost == Decimal("750")
        assert outcome.request.status == RequestStatus.PENDING

    def test_invalid_input(self, workflow, make_part):
        part = make_part()
        with pytest.raises(ValidationException):
            workflow.requests.create_request("SR-1", part.id, 0, "tech-1")
        with pytest.raises(ValidationException):
            workflow.requests.create_request("  ", part.id, 1, "tech-1")
        with pytest.raises(RecordNotFoundException):
            workflow.requests.create_request("SR-1", 999, 1, "tech-1")
        with pytest.raises(RecordNotFoundException):
            workflow.requests.create_request("SR-1", part.id, 1, "tech-1", store_id=999)


class TestListRequests:
    def test_filters(self, workflow, make_part):
        part = make_part(unit_price="10.00")
        other = make_part(unit_price="10.00")
        workflow.requests.create_request("SR-1", part.id, 1, "tech-1", priority=RequestPriority.HIGH)
        workflow.requests.create_request("SR-1", other.id, 1, "tech-2")
        workflow.requests.create_request("SR-2", part.id, 1, "tech-1")

        assert len(workflow.requests.list_requests()) == 3
        assert len(workflow.requests.list_requests(service_request_id="SR-1")) == 2
        assert len(workflow.requests.list_requests(requested_by="tech-2")) == 1
        assert len(workflow.requests.list_requests(part_id=part.id)) == 2
        assert len(workflow.requests.list_requests(priority=RequestPriority.HIGH)) == 1
        assert len(workflow.requests.list_requests(status=RequestStatus.PENDING)) == 0
        assert len(workflow.requests.list_requests(limit=2)) == 2
        assert len(workflow.requests.list_requests(limit=2, offset=2)) == 1


class TestCancelRequest:
    def test_cancel_pending_closes_open_level(self, workflow, make_part, clock):
        part = make_part(unit_price="800.00")
        request = workflow.requests.create_request("SR-1", part.id, 1, "tech-1").request

        cancelled = workflow.requests.cancel_request(request.id, "tech-1", "Not needed")

        assert cancelled.status == RequestStatus.CANCELLED
        assert cancelled.cancelled_by == "tech-1"
        assert cancelled.cancel_reason == "Not needed"
        assert cancelled.cancelled_at == clock.now()
        assert workflow.approvals.get_active_entry(request.id) is None
        assert workflow.metrics.requests_cancelled == ["pending"]

    def test_cancel_approved_releases_reservation(self, workflow, stocked_part):
        part, store = stocked_part
        outcome = workflow.requests.create_request("SR-1", part.id, 3, "tech-1", store_id=store.id)

        workflow.requests.cancel_request(outcome.request.id, "tech-1")

        assert outcome.reservation.is_active is False
        assert outcome.reservation.release_reason == ReservationReleaseReason.CANCELLED
        assert workflow.stock.get_availability(part.id, store.id).available == 10

    def test_cancel_twice_is_invalid(self, workflow, make_part):
        part = make_part(unit_price="800.00")
        request = workflow.requests.create_request("SR-1", part.id, 1, "tech-1").request
        workflow.requests.cancel_request(request.id, "tech-1")

        with pytest.raises(InvalidTransitionException):
            workflow.requests.cancel_request(request.id, "tech-1")

    def test_decision_after_cancel_is_invalid(self, workflow, make_part):
        part = make_part(unit_price="800.00")
        request = workflow.requests.create_request("SR-1", part.id, 1, "tech-1").request
        workflow.requests.cancel_request(request.id, "tech-1")

        with pytest.raises(InvalidTransitionException) as exc_info:
            workflow.approvals.decide(request.id, 1, ApprovalDecision.APPROVED, "mgr-1")
        assert not exc_info.value.retryable
