"""Service managing the lifecycle of spare part requests."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.exceptions import ValidationException
from app.models.spare_part import SparePart
from app.models.spare_part_request import (
    RequestPriority,
    RequestStatus,
    SparePartRequest,
)
from app.models.stock_reservation import ReservationReleaseReason, StockReservation
from app.models.store import Store
from app.services.approval_service import SYSTEM_APPROVER, ApprovalService
from app.services.base import BaseService
from app.services.limit_checker_service import (
    LimitCheckerService,
    LimitCheckOutcome,
    LimitCheckResult,
)
from app.services.metrics_service import MetricsServiceProtocol
from app.services.request_state import transition_request
from app.services.reservation_service import ReservationService
from app.utils.clock import Clock

logger = logging.getLogger(__name__)

# A request that breached a limit always needs a human beyond the first level
MIN_LEVELS_AFTER_LIMIT_EXCEEDED = 2

CANCELLABLE_STATUSES = (
    RequestStatus.PENDING,
    RequestStatus.APPROVED,
    RequestStatus.ISSUED,
)


@dataclass(slots=True)
class RequestCreationOutcome:
    """A newly created request with the limit check that routed it."""

    request: SparePartRequest
    limit_check: LimitCheckResult
    reservation: StockReservation | None = None

    @property
    def reservation_pending(self) -> bool:
        return self.request.status == RequestStatus.APPROVED and self.reservation is None


class SparePartRequestService(BaseService):
    """Service class for creating, querying and cancelling spare part requests."""

    def __init__(
        self,
        db: Session,
        limit_checker_service: LimitCheckerService,
        approval_service: ApprovalService,
        reservation_service: ReservationService,
        metrics_service: MetricsServiceProtocol,
        clock: Clock,
    ):
        super().__init__(db)
        self.limit_checker_service = limit_checker_service
        self.approval_service = approval_service
        self.reservation_service = reservation_service
        self.metrics_service = metrics_service
        self.clock = clock

    def create_request(
        self,
        service_request_id: str,
        part_id: int,
        quantity: int,
        requested_by: str,
        priority: RequestPriority = RequestPriority.MEDIUM,
        estimated_cost: Decimal | None = None,
        justification: str | None = None,
        store_id: int | None = None,
        fail_on_limit_exceeded: bool = False,
    ) -> RequestCreationOutcome:
        """Create a request, routing it to auto approval or the approval levels.

        Args:
            service_request_id: Owning service request reference
            part_id: Requested spare part
            quantity: Requested quantity
            requested_by: Identity of the requesting technician
            priority: Request urgency
            estimated_cost: Estimated value, unit price x quantity when omitted
            justification: Free-text reason for the request
            store_id: Store the request will be fulfilled from
            fail_on_limit_exceeded: Raise LimitExceededException instead of
                routing a limit breach to approval

        Returns:
            RequestCreationOutcome with the request and its limit check
        """
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")
        if not service_request_id or not service_request_id.strip():
            raise ValidationException("service_request_id", "must not be empty")

        part = self._get_or_raise(SparePart, part_id, "Spare part")
        if store_id is not None:
            self._get_or_raise(Store, store_id, "Store")

        if estimated_cost is None:
            estimated_cost = Decimal(part.unit_price) * quantity
        if estimated_cost < 0:
            raise ValidationException("estimated_cost", "must not be negative")

        limit_check = self.limit_checker_service.check_limits(
            requested_by,
            quantity,
            estimated_cost,
            part_id=part.id,
            category_id=part.category_id,
        )
        if fail_on_limit_exceeded:
            limit_check.raise_if_exceeded()

        now = self.clock.now()
        request = SparePartRequest(
            service_request_id=service_request_id.strip(),
            part_id=part.id,
            store_id=store_id,
            quantity=quantity,
            priority=priority,
            justification=justification,
            estimated_cost=estimated_cost,
            status=RequestStatus.PENDING,
            current_approval_level=0,
            required_approval_levels=1,
            requested_by=requested_by,
            requested_at=now,
        )
        self.db.add(request)
        self.db.flush()

        outcome = RequestCreationOutcome(request=request, limit_check=limit_check)

        if limit_check.outcome == LimitCheckOutcome.AUTO_APPROVABLE:
            request.status = RequestStatus.APPROVED
            request.approved_by = SYSTEM_APPROVER
            request.approved_at = now
            self.approval_service.record_auto_approval(request, now)
            outcome.reservation = self.approval_service.try_reserve(request, reserved_by=requested_by)
        else:
            required_levels = self.approval_service.required_levels_for(estimated_cost)
            if limit_check.outcome == LimitCheckOutcome.LIMIT_EXCEEDED:
                required_levels = max(required_levels, MIN_LEVELS_AFTER_LIMIT_EXCEEDED)
                request.limit_violation = "; ".join(
                    violation.describe() for violation in limit_check.violations
                )
            request.required_approval_levels = required_levels
            self.approval_service.open_level(request, 1, now)

        self.db.flush()
        self.metrics_service.record_request_created(limit_check.outcome.value)
        logger.info(
            "Created request %s for %s x part %s by %s: %s, %s level(s)",
            request.id, quantity, part.id, requested_by,
            request.status.value, request.required_approval_levels,
        )
        return outcome

    def get_request(self, request_id: int) -> SparePartRequest:
        """Return a request or raise RecordNotFoundException."""
        return self._get_or_raise(SparePartRequest, request_id, "Spare part request")

    def list_requests(
        self,
        status: RequestStatus | None = None,
        requested_by: str | None = None,
        service_request_id: str | None = None,
        part_id: int | None = None,
        store_id: int | None = None,
        priority: RequestPriority | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[SparePartRequest]:
        """Return requests matching the filters, newest first."""
        stmt = select(SparePartRequest)
        if status is not None:
            stmt = stmt.where(SparePartRequest.status == status)
        if requested_by is not None:
            stmt = stmt.where(SparePartRequest.requested_by == requested_by)
        if service_request_id is not None:
            stmt = stmt.where(SparePartRequest.service_request_id == service_request_id)
        if part_id is not None:
            stmt = stmt.where(SparePartRequest.part_id == part_id)
        if store_id is not None:
            stmt = stmt.where(SparePartRequest.store_id == store_id)
        if priority is not None:
            stmt = stmt.where(SparePartRequest.priority == priority)

        stmt = (
            stmt.order_by(SparePartRequest.requested_at.desc(), SparePartRequest.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars().all())

    def cancel_request(
        self, request_id: int, cancelled_by: str, reason: str | None = None
    ) -> SparePartRequest:
        """Cancel a non-terminal request, closing its approval level and releasing its stock."""
        request = self.get_request(request_id)
        previous_status = request.status
        now = self.clock.now()

        transition_request(
            self.db,
            request,
            CANCELLABLE_STATUSES,
            RequestStatus.CANCELLED,
            "cancel",
            cancelled_by=cancelled_by,
            cancel_reason=reason,
            cancelled_at=now,
        )

        if previous_status == RequestStatus.PENDING:
            # Raises ApprovalConflictException if a decision closed the entry first
            self.approval_service.close_active_entry(request, now)

        released = self.reservation_service.release_for_request(
            request.id, ReservationReleaseReason.CANCELLED
        )

        self.metrics_service.record_request_cancelled(previous_status.value)
        logger.info(
            "Cancelled request %s (was %s) by %s, released %s reservation(s)",
            request.id, previous_status.value, cancelled_by, len(released),
        )
        return request
