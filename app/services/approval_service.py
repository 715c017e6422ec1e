"""Approval engine driving spare part requests through sequential approval levels."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.exceptions import (
    ApprovalConflictException,
    InsufficientStockException,
    InvalidTransitionException,
    RecordNotFoundException,
    UnauthorizedApproverException,
    ValidationException,
)
from app.models.approval_history import ApprovalDecision, ApprovalHistoryEntry
from app.models.spare_part_request import RequestStatus, SparePartRequest
from app.models.stock_reservation import StockReservation
from app.services.base import BaseService
from app.services.metrics_service import MetricsServiceProtocol
from app.services.request_state import transition_request
from app.services.reservation_service import ReservationService
from app.utils.clock import Clock

logger = logging.getLogger(__name__)

SYSTEM_APPROVER = "system"


class ApprovalLevelPolicy(ABC):
    """Maps a request value to the number of approval levels it needs."""

    @abstractmethod
    def required_levels(self, value: Decimal) -> int:
        """Return the number of sequential levels (at least 1)."""
        pass

    def __call__(self, value: Decimal) -> int:
        return self.required_levels(value)


class ThresholdApprovalLevelPolicy(ApprovalLevelPolicy):
    """One level up to the first threshold, one more for every threshold exceeded."""

    def __init__(self, thresholds: Sequence[Decimal]):
        self.thresholds = sorted(Decimal(threshold) for threshold in thresholds)

    def required_levels(self, value: Decimal) -> int:
        return 1 + sum(1 for threshold in self.thresholds if value > threshold)


class ApprovalAuthorizationProtocol(ABC):
    """Decides whether an approver may decide a given level."""

    @abstractmethod
    def is_authorized(self, approver_id: str, level: int, request_value: Decimal) -> bool:
        pass


class PermissiveApprovalAuthorization(ApprovalAuthorizationProtocol):
    """Authorization used when permissions are enforced upstream."""

    def is_authorized(self, approver_id: str, level: int, request_value: Decimal) -> bool:
        return True


@dataclass(slots=True)
class ApprovalOutcome:
    """Result of a decision: the closed entry and what it caused."""

    entry: ApprovalHistoryEntry
    request: SparePartRequest
    next_entry: ApprovalHistoryEntry | None = None
    reservation: StockReservation | None = None
    reservation_pending: bool = False


class ApprovalService(BaseService):
    """Service class for approval history and decisions."""

    def __init__(
        self,
        db: Session,
        reservation_service: ReservationService,
        metrics_service: MetricsServiceProtocol,
        clock: Clock,
        level_policy: ApprovalLevelPolicy,
        authorization: ApprovalAuthorizationProtocol,
    ):
        """Initialize service with database session and dependencies.

        Args:
            db: SQLAlchemy database session
            reservation_service: Places the stock hold once a request is approved
            metrics_service: Instance of MetricsService for recording metrics
            clock: Time source for assignment and decision timestamps
            level_policy: Maps request value to required approval levels
            authorization: Checks approver authority per level
        """
        super().__init__(db)
        self.reservation_service = reservation_service
        self.metrics_service = metrics_service
        self.clock = clock
        self.level_policy = level_policy
        self.authorization = authorization

    def required_levels_for(self, value: Decimal) -> int:
        """Return the policy's level count, never less than one."""
        return max(1, int(self.level_policy(value)))

    def open_level(self, request: SparePartRequest, level: int, now: datetime) -> ApprovalHistoryEntry:
        """Open a pending entry at ``level`` and make it the request's current level."""
        entry = ApprovalHistoryEntry(
            request_id=request.id,
            level=level,
            decision=ApprovalDecision.PENDING,
            request_value=request.effective_cost,
            assigned_at=now,
            is_active=True,
        )
        self.db.add(entry)
        request.current_approval_level = max(request.current_approval_level, level)
        self.db.flush()
        return entry

    def record_auto_approval(self, request: SparePartRequest, now: datetime) -> ApprovalHistoryEntry:
        """Record a closed level-1 approval made by the system."""
        entry = ApprovalHistoryEntry(
            request_id=request.id,
            level=1,
            approver_id=SYSTEM_APPROVER,
            decision=ApprovalDecision.APPROVED,
            comments="Auto-approved within technician limits",
            request_value=request.effective_cost,
            assigned_at=now,
            processed_at=now,
            is_active=False,
        )
        self.db.add(entry)
        request.current_approval_level = 1
        self.db.flush()
        return entry

    def decide(
        self,
        request_id: int,
        level: int,
        decision: ApprovalDecision,
        approver_id: str,
        comments: str | None = None,
    ) -> ApprovalOutcome:
        """Apply an approver's decision to the active entry at ``level``."""
        if decision == ApprovalDecision.PENDING:
            raise ValidationException("decision", "must be approved, rejected or escalated")

        request = self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        # Cancel and reject close the active entry too, so a closed entry
        # only means "already decided" on a request that is still open
        if request.is_terminal:
            raise InvalidTransitionException(request.id, request.status.value, "decide approval for")

        entry = self._get_entry(request.id, level)
        if entry is None:
            raise RecordNotFoundException("Approval level", f"{level} of request {request.id}")

        if not entry.is_active:
            raise ApprovalConflictException(request.id, level)

        if not self.authorization.is_authorized(approver_id, level, entry.request_value):
            raise UnauthorizedApproverException(approver_id, level)

        now = self.clock.now()
        self._close_entry(
            entry,
            decision=decision,
            approver_id=approver_id,
            comments=comments,
            processed_at=now,
        )
        self.metrics_service.record_approval_decision(decision.value, level)
        logger.info(
            "Request %s level %s %s by %s", request.id, level, decision.value, approver_id
        )

        outcome = ApprovalOutcome(entry=entry, request=request)

        if decision == ApprovalDecision.REJECTED:
            transition_request(
                self.db, request, (RequestStatus.PENDING,), RequestStatus.REJECTED, "reject"
            )
            return outcome

        if decision == ApprovalDecision.ESCALATED:
            if level + 1 > request.required_approval_levels:
                request.required_approval_levels = level + 1
            outcome.next_entry = self.open_level(request, level + 1, now)
            return outcome

        if level < request.required_approval_levels:
            outcome.next_entry = self.open_level(request, level + 1, now)
            return outcome

        transition_request(
            self.db,
            request,
            (RequestStatus.PENDING,),
            RequestStatus.APPROVED,
            "approve",
            approved_by=approver_id,
            approved_at=now,
        )
        outcome.reservation = self.try_reserve(request, reserved_by=approver_id)
        outcome.reservation_pending = outcome.reservation is None
        return outcome

    def try_reserve(self, request: SparePartRequest, reserved_by: str) -> StockReservation | None:
        """Attempt the stock hold for a freshly approved request.

        Returns None when no store is known or the store lacks stock; the
        request stays APPROVED and the hold can be retried.
        """
        if request.store_id is None:
            return None
        try:
            return self.reservation_service.reserve_for_request(request.id, reserved_by=reserved_by)
        except InsufficientStockException as e:
            logger.warning("Request %s approved without reservation: %s", request.id, e.message)
            return None

    def close_active_entry(self, request: SparePartRequest, now: datetime) -> ApprovalHistoryEntry | None:
        """Deactivate the request's pending entry without deciding it."""
        entry = self.get_active_entry(request.id)
        if entry is None:
            return None
        self._close_entry(entry, decision=ApprovalDecision.PENDING, processed_at=now)
        return entry

    def get_active_entry(self, request_id: int) -> ApprovalHistoryEntry | None:
        stmt = select(ApprovalHistoryEntry).where(
            ApprovalHistoryEntry.request_id == request_id,
            ApprovalHistoryEntry.is_active.is_(True),
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_history(self, request_id: int) -> list[ApprovalHistoryEntry]:
        """Return all approval entries of a request ordered by level."""
        self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        stmt = (
            select(ApprovalHistoryEntry)
            .where(ApprovalHistoryEntry.request_id == request_id)
            .order_by(ApprovalHistoryEntry.level)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_pending_approvals(
        self, level: int | None = None, limit: int = 100, offset: int = 0
    ) -> list[ApprovalHistoryEntry]:
        """Return entries awaiting a decision, oldest assignment first."""
        stmt = select(ApprovalHistoryEntry).where(ApprovalHistoryEntry.is_active.is_(True))
        if level is not None:
            stmt = stmt.where(ApprovalHistoryEntry.level == level)
        stmt = (
            stmt.order_by(ApprovalHistoryEntry.assigned_at, ApprovalHistoryEntry.id)
            .limit(limit)
            .offset(offset)
        )
        return list(self.db.execute(stmt).scalars().all())

    def _get_entry(self, request_id: int, level: int) -> ApprovalHistoryEntry | None:
        stmt = select(ApprovalHistoryEntry).where(
            ApprovalHistoryEntry.request_id == request_id,
            ApprovalHistoryEntry.level == level,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _close_entry(self, entry: ApprovalHistoryEntry, **values: object) -> None:
        """Deactivate an entry only if it is still active."""
        stmt = (
            update(ApprovalHistoryEntry)
            .where(
                ApprovalHistoryEntry.id == entry.id,
                ApprovalHistoryEntry.is_active.is_(True),
            )
            .values(is_active=False, **values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.refresh(entry)
        if result.rowcount == 0:
            raise ApprovalConflictException(entry.request_id, entry.level)
