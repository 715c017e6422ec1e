"""Limit checker evaluating requests against technician spend and quantity caps."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from app.exceptions import LimitExceededException, ValidationException
from app.models.spare_part import SparePart
from app.models.spare_part_request import CONSUMING_REQUEST_STATUSES, SparePartRequest
from app.models.technician_limit import LimitScope, TechnicianLimit
from app.services.base import BaseService
from app.services.metrics_service import MetricsServiceProtocol
from app.utils.clock import Clock

logger = logging.getLogger(__name__)


class LimitCheckOutcome(str, Enum):
    """Result of evaluating a request against technician limits."""

    AUTO_APPROVABLE = "auto_approvable"
    APPROVAL_REQUIRED = "approval_required"
    LIMIT_EXCEEDED = "limit_exceeded"


class LimitCeiling(str, Enum):
    """Individual ceiling of a technician limit."""

    PER_REQUEST_QUANTITY = "per_request_quantity"
    PER_REQUEST_VALUE = "per_request_value"
    DAILY_QUANTITY = "daily_quantity"
    DAILY_VALUE = "daily_value"
    MONTHLY_QUANTITY = "monthly_quantity"
    MONTHLY_VALUE = "monthly_value"


@dataclass(frozen=True, slots=True)
class LimitViolation:
    """A ceiling that the proposed request would exceed."""

    limit_id: int
    scope: LimitScope
    target_id: int | None
    ceiling: LimitCeiling
    limit_value: Decimal
    attempted_value: Decimal

    @property
    def relative_excess(self) -> Decimal:
        """How far the attempt exceeds the ceiling, relative to the ceiling."""
        if self.limit_value <= 0:
            return Decimal("Infinity")
        return (self.attempted_value - self.limit_value) / self.limit_value

    def describe(self) -> str:
        target = f" {self.target_id}" if self.target_id is not None else ""
        return (
            f"{self.scope.value}{target} {self.ceiling.value}: "
            f"{self.attempted_value} exceeds {self.limit_value}"
        )


@dataclass(slots=True)
class LimitCheckResult:
    """Outcome of a limit check with every violated ceiling, most restrictive first."""

    outcome: LimitCheckOutcome
    requested_quantity: int
    requested_value: Decimal
    violations: list[LimitViolation] = field(default_factory=list)
    applicable_limit_ids: list[int] = field(default_factory=list)

    @property
    def requires_approval(self) -> bool:
        return self.outcome != LimitCheckOutcome.AUTO_APPROVABLE

    @property
    def governing_violation(self) -> LimitViolation | None:
        return self.violations[0] if self.violations else None

    def raise_if_exceeded(self) -> None:
        """Raise LimitExceededException for the most restrictive violation."""
        violation = self.governing_violation
        if violation is None:
            return
        raise LimitExceededException(
            violation.scope.value,
            violation.ceiling.value,
            violation.limit_value,
            violation.attempted_value,
        )


@dataclass(frozen=True, slots=True)
class _Usage:
    quantity: int
    value: Decimal


class LimitCheckerService(BaseService):
    """Service class evaluating technician limits. Never modifies state."""

    def __init__(
        self,
        db: Session,
        metrics_service: MetricsServiceProtocol,
        clock: Clock,
        default_auto_approve_below: Decimal = Decimal("500"),
    ):
        super().__init__(db)
        self.metrics_service = metrics_service
        self.clock = clock
        self.default_auto_approve_below = default_auto_approve_below

    def check_limits(
        self,
        technician_id: str,
        quantity: int,
        estimated_cost: Decimal,
        part_id: int | None = None,
        category_id: int | None = None,
    ) -> LimitCheckResult:
        """Evaluate a proposed request for a technician.

        Args:
            technician_id: Identity of the requesting technician
            quantity: Requested quantity
            estimated_cost: Estimated value of the whole request
            part_id: Requested part; its category is used when category_id is omitted
            category_id: Category of the requested part

        Returns:
            LimitCheckResult with the outcome and all violated ceilings
        """
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")
        if estimated_cost < 0:
            raise ValidationException("estimated_cost", "must not be negative")

        if part_id is not None:
            part = self._get_or_raise(SparePart, part_id, "Spare part")
            if category_id is None:
                category_id = part.category_id

        limits = self._get_applicable_limits(technician_id, part_id, category_id)
        now = self.clock.now()
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        day_end = day_start + timedelta(days=1)
        month_start = day_start.replace(day=1)
        month_end = _next_month(month_start)

        violations: list[LimitViolation] = []
        for limit in limits:
            violations.extend(
                self._evaluate_limit(
                    limit,
                    technician_id,
                    quantity,
                    estimated_cost,
                    (day_start, day_end),
                    (month_start, month_end),
                )
            )
        violations.sort(key=lambda violation: violation.relative_excess, reverse=True)

        outcome = self._resolve_outcome(limits, violations, estimated_cost)
        self.metrics_service.record_limit_check(outcome.value)
        logger.info(
            "Limit check for technician %s (part %s, qty %s, value %s): %s",
            technician_id, part_id, quantity, estimated_cost, outcome.value,
        )

        return LimitCheckResult(
            outcome=outcome,
            requested_quantity=quantity,
            requested_value=estimated_cost,
            violations=violations,
            applicable_limit_ids=[limit.id for limit in limits],
        )

    def _resolve_outcome(
        self,
        limits: Sequence[TechnicianLimit],
        violations: Sequence[LimitViolation],
        value: Decimal,
    ) -> LimitCheckOutcome:
        if violations:
            return LimitCheckOutcome.LIMIT_EXCEEDED

        if not limits:
            if value < self.default_auto_approve_below:
                return LimitCheckOutcome.AUTO_APPROVABLE
            return LimitCheckOutcome.APPROVAL_REQUIRED

        for limit in limits:
            if limit.requires_approval:
                return LimitCheckOutcome.APPROVAL_REQUIRED
            # A limit without a threshold never auto-approves
            if limit.auto_approve_below is None or value >= limit.auto_approve_below:
                return LimitCheckOutcome.APPROVAL_REQUIRED
        return LimitCheckOutcome.AUTO_APPROVABLE

    def _get_applicable_limits(
        self,
        technician_id: str,
        part_id: int | None,
        category_id: int | None,
    ) -> list[TechnicianLimit]:
        scope_filters = [TechnicianLimit.scope == LimitScope.TOTAL]
        if part_id is not None:
            scope_filters.append(
                and_(TechnicianLimit.scope == LimitScope.PART, TechnicianLimit.target_id == part_id)
            )
        if category_id is not None:
            scope_filters.append(
                and_(
                    TechnicianLimit.scope == LimitScope.CATEGORY,
                    TechnicianLimit.target_id == category_id,
                )
            )

        stmt = (
            select(TechnicianLimit)
            .where(
                TechnicianLimit.technician_id == technician_id,
                TechnicianLimit.is_active.is_(True),
                or_(*scope_filters),
            )
            .order_by(TechnicianLimit.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def _evaluate_limit(
        self,
        limit: TechnicianLimit,
        technician_id: str,
        quantity: int,
        value: Decimal,
        day_window: tuple[datetime, datetime],
        month_window: tuple[datetime, datetime],
    ) -> list[LimitViolation]:
        checks: list[tuple[LimitCeiling, Decimal | int | None, Decimal]] = [
            (LimitCeiling.PER_REQUEST_QUANTITY, limit.max_quantity_per_request, Decimal(quantity)),
            (LimitCeiling.PER_REQUEST_VALUE, limit.max_value_per_request, value),
        ]

        if limit.max_quantity_per_day is not None or limit.max_value_per_day is not None:
            daily = self._get_usage(limit, technician_id, *day_window)
            checks.append(
                (LimitCeiling.DAILY_QUANTITY, limit.max_quantity_per_day, Decimal(daily.quantity + quantity))
            )
            checks.append((LimitCeiling.DAILY_VALUE, limit.max_value_per_day, daily.value + value))

        if limit.max_quantity_per_month is not None or limit.max_value_per_month is not None:
            monthly = self._get_usage(limit, technician_id, *month_window)
            checks.append(
                (LimitCeiling.MONTHLY_QUANTITY, limit.max_quantity_per_month, Decimal(monthly.quantity + quantity))
            )
            checks.append((LimitCeiling.MONTHLY_VALUE, limit.max_value_per_month, monthly.value + value))

        violations = []
        for ceiling, limit_value, attempted in checks:
            if limit_value is None:
                continue
            if attempted > Decimal(limit_value):
                violations.append(
                    LimitViolation(
                        limit_id=limit.id,
                        scope=limit.scope,
                        target_id=limit.target_id,
                        ceiling=ceiling,
                        limit_value=Decimal(limit_value),
                        attempted_value=attempted,
                    )
                )
        return violations

    def _get_usage(
        self,
        limit: TechnicianLimit,
        technician_id: str,
        window_start: datetime,
        window_end: datetime,
    ) -> _Usage:
        """Sum quantity and effective value of consuming requests inside a window."""
        stmt = select(
            func.coalesce(func.sum(SparePartRequest.quantity), 0),
            func.coalesce(
                func.sum(
                    func.coalesce(
                        SparePartRequest.actual_cost,
                        SparePartRequest.issued_cost,
                        SparePartRequest.estimated_cost,
                    )
                ),
                0,
            ),
        ).where(
            SparePartRequest.requested_by == technician_id,
            SparePartRequest.status.in_(CONSUMING_REQUEST_STATUSES),
            SparePartRequest.requested_at >= window_start,
            SparePartRequest.requested_at < window_end,
        )

        if limit.scope == LimitScope.PART:
            stmt = stmt.where(SparePartRequest.part_id == limit.target_id)
        elif limit.scope == LimitScope.CATEGORY:
            category_parts = select(SparePart.id).where(SparePart.category_id == limit.target_id)
            stmt = stmt.where(SparePartRequest.part_id.in_(category_parts))

        used_quantity, used_value = self.db.execute(stmt).one()
        return _Usage(quantity=int(used_quantity), value=Decimal(str(used_value)))


def _next_month(month_start: datetime) -> datetime:
    if month_start.month == 12:
        return month_start.replace(year=month_start.year + 1, month=1)
    return month_start.replace(month=month_start.month + 1)
