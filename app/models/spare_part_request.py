"""Spare part request model, the aggregate root of the outward flow."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class RequestStatus(str, Enum):
    """Lifecycle status for a spare part request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ISSUED = "issued"
    INSTALLED = "installed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Return True when no further transition is permitted."""
        return self in TERMINAL_REQUEST_STATUSES


TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.REJECTED, RequestStatus.CANCELLED, RequestStatus.INSTALLED}
)

# Statuses whose value counts towards a technician's consumed limits
CONSUMING_REQUEST_STATUSES = (
    RequestStatus.APPROVED,
    RequestStatus.ISSUED,
    RequestStatus.INSTALLED,
)


class RequestPriority(str, Enum):
    """Urgency of a spare part request."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SparePartRequest(db.Model):  # type: ignore[name-defined]
    """Model representing a technician's request for a spare part.

    Approval history, reservations and installation records reference the
    request by id; the request itself holds no collections of them.
    """

    __tablename__ = "spare_part_requests"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_spare_part_requests_quantity_positive"),
        CheckConstraint(
            "estimated_cost >= 0",
            name="ck_spare_part_requests_estimated_cost_non_negative",
        ),
        CheckConstraint(
            "current_approval_level >= 0",
            name="ck_spare_part_requests_level_non_negative",
        ),
        CheckConstraint(
            "required_approval_levels >= 1",
            name="ck_spare_part_requests_required_levels_positive",
        ),
        CheckConstraint(
            "(status = 'installed') OR (actual_cost IS NULL)",
            name="ck_spare_part_requests_actual_cost_after_install",
        ),
        CheckConstraint(
            "returned_quantity >= 0",
            name="ck_spare_part_requests_returned_non_negative",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    service_request_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    part_id: Mapped[int] = mapped_column(
        ForeignKey("spare_parts.id"), nullable=False, index=True
    )
    store_id: Mapped[int | None] = mapped_column(
        ForeignKey("stores.id"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    returned_quantity: Mapped[int] = mapped_column(nullable=False, default=0, server_default="0")
    priority: Mapped[RequestPriority] = mapped_column(
        SQLEnum(
            RequestPriority,
            name="spare_part_request_priority",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=RequestPriority.MEDIUM,
    )
    justification: Mapped[str | None] = mapped_column(Text, nullable=True)
    estimated_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    issued_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    actual_cost: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[RequestStatus] = mapped_column(
        SQLEnum(
            RequestStatus,
            name="spare_part_request_status",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True,
    )
    current_approval_level: Mapped[int] = mapped_column(nullable=False, default=0)
    required_approval_levels: Mapped[int] = mapped_column(nullable=False, default=1)
    limit_violation: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    issued_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancelled_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(nullable=False)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    issued_at: Mapped[datetime | None] = mapped_column(nullable=True)
    installed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now(), onupdate=func.now()
    )

    @property
    def is_terminal(self) -> bool:
        """Return True when the request reached a terminal status."""
        return self.status.is_terminal

    @property
    def effective_cost(self) -> Decimal:
        """Return the installed cost, else the cost recorded at issue, else the estimate."""
        if self.actual_cost is not None:
            return self.actual_cost
        if self.issued_cost is not None:
            return self.issued_cost
        return self.estimated_cost

    def __repr__(self) -> str:
        return (
            f"<SparePartRequest id={self.id} part={self.part_id} "
            f"qty={self.quantity} status={self.status.value}>"
        )
