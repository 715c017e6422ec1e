"""Approval history model recording one decision per level."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class ApprovalDecision(str, Enum):
    """Decision recorded against an approval level."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"


class ApprovalHistoryEntry(db.Model):  # type: ignore[name-defined]
    """Model representing an approval level opened for a request.

    Only one entry per request is active at a time. Closing an entry is a
    conditional update on ``is_active`` so concurrent decisions cannot both
    apply.
    """

    __tablename__ = "approval_history"
    __table_args__ = (
        UniqueConstraint("request_id", "level", name="uq_approval_history_request_level"),
        CheckConstraint("level >= 1", name="ck_approval_history_level_positive"),
        CheckConstraint(
            "(NOT is_active) OR (decision = 'pending')",
            name="ck_approval_history_active_is_pending",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("spare_part_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(nullable=False)
    approver_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    decision: Mapped[ApprovalDecision] = mapped_column(
        SQLEnum(
            ApprovalDecision,
            name="approval_decision",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=ApprovalDecision.PENDING,
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    request_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(nullable=False)
    processed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True, index=True)

    def __repr__(self) -> str:
        return (
            f"<ApprovalHistoryEntry request={self.request_id} level={self.level} "
            f"decision={self.decision.value} active={self.is_active}>"
        )
