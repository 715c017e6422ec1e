"""Technician limit model constraining what may be requested without approval."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Numeric, String, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class LimitScope(str, Enum):
    """What a technician limit applies to."""

    PART = "part"
    CATEGORY = "category"
    TOTAL = "total"


class TechnicianLimit(db.Model):  # type: ignore[name-defined]
    """Model representing a spend/quantity policy for a technician."""

    __tablename__ = "technician_limits"
    __table_args__ = (
        CheckConstraint(
            "(scope = 'total' AND target_id IS NULL) OR (scope != 'total' AND target_id IS NOT NULL)",
            name="ck_technician_limits_scope_target",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    technician_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    scope: Mapped[LimitScope] = mapped_column(
        SQLEnum(
            LimitScope,
            name="technician_limit_scope",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
    )
    target_id: Mapped[int | None] = mapped_column(nullable=True)

    max_quantity_per_request: Mapped[int | None] = mapped_column(nullable=True)
    max_value_per_request: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    max_quantity_per_day: Mapped[int | None] = mapped_column(nullable=True)
    max_value_per_day: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    max_quantity_per_month: Mapped[int | None] = mapped_column(nullable=True)
    max_value_per_month: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    requires_approval: Mapped[bool] = mapped_column(nullable=False, default=False)
    auto_approve_below: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<TechnicianLimit {self.technician_id} scope={self.scope.value} "
            f"target={self.target_id}>"
        )
