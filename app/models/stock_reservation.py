"""Stock reservation model for time-bounded holds on store stock."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class ReservationReleaseReason(str, Enum):
    """Why a reservation stopped being active."""

    MANUAL = "manual"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    CONSUMED = "consumed"


def is_reservation_expired(expires_at: datetime | None, now: datetime) -> bool:
    """Return True once ``now`` is past the reservation expiry.

    Consumption and the expiry sweep both use this predicate (and its SQL
    mirror in the reservation service) so they agree on the boundary.
    """
    return expires_at is not None and now > expires_at


class StockReservation(db.Model):  # type: ignore[name-defined]
    """Model representing quantity held against a store's stock for a request.

    An inactive reservation is terminal; holding stock again requires a new
    reservation row.
    """

    __tablename__ = "stock_reservations"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_reservations_quantity_positive"),
        CheckConstraint(
            "(is_active) OR (release_reason IS NOT NULL)",
            name="ck_stock_reservations_inactive_requires_reason",
        ),
        Index("ix_stock_reservations_part_store_active", "part_id", "store_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("spare_part_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    part_id: Mapped[int] = mapped_column(
        ForeignKey("spare_parts.id"), nullable=False
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    reserved_by: Mapped[str] = mapped_column(String(64), nullable=False)
    reserved_at: Mapped[datetime] = mapped_column(nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    released_at: Mapped[datetime | None] = mapped_column(nullable=True)
    release_reason: Mapped[ReservationReleaseReason | None] = mapped_column(
        SQLEnum(
            ReservationReleaseReason,
            name="reservation_release_reason",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=True,
    )

    def is_expired(self, now: datetime) -> bool:
        """Return True when the reservation can no longer be consumed."""
        return is_reservation_expired(self.expires_at, now)

    def __repr__(self) -> str:
        return (
            f"<StockReservation id={self.id} request={self.request_id} "
            f"qty={self.quantity} active={self.is_active}>"
        )
