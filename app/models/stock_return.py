"""Stock return model recording issued units brought back to a store."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, ForeignKey, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class ReturnCondition(str, Enum):
    """State of returned units; only good units become available again."""

    GOOD = "good"
    DAMAGED = "damaged"


class StockReturn(db.Model):  # type: ignore[name-defined]
    """Model representing unused units of an installed request handed back.

    Good units go back on ``StockLevel.current_stock``; damaged units are
    counted on ``StockLevel.damaged_stock`` and never become reservable.
    """

    __tablename__ = "stock_returns"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_returns_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    request_id: Mapped[int] = mapped_column(
        ForeignKey("spare_part_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    part_id: Mapped[int] = mapped_column(ForeignKey("spare_parts.id"), nullable=False)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    condition: Mapped[ReturnCondition] = mapped_column(
        SQLEnum(
            ReturnCondition,
            name="stock_return_condition",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
    )
    returned_by: Mapped[str] = mapped_column(String(64), nullable=False)
    returned_at: Mapped[datetime] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<StockReturn request={self.request_id}: +{self.quantity} "
            f"{self.condition.value} @ store {self.store_id}>"
        )
