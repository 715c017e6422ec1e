"""Stock level model tracking on-hand and reserved quantities per store."""

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class StockLevel(db.Model):  # type: ignore[name-defined]
    """Model representing a part's stock at a specific store.

    ``reserved_stock`` always equals the sum of the active reservation
    quantities for the (part, store) pair. It is only changed through
    conditional UPDATE statements issued by the reservation service.
    ``damaged_stock`` counts returned units unfit for reuse; they are not
    part of ``current_stock``.
    """

    __tablename__ = "stock_levels"
    __table_args__ = (
        UniqueConstraint("part_id", "store_id", name="uq_stock_levels_part_store"),
        CheckConstraint("current_stock >= 0", name="ck_stock_levels_current_non_negative"),
        CheckConstraint("reserved_stock >= 0", name="ck_stock_levels_reserved_non_negative"),
        CheckConstraint("damaged_stock >= 0", name="ck_stock_levels_damaged_non_negative"),
        CheckConstraint(
            "reserved_stock <= current_stock",
            name="ck_stock_levels_reserved_within_current",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    part_id: Mapped[int] = mapped_column(
        ForeignKey("spare_parts.id"), nullable=False
    )
    store_id: Mapped[int] = mapped_column(
        ForeignKey("stores.id"), nullable=False
    )
    current_stock: Mapped[int] = mapped_column(nullable=False, default=0)
    reserved_stock: Mapped[int] = mapped_column(nullable=False, default=0)
    damaged_stock: Mapped[int] = mapped_column(nullable=False, default=0, server_default="0")
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now(), onupdate=func.now()
    )

    @property
    def available_stock(self) -> int:
        """Return stock that is neither issued nor held by a reservation."""
        return self.current_stock - self.reserved_stock

    def __repr__(self) -> str:
        return (
            f"<StockLevel part={self.part_id} store={self.store_id} "
            f"current={self.current_stock} reserved={self.reserved_stock}>"
        )
