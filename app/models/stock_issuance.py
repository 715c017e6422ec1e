"""Stock issuance model recording consumed reservations."""

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class StockIssuance(db.Model):  # type: ignore[name-defined]
    """Model representing the permanent deduction of reserved stock."""

    __tablename__ = "stock_issuances"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_stock_issuances_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    reservation_id: Mapped[int] = mapped_column(
        ForeignKey("stock_reservations.id"), nullable=False, unique=True
    )
    request_id: Mapped[int] = mapped_column(
        ForeignKey("spare_part_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    part_id: Mapped[int] = mapped_column(ForeignKey("spare_parts.id"), nullable=False)
    store_id: Mapped[int] = mapped_column(ForeignKey("stores.id"), nullable=False)
    quantity: Mapped[int] = mapped_column(nullable=False)
    issued_by: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<StockIssuance request={self.request_id}: -{self.quantity} @ store {self.store_id}>"
