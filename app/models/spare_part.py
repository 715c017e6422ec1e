"""Spare part catalogue model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class SparePart(db.Model):  # type: ignore[name-defined]
    """Model representing a stockable spare part."""

    __tablename__ = "spare_parts"
    __table_args__ = (
        CheckConstraint("unit_price >= 0", name="ck_spare_parts_unit_price_non_negative"),
        CheckConstraint(
            "warranty_months IS NULL OR warranty_months >= 0",
            name="ck_spare_parts_warranty_months_non_negative",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    part_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    # Categories are owned by the master data service
    category_id: Mapped[int | None] = mapped_column(nullable=True, index=True)
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    warranty_months: Mapped[int | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<SparePart {self.id}: {self.part_number}>"
