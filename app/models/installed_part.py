"""Installed part model recording the physical installation of a request."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.extensions import db


class InstalledPart(db.Model):  # type: ignore[name-defined]
    """Model representing parts fitted to a vehicle for a fulfilled request."""

    __tablename__ = "installed_parts"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_installed_parts_quantity_positive"),
        CheckConstraint("unit_cost >= 0", name="ck_installed_parts_unit_cost_non_negative"),
        CheckConstraint("service_cost >= 0", name="ck_installed_parts_service_cost_non_negative"),
        CheckConstraint("labor_cost >= 0", name="ck_installed_parts_labor_cost_non_negative"),
        CheckConstraint(
            "(warranty_end IS NULL) OR (warranty_start IS NULL) OR (warranty_end >= warranty_start)",
            name="ck_installed_parts_warranty_window",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # Unique: a request is installed exactly once
    request_id: Mapped[int] = mapped_column(
        ForeignKey("spare_part_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    quantity: Mapped[int] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    service_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    labor_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    total_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    installed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    installed_at: Mapped[datetime] = mapped_column(nullable=False)
    warranty_start: Mapped[date | None] = mapped_column(nullable=True)
    warranty_end: Mapped[date | None] = mapped_column(nullable=True)
    mileage_at_installation: Mapped[int | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<InstalledPart request={self.request_id} qty={self.quantity} total={self.total_cost}>"
