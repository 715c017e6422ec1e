"""Stock service for receiving stock and reporting availability per store."""

import logging
from dataclasses import dataclass

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from app.exceptions import ValidationException
from app.models.spare_part import SparePart
from app.models.stock_level import StockLevel
from app.models.stock_reservation import StockReservation
from app.models.store import Store
from app.services.base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StockAvailability:
    """Snapshot of a part's stock at one store."""

    part_id: int
    store_id: int
    current: int
    reserved: int
    damaged: int = 0

    @property
    def available(self) -> int:
        return self.current - self.reserved


class StockService(BaseService):
    """Service class for store stock operations."""

    def __init__(self, db: Session):
        super().__init__(db)

    def add_stock(self, part_id: int, store_id: int, quantity: int) -> StockLevel:
        """Receive stock into a store, creating the stock level on first receipt."""
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")

        self._get_or_raise(SparePart, part_id, "Spare part")
        self._get_or_raise(Store, store_id, "Store")

        stock_level = self.get_stock_level(part_id, store_id)
        if stock_level is None:
            stock_level = StockLevel(
                part_id=part_id,
                store_id=store_id,
                current_stock=quantity,
                reserved_stock=0,
            )
            self.db.add(stock_level)
        else:
            stock_level.current_stock += quantity

        self.db.flush()
        logger.info(
            "Received %s of part %s into store %s (now %s on hand)",
            quantity, part_id, store_id, stock_level.current_stock,
        )
        return stock_level

    def get_stock_level(self, part_id: int, store_id: int) -> StockLevel | None:
        """Return the stock level row for a (part, store) pair if it exists."""
        stmt = select(StockLevel).where(
            and_(StockLevel.part_id == part_id, StockLevel.store_id == store_id)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_availability(self, part_id: int, store_id: int) -> StockAvailability:
        """Return current, reserved and available stock for a part at a store.

        Reserved is summed from the active reservations themselves rather than
        read from the stock level counter.
        """
        self._get_or_raise(SparePart, part_id, "Spare part")
        self._get_or_raise(Store, store_id, "Store")

        stock_level = self.get_stock_level(part_id, store_id)
        current = stock_level.current_stock if stock_level else 0
        damaged = stock_level.damaged_stock if stock_level else 0

        reserved_stmt = select(func.coalesce(func.sum(StockReservation.quantity), 0)).where(
            and_(
                StockReservation.part_id == part_id,
                StockReservation.store_id == store_id,
                StockReservation.is_active.is_(True),
            )
        )
        reserved = int(self.db.execute(reserved_stmt).scalar_one())

        return StockAvailability(
            part_id=part_id,
            store_id=store_id,
            current=current,
            reserved=reserved,
            damaged=damaged,
        )
