"""Reservation service holding and releasing store stock for requests.

Every transition of ``StockReservation.is_active`` and every change of
``StockLevel.reserved_stock`` is a single conditional UPDATE, so concurrent
callers never double-reserve stock or release a reservation twice.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select, update
from sqlalchemy.orm import Session

from app.exceptions import (
    InsufficientStockException,
    InvalidOperationException,
    InvalidTransitionException,
    ReservationExpiredException,
    ReservationNotActiveException,
    ResourceConflictException,
    ValidationException,
)
from app.models.spare_part_request import RequestStatus, SparePartRequest
from app.models.stock_issuance import StockIssuance
from app.models.stock_level import StockLevel
from app.models.stock_reservation import ReservationReleaseReason, StockReservation
from app.models.store import Store
from app.services.base import BaseService
from app.services.metrics_service import MetricsServiceProtocol
from app.services.stock_service import StockService
from app.utils.clock import Clock

logger = logging.getLogger(__name__)


class ReservationService(BaseService):
    """Service class for stock reservation operations."""

    def __init__(
        self,
        db: Session,
        stock_service: StockService,
        metrics_service: MetricsServiceProtocol,
        clock: Clock,
        default_ttl_seconds: int = 24 * 60 * 60,
    ):
        """Initialize service with database session and dependencies.

        Args:
            db: SQLAlchemy database session
            stock_service: Instance of StockService for stock level lookups
            metrics_service: Instance of MetricsService for recording metrics
            clock: Time source for reservation and expiry timestamps
            default_ttl_seconds: Lifetime of request reservations, 0 for none
        """
        super().__init__(db)
        self.stock_service = stock_service
        self.metrics_service = metrics_service
        self.clock = clock
        self.default_ttl_seconds = default_ttl_seconds

    def reserve(
        self,
        request_id: int,
        part_id: int,
        store_id: int,
        quantity: int,
        reserved_by: str,
        ttl: timedelta | None = None,
    ) -> StockReservation:
        """Hold ``quantity`` of a part at a store.

        Raises InsufficientStockException without side effects when the
        store's available stock does not cover the quantity.
        """
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")

        stock_level = self.stock_service.get_stock_level(part_id, store_id)
        if stock_level is None:
            self.metrics_service.record_reservation_event("unavailable", quantity)
            raise InsufficientStockException(quantity, 0, f"store {store_id}")

        stmt = (
            update(StockLevel)
            .where(
                and_(
                    StockLevel.id == stock_level.id,
                    StockLevel.current_stock - StockLevel.reserved_stock >= quantity,
                )
            )
            .values(reserved_stock=StockLevel.reserved_stock + quantity)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.refresh(stock_level)

        if result.rowcount == 0:
            self.metrics_service.record_reservation_event("unavailable", quantity)
            logger.info(
                "Reservation of %s x part %s at store %s for request %s failed, %s available",
                quantity, part_id, store_id, request_id, stock_level.available_stock,
            )
            raise InsufficientStockException(
                quantity, stock_level.available_stock, f"store {store_id}"
            )

        now = self.clock.now()
        reservation = StockReservation(
            request_id=request_id,
            part_id=part_id,
            store_id=store_id,
            quantity=quantity,
            reserved_by=reserved_by,
            reserved_at=now,
            expires_at=now + ttl if ttl is not None else None,
            is_active=True,
        )
        self.db.add(reservation)
        self.db.flush()

        self.metrics_service.record_reservation_event("reserved", quantity)
        logger.info(
            "Reserved %s x part %s at store %s for request %s (reservation %s, expires %s)",
            quantity, part_id, store_id, request_id, reservation.id, reservation.expires_at,
        )
        return reservation

    def reserve_for_request(
        self,
        request_id: int,
        reserved_by: str,
        store_id: int | None = None,
        ttl_seconds: int | None = None,
    ) -> StockReservation:
        """Reserve an approved request's full quantity at its store.

        ``ttl_seconds`` defaults to the configured lifetime; 0 disables expiry.
        The store is recorded on the request.
        """
        request = self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        if request.status != RequestStatus.APPROVED:
            raise InvalidTransitionException(request.id, request.status.value, "reserve stock for")

        target_store_id = store_id if store_id is not None else request.store_id
        if target_store_id is None:
            raise ValidationException("store_id", "a store is required to reserve stock")
        self._get_or_raise(Store, target_store_id, "Store")

        if self.get_active_reservation(request.id) is not None:
            raise ResourceConflictException("Stock reservation", f"request {request.id}")

        seconds = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        if seconds < 0:
            raise ValidationException("ttl_seconds", "must not be negative")
        ttl = timedelta(seconds=seconds) if seconds > 0 else None

        reservation = self.reserve(
            request.id,
            request.part_id,
            target_store_id,
            request.quantity,
            reserved_by,
            ttl=ttl,
        )
        request.store_id = target_store_id
        self.db.flush()
        return reservation

    def release(
        self,
        reservation_id: int,
        reason: ReservationReleaseReason = ReservationReleaseReason.MANUAL,
    ) -> StockReservation:
        """Return a reservation's quantity to available stock.

        Releasing an inactive reservation is a no-op that returns it unchanged.
        """
        if reason == ReservationReleaseReason.CONSUMED:
            raise InvalidOperationException(
                f"release reservation {reservation_id}", "consumption happens through issuance"
            )
        reservation = self._get_or_raise(StockReservation, reservation_id, "Stock reservation")
        self._close(reservation, reason, self.clock.now())
        return reservation

    def consume(self, reservation_id: int, issued_by: str) -> StockIssuance:
        """Convert an active, unexpired reservation into a permanent deduction."""
        reservation = self._get_or_raise(StockReservation, reservation_id, "Stock reservation")
        now = self.clock.now()

        stmt = (
            update(StockReservation)
            .where(
                and_(
                    StockReservation.id == reservation.id,
                    StockReservation.is_active.is_(True),
                    or_(
                        StockReservation.expires_at.is_(None),
                        StockReservation.expires_at >= now,
                    ),
                )
            )
            .values(
                is_active=False,
                released_at=now,
                release_reason=ReservationReleaseReason.CONSUMED,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.refresh(reservation)

        if result.rowcount == 0:
            if reservation.is_active and reservation.is_expired(now):
                raise ReservationExpiredException(reservation.id)
            reason = reservation.release_reason.value if reservation.release_reason else None
            raise ReservationNotActiveException(reservation.id, reason)

        self._adjust_stock_level(
            reservation,
            current_delta=-reservation.quantity,
            reserved_delta=-reservation.quantity,
        )

        issuance = StockIssuance(
            reservation_id=reservation.id,
            request_id=reservation.request_id,
            part_id=reservation.part_id,
            store_id=reservation.store_id,
            quantity=reservation.quantity,
            issued_by=issued_by,
            issued_at=now,
        )
        self.db.add(issuance)
        self.db.flush()

        self.metrics_service.record_reservation_event("consumed", reservation.quantity)
        logger.info(
            "Consumed reservation %s: issued %s x part %s from store %s",
            reservation.id, reservation.quantity, reservation.part_id, reservation.store_id,
        )
        return issuance

    def release_expired(self, now: datetime | None = None) -> int:
        """Release every active reservation past its expiry, returning the count."""
        now = now or self.clock.now()
        stmt = (
            select(StockReservation)
            .where(
                and_(
                    StockReservation.is_active.is_(True),
                    StockReservation.expires_at.is_not(None),
                    StockReservation.expires_at < now,
                )
            )
            .order_by(StockReservation.expires_at, StockReservation.id)
        )
        expired = list(self.db.execute(stmt).scalars().all())

        released = 0
        for reservation in expired:
            if self._close(reservation, ReservationReleaseReason.EXPIRED, now):
                released += 1

        if released:
            logger.info("Released %s expired reservations", released)
        return released

    def get_active_reservation(
        self, request_id: int, store_id: int | None = None
    ) -> StockReservation | None:
        """Return the request's active reservation, optionally at a given store."""
        stmt = select(StockReservation).where(
            and_(
                StockReservation.request_id == request_id,
                StockReservation.is_active.is_(True),
            )
        )
        if store_id is not None:
            stmt = stmt.where(StockReservation.store_id == store_id)
        stmt = stmt.order_by(StockReservation.reserved_at.desc(), StockReservation.id.desc())
        return self.db.execute(stmt).scalars().first()

    def list_reservations(self, request_id: int) -> list[StockReservation]:
        """Return every reservation placed for a request, oldest first."""
        self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        stmt = (
            select(StockReservation)
            .where(StockReservation.request_id == request_id)
            .order_by(StockReservation.reserved_at, StockReservation.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def release_for_request(
        self, request_id: int, reason: ReservationReleaseReason
    ) -> list[StockReservation]:
        """Release all active reservations of a request."""
        stmt = select(StockReservation).where(
            and_(
                StockReservation.request_id == request_id,
                StockReservation.is_active.is_(True),
            )
        )
        reservations = list(self.db.execute(stmt).scalars().all())
        now = self.clock.now()
        return [
            reservation
            for reservation in reservations
            if self._close(reservation, reason, now)
        ]

    def _close(
        self,
        reservation: StockReservation,
        reason: ReservationReleaseReason,
        now: datetime,
    ) -> bool:
        """Deactivate a reservation and free its stock; False when already inactive."""
        stmt = (
            update(StockReservation)
            .where(
                and_(
                    StockReservation.id == reservation.id,
                    StockReservation.is_active.is_(True),
                )
            )
            .values(is_active=False, released_at=now, release_reason=reason)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self.db.refresh(reservation)
        if result.rowcount == 0:
            return False

        self._adjust_stock_level(reservation, current_delta=0, reserved_delta=-reservation.quantity)
        self.db.flush()

        event = "expired" if reason == ReservationReleaseReason.EXPIRED else "released"
        self.metrics_service.record_reservation_event(event, reservation.quantity)
        logger.info(
            "Released reservation %s of request %s (%s), %s x part %s back at store %s",
            reservation.id, reservation.request_id, reason.value,
            reservation.quantity, reservation.part_id, reservation.store_id,
        )
        return True

    def _adjust_stock_level(
        self, reservation: StockReservation, current_delta: int, reserved_delta: int
    ) -> None:
        stmt = (
            update(StockLevel)
            .where(
                and_(
                    StockLevel.part_id == reservation.part_id,
                    StockLevel.store_id == reservation.store_id,
                )
            )
            .values(
                current_stock=StockLevel.current_stock + current_delta,
                reserved_stock=StockLevel.reserved_stock + reserved_delta,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        stock_level = self.stock_service.get_stock_level(reservation.part_id, reservation.store_id)
        if stock_level is not None:
            self.db.refresh(stock_level)
