"""Issuance, installation and return recorder for approved spare part requests."""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import (
    InvalidTransitionException,
    RecordNotFoundException,
    ReservationRequiredException,
    ValidationException,
)
from app.models.installed_part import InstalledPart
from app.models.spare_part import SparePart
from app.models.spare_part_request import RequestStatus, SparePartRequest
from app.models.stock_issuance import StockIssuance
from app.models.stock_level import StockLevel
from app.models.stock_return import ReturnCondition, StockReturn
from app.models.store import Store
from app.services.base import BaseService
from app.services.cost_reconciliation_service import CostReconciliationService
from app.services.metrics_service import MetricsServiceProtocol
from app.services.request_state import transition_request
from app.services.reservation_service import ReservationService
from app.utils.clock import Clock

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IssuedEvent:
    """An issued request together with the stock deduction it caused."""

    request: SparePartRequest
    issuance: StockIssuance


@dataclass(slots=True)
class InstallationDetails:
    """Details captured when a part is fitted to the vehicle."""

    quantity: int | None = None
    unit_cost: Decimal | None = None
    service_cost: Decimal = Decimal("0")
    labor_cost: Decimal = Decimal("0")
    warranty_start: date | None = None
    warranty_end: date | None = None
    mileage_at_installation: int | None = None
    notes: str | None = None


class IssuanceService(BaseService):
    """Service class converting reservations into issuances and installations."""

    def __init__(
        self,
        db: Session,
        reservation_service: ReservationService,
        cost_reconciliation_service: CostReconciliationService,
        metrics_service: MetricsServiceProtocol,
        clock: Clock,
    ):
        super().__init__(db)
        self.reservation_service = reservation_service
        self.cost_reconciliation_service = cost_reconciliation_service
        self.metrics_service = metrics_service
        self.clock = clock

    def issue(
        self,
        request_id: int,
        store_id: int,
        issued_by: str,
        issued_cost: Decimal | None = None,
    ) -> IssuedEvent:
        """Consume the request's reservation at ``store_id`` and mark it ISSUED.

        Raises:
            InvalidTransitionException: If the request is not APPROVED
            ReservationRequiredException: If no active reservation covers the quantity
            ReservationExpiredException: If the reservation expired before issue
        """
        request = self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        if request.status != RequestStatus.APPROVED:
            raise InvalidTransitionException(request.id, request.status.value, "issue")
        self._get_or_raise(Store, store_id, "Store")
        if issued_cost is not None and issued_cost < 0:
            raise ValidationException("issued_cost", "must not be negative")

        reservation = self.reservation_service.get_active_reservation(request.id, store_id)
        if reservation is None or reservation.quantity < request.quantity:
            raise ReservationRequiredException(request.id, store_id)

        issuance = self.reservation_service.consume(reservation.id, issued_by)

        transition_request(
            self.db,
            request,
            (RequestStatus.APPROVED,),
            RequestStatus.ISSUED,
            "issue",
            issued_by=issued_by,
            issued_at=issuance.issued_at,
            issued_cost=issued_cost,
            store_id=store_id,
        )

        self.metrics_service.record_part_issued(issuance.quantity)
        logger.info(
            "Issued request %s: %s x part %s from store %s to %s",
            request.id, issuance.quantity, request.part_id, store_id, issued_by,
        )
        return IssuedEvent(request=request, issuance=issuance)

    def install(
        self,
        request_id: int,
        installed_by: str,
        details: InstallationDetails | None = None,
    ) -> InstalledPart:
        """Record installation of an issued request exactly once.

        Calling again for a request that already has an installation record
        returns that record unchanged.
        """
        existing = self.get_installed_part(request_id)
        if existing is not None:
            logger.info("Request %s already installed, returning record %s", request_id, existing.id)
            return existing

        request = self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        if request.status != RequestStatus.ISSUED:
            raise InvalidTransitionException(request.id, request.status.value, "install")

        details = details or InstallationDetails()
        part = self._get_or_raise(SparePart, request.part_id, "Spare part")
        quantity = details.quantity if details.quantity is not None else request.quantity
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")
        if quantity > request.quantity:
            raise ValidationException(
                "quantity", f"cannot exceed the {request.quantity} issued for the request"
            )

        unit_cost = details.unit_cost if details.unit_cost is not None else Decimal(part.unit_price)
        now = self.clock.now()
        warranty_start, warranty_end = self._resolve_warranty(part, details, now)

        installed_part = InstalledPart(
            request_id=request.id,
            quantity=quantity,
            unit_cost=unit_cost,
            service_cost=details.service_cost,
            labor_cost=details.labor_cost,
            total_cost=Decimal("0"),
            installed_by=installed_by,
            installed_at=now,
            warranty_start=warranty_start,
            warranty_end=warranty_end,
            mileage_at_installation=details.mileage_at_installation,
            notes=details.notes,
        )
        installed_part.total_cost = self.cost_reconciliation_service.reconcile(request, installed_part)

        try:
            with self.db.begin_nested():
                self.db.add(installed_part)
                self.db.flush()
        except IntegrityError:
            # A concurrent install of the same request won the unique insert
            winner = self.get_installed_part(request.id)
            if winner is None:
                raise
            return winner

        transition_request(
            self.db,
            request,
            (RequestStatus.ISSUED,),
            RequestStatus.INSTALLED,
            "install",
            installed_at=now,
            actual_cost=installed_part.total_cost,
        )

        self.metrics_service.record_part_installed(installed_part.total_cost)
        logger.info(
            "Installed request %s by %s: actual cost %s (estimated %s)",
            request.id, installed_by, installed_part.total_cost, request.estimated_cost,
        )
        return installed_part

    def return_unused(
        self,
        request_id: int,
        quantity: int,
        condition: ReturnCondition,
        returned_by: str,
        reason: str | None = None,
    ) -> StockReturn:
        """Hand issued units that were not fitted back to the issuing store.

        Only INSTALLED requests take returns, and together they may not
        exceed the issued quantity minus the installed quantity. The request
        keeps its status. Good units become available again; damaged units
        are only counted.

        Raises:
            InvalidTransitionException: If the request is not INSTALLED
            ValidationException: If the quantity exceeds the unused units left
        """
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")

        request = self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        installed_part = self.get_installed_part(request.id)
        issuance = self.get_issuance(request.id)
        if request.status != RequestStatus.INSTALLED or installed_part is None or issuance is None:
            raise InvalidTransitionException(request.id, request.status.value, "return parts of")

        unused = issuance.quantity - installed_part.quantity
        stock_level = self.db.execute(
            select(StockLevel).where(
                and_(
                    StockLevel.part_id == issuance.part_id,
                    StockLevel.store_id == issuance.store_id,
                )
            )
        ).scalar_one_or_none()
        if stock_level is None:
            raise RecordNotFoundException(
                "Stock level", f"part {issuance.part_id} at store {issuance.store_id}"
            )

        # Concurrent returns of the same request cannot together exceed the unused units
        claim = (
            update(SparePartRequest)
            .where(
                SparePartRequest.id == request.id,
                SparePartRequest.returned_quantity + quantity <= unused,
            )
            .values(returned_quantity=SparePartRequest.returned_quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(claim)
        self.db.refresh(request)
        if result.rowcount == 0:
            remaining = max(unused - request.returned_quantity, 0)
            raise ValidationException(
                "quantity", f"cannot exceed the {remaining} unused unit(s) left on the request"
            )

        if condition == ReturnCondition.GOOD:
            values = {"current_stock": StockLevel.current_stock + quantity}
        else:
            values = {"damaged_stock": StockLevel.damaged_stock + quantity}
        self.db.execute(
            update(StockLevel)
            .where(StockLevel.id == stock_level.id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(stock_level)

        stock_return = StockReturn(
            request_id=request.id,
            part_id=issuance.part_id,
            store_id=issuance.store_id,
            quantity=quantity,
            condition=condition,
            returned_by=returned_by,
            returned_at=self.clock.now(),
            reason=reason,
        )
        self.db.add(stock_return)
        self.db.flush()

        self.metrics_service.record_part_returned(condition.value, quantity)
        logger.info(
            "Returned %s %s x part %s of request %s to store %s by %s",
            quantity, condition.value, issuance.part_id, request.id, issuance.store_id, returned_by,
        )
        return stock_return

    def list_returns(self, request_id: int) -> list[StockReturn]:
        """Return the request's returns, oldest first."""
        self._get_or_raise(SparePartRequest, request_id, "Spare part request")
        stmt = (
            select(StockReturn)
            .where(StockReturn.request_id == request_id)
            .order_by(StockReturn.returned_at, StockReturn.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_issuance(self, request_id: int) -> StockIssuance | None:
        stmt = select(StockIssuance).where(StockIssuance.request_id == request_id)
        return self.db.execute(stmt).scalars().first()

    def get_installed_part(self, request_id: int) -> InstalledPart | None:
        stmt = select(InstalledPart).where(InstalledPart.request_id == request_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def _resolve_warranty(
        self, part: SparePart, details: InstallationDetails, now: datetime
    ) -> tuple[date | None, date | None]:
        start = details.warranty_start
        end = details.warranty_end
        if start is None and end is None and part.warranty_months:
            start = now.date()
            end = _add_months(start, part.warranty_months)
        elif start is None and end is not None:
            start = now.date()
        if start is not None and end is not None and end < start:
            raise ValidationException("warranty_end", "must not be before warranty start")
        return start, end


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
