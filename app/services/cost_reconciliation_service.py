"""Cost reconciliation replacing estimates with realized installation costs."""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.exceptions import ValidationException
from app.models.installed_part import InstalledPart
from app.models.spare_part_request import RequestStatus, SparePartRequest
from app.services.base import BaseService

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

IN_FLIGHT_STATUSES = (
    RequestStatus.PENDING,
    RequestStatus.APPROVED,
    RequestStatus.ISSUED,
)


@dataclass(frozen=True, slots=True)
class ServiceRequestCosts:
    """Cost breakdown of all spare parts fitted for one service request."""

    service_request_id: str
    installed_count: int
    parts_cost: Decimal
    service_cost: Decimal
    labor_cost: Decimal
    total_cost: Decimal
    in_flight_count: int
    in_flight_estimated_cost: Decimal


class CostReconciliationService(BaseService):
    """Service class computing realized costs."""

    def __init__(self, db: Session):
        super().__init__(db)

    @staticmethod
    def calculate_total(
        quantity: int,
        unit_cost: Decimal,
        service_cost: Decimal = Decimal("0"),
        labor_cost: Decimal = Decimal("0"),
    ) -> Decimal:
        """Return unit cost x quantity + service cost + labor cost, in cents."""
        if quantity <= 0:
            raise ValidationException("quantity", "must be positive")
        for name, amount in (
            ("unit_cost", unit_cost),
            ("service_cost", service_cost),
            ("labor_cost", labor_cost),
        ):
            if amount < 0:
                raise ValidationException(name, "must not be negative")

        total = Decimal(unit_cost) * quantity + Decimal(service_cost) + Decimal(labor_cost)
        return total.quantize(CENTS, rounding=ROUND_HALF_UP)

    def reconcile(self, request: SparePartRequest, installed_part: InstalledPart) -> Decimal:
        """Store the realized total on the installation and return it.

        The caller records the total as the request's actual cost in the same
        UPDATE that moves the request to INSTALLED.
        """
        total = self.calculate_total(
            installed_part.quantity,
            installed_part.unit_cost,
            installed_part.service_cost,
            installed_part.labor_cost,
        )
        installed_part.total_cost = total
        logger.info(
            "Reconciled request %s: estimated %s, actual %s",
            request.id, request.estimated_cost, total,
        )
        return total

    def get_service_request_costs(self, service_request_id: str) -> ServiceRequestCosts:
        """Summarize installed and in-flight spare part costs of a service request."""
        installed_stmt = (
            select(
                func.count(InstalledPart.id),
                func.coalesce(func.sum(InstalledPart.unit_cost * InstalledPart.quantity), 0),
                func.coalesce(func.sum(InstalledPart.service_cost), 0),
                func.coalesce(func.sum(InstalledPart.labor_cost), 0),
                func.coalesce(func.sum(InstalledPart.total_cost), 0),
            )
            .join(SparePartRequest, SparePartRequest.id == InstalledPart.request_id)
            .where(SparePartRequest.service_request_id == service_request_id)
        )
        count, parts, service, labor, total = self.db.execute(installed_stmt).one()

        in_flight_stmt = select(
            func.count(SparePartRequest.id),
            func.coalesce(func.sum(SparePartRequest.estimated_cost), 0),
        ).where(
            SparePartRequest.service_request_id == service_request_id,
            SparePartRequest.status.in_(IN_FLIGHT_STATUSES),
        )
        in_flight_count, in_flight_cost = self.db.execute(in_flight_stmt).one()

        return ServiceRequestCosts(
            service_request_id=service_request_id,
            installed_count=int(count),
            parts_cost=_to_money(parts),
            service_cost=_to_money(service),
            labor_cost=_to_money(labor),
            total_cost=_to_money(total),
            in_flight_count=int(in_flight_count),
            in_flight_estimated_cost=_to_money(in_flight_cost),
        )


def _to_money(value: object) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
