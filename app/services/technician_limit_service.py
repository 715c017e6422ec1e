"""Service managing technician limit policies."""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.exceptions import ValidationException
from app.models.spare_part import SparePart
from app.models.technician_limit import LimitScope, TechnicianLimit
from app.services.base import BaseService

logger = logging.getLogger(__name__)

_CEILING_FIELDS = (
    "max_quantity_per_request",
    "max_value_per_request",
    "max_quantity_per_day",
    "max_value_per_day",
    "max_quantity_per_month",
    "max_value_per_month",
    "auto_approve_below",
)


class TechnicianLimitService(BaseService):
    """Service class for creating and querying technician limits."""

    def __init__(self, db: Session):
        super().__init__(db)

    def create_limit(
        self,
        technician_id: str,
        scope: LimitScope,
        target_id: int | None = None,
        max_quantity_per_request: int | None = None,
        max_value_per_request: Decimal | None = None,
        max_quantity_per_day: int | None = None,
        max_value_per_day: Decimal | None = None,
        max_quantity_per_month: int | None = None,
        max_value_per_month: Decimal | None = None,
        requires_approval: bool = False,
        auto_approve_below: Decimal | None = None,
    ) -> TechnicianLimit:
        """Create an active limit for a technician."""
        if scope == LimitScope.TOTAL and target_id is not None:
            raise ValidationException("target_id", "must be empty for a total limit")
        if scope != LimitScope.TOTAL and target_id is None:
            raise ValidationException("target_id", f"is required for a {scope.value} limit")
        if scope == LimitScope.PART:
            self._get_or_raise(SparePart, target_id, "Spare part")

        values = {
            "max_quantity_per_request": max_quantity_per_request,
            "max_value_per_request": max_value_per_request,
            "max_quantity_per_day": max_quantity_per_day,
            "max_value_per_day": max_value_per_day,
            "max_quantity_per_month": max_quantity_per_month,
            "max_value_per_month": max_value_per_month,
            "auto_approve_below": auto_approve_below,
        }
        for name in _CEILING_FIELDS:
            value = values[name]
            if value is not None and value < 0:
                raise ValidationException(name, "must not be negative")

        limit = TechnicianLimit(
            technician_id=technician_id,
            scope=scope,
            target_id=target_id,
            requires_approval=requires_approval,
            is_active=True,
            **values,
        )
        self.db.add(limit)
        self.db.flush()
        logger.info(
            "Created %s limit %s for technician %s", scope.value, limit.id, technician_id
        )
        return limit

    def list_limits(
        self, technician_id: str | None = None, include_inactive: bool = False
    ) -> list[TechnicianLimit]:
        stmt = select(TechnicianLimit)
        if technician_id is not None:
            stmt = stmt.where(TechnicianLimit.technician_id == technician_id)
        if not include_inactive:
            stmt = stmt.where(TechnicianLimit.is_active.is_(True))
        stmt = stmt.order_by(TechnicianLimit.technician_id, TechnicianLimit.id)
        return list(self.db.execute(stmt).scalars().all())

    def deactivate_limit(self, limit_id: int) -> TechnicianLimit:
        """Stop a limit from applying to future checks."""
        limit = self._get_or_raise(TechnicianLimit, limit_id, "Technician limit")
        limit.is_active = False
        self.db.flush()
        return limit
