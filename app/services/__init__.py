"""Services package for the Spare Parts Outward Flow service."""

from app.services.approval_service import ApprovalService
from app.services.container import ServiceContainer
from app.services.cost_reconciliation_service import CostReconciliationService
from app.services.issuance_service import IssuanceService
from app.services.limit_checker_service import LimitCheckerService
from app.services.reservation_service import ReservationService
from app.services.spare_part_request_service import SparePartRequestService

__all__ = [
    "ServiceContainer",
    "ApprovalService",
    "CostReconciliationService",
    "IssuanceService",
    "LimitCheckerService",
    "ReservationService",
    "SparePartRequestService",
]
