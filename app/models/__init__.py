"""SQLAlchemy models for Spare Parts Outward Flow."""

# Import all models here for Alembic auto-generation
from app.models.approval_history import ApprovalDecision, ApprovalHistoryEntry
from app.models.installed_part import InstalledPart
from app.models.spare_part import SparePart
from app.models.spare_part_request import (
    RequestPriority,
    RequestStatus,
    SparePartRequest,
)
from app.models.stock_issuance import StockIssuance
from app.models.stock_level import StockLevel
from app.models.stock_reservation import ReservationReleaseReason, StockReservation
from app.models.stock_return import ReturnCondition, StockReturn
from app.models.store import Store
from app.models.technician_limit import LimitScope, TechnicianLimit

__all__: list[str] = [
    "ApprovalDecision",
    "ApprovalHistoryEntry",
    "InstalledPart",
    "LimitScope",
    "RequestPriority",
    "RequestStatus",
    "ReservationReleaseReason",
    "ReturnCondition",
    "SparePart",
    "SparePartRequest",
    "StockIssuance",
    "StockLevel",
    "StockReservation",
    "StockReturn",
    "Store",
    "TechnicianLimit",
]
