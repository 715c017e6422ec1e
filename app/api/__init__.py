"""API blueprints for the Spare Parts Outward Flow service."""

from flask import Blueprint

# Create main API blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")


# Import and register all resource blueprints
# Note: Imports are done after api_bp creation to avoid circular imports
from app.api.approvals import approvals_bp  # noqa: E402
from app.api.health import health_bp  # noqa: E402
from app.api.metrics import metrics_bp  # noqa: E402
from app.api.reservations import reservations_bp  # noqa: E402
from app.api.service_costs import service_costs_bp  # noqa: E402
from app.api.spare_part_requests import spare_part_requests_bp  # noqa: E402
from app.api.stock import stock_bp  # noqa: E402
from app.api.technician_limits import technician_limits_bp  # noqa: E402

api_bp.register_blueprint(approvals_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(health_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(metrics_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(reservations_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(service_costs_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(spare_part_requests_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(stock_bp)  # type: ignore[attr-defined]
api_bp.register_blueprint(technician_limits_bp)  # type: ignore[attr-defined]
