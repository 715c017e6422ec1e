"""Flask application factory for the Spare Parts Outward Flow backend."""

from typing import TYPE_CHECKING

from flask_cors import CORS
from flask_log_request_id import RequestID
from sqlalchemy.orm import Session, sessionmaker

if TYPE_CHECKING:
    from app.config import Settings

from app.app import App
from app.config import get_settings
from app.extensions import db
from app.services.container import ServiceContainer

API_MODULES = [
    "app.api.spare_part_requests",
    "app.api.approvals",
    "app.api.reservations",
    "app.api.technician_limits",
    "app.api.stock",
    "app.api.service_costs",
    "app.api.metrics",
    "app.api.health",
]


def create_app(settings: "Settings | None" = None, skip_background_services: bool = False) -> App:
    """Create and configure Flask application.

    Args:
        settings: Settings to use, defaults to the cached environment settings
        skip_background_services: Don't start the reservation sweeper and the
            metrics updater (CLI commands and tests)
    """
    app = App(__name__)

    if settings is None:
        settings = get_settings()

    app.config.from_object(settings)

    db.init_app(app)

    # Register models with SQLAlchemy
    from app import models  # noqa: F401

    # db.engine requires an app context
    with app.app_context():
        session_maker: sessionmaker[Session] = sessionmaker(
            class_=Session,
            bind=db.engine,
            autoflush=True,
            expire_on_commit=False,
        )

    # SpecTree must be configured before the API modules are wired
    from app.utils.spectree_config import configure_spectree

    configure_spectree(app)

    container = ServiceContainer()
    container.config.override(settings)
    container.session_maker.override(session_maker)
    container.wire(modules=API_MODULES)
    app.container = container

    CORS(app, origins=settings.CORS_ORIGINS)

    # Correlation ids for logs and error bodies
    RequestID(app)

    from app.utils.flask_error_handlers import register_error_handlers

    register_error_handlers(app)

    from app.api import api_bp

    app.register_blueprint(api_bp)

    _register_session_teardown(app, container)

    if not skip_background_services:
        _start_background_services(app, container, settings)

    return app


def _register_session_teardown(app: App, container: ServiceContainer) -> None:
    """Commit each request's unit of work, or roll all of it back."""

    @app.teardown_request
    def close_session(exc: Exception | None) -> None:
        try:
            db_session = container.db_session()
            # handle_api_errors flags handled errors; exc covers unhandled ones
            if exc or db_session.info.pop("needs_rollback", False):
                db_session.rollback()
            else:
                db_session.commit()
            db_session.close()
        finally:
            container.db_session.reset()


def _start_background_services(app: App, container: ServiceContainer, settings: "Settings") -> None:
    container.reservation_sweeper().start()

    try:
        container.metrics_service().start_background_updater(settings.METRICS_UPDATE_INTERVAL)
        app.logger.info("Prometheus metrics collection started")
    except Exception as e:
        app.logger.warning(f"Failed to start metrics collection: {e}")
