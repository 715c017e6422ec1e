"""Pytest configuration and fixtures."""

import sqlite3
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import pytest
from dependency_injector import providers
from flask import Flask
from prometheus_client import REGISTRY
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from app import create_app
from app.config import Settings
from app.database import init_db
from app.models.spare_part import SparePart
from app.models.store import Store
from app.services.approval_service import (
    ApprovalService,
    PermissiveApprovalAuthorization,
    ThresholdApprovalLevelPolicy,
)
from app.services.container import ServiceContainer
from app.services.cost_reconciliation_service import CostReconciliationService
from app.services.issuance_service import IssuanceService
from app.services.limit_checker_service import LimitCheckerService
from app.services.reservation_service import ReservationService
from app.services.spare_part_request_service import SparePartRequestService
from app.services.stock_service import StockService
from app.services.technician_limit_service import TechnicianLimitService
from app.utils.clock import DeterministicClock
from tests.testing_utils import StubMetricsService


@pytest.fixture(autouse=True)
def clear_prometheus_registry():
    """Clear Prometheus registry before and after each test to ensure isolation.

    Every app instance builds its own MetricsService, and metrics cannot be
    registered twice in the same registry.
    """
    collectors = list(REGISTRY._collector_to_names.keys())
    for collector in collectors:
        try:
            REGISTRY.unregister(collector)
        except (KeyError, ValueError):
            pass
    yield
    collectors = list(REGISTRY._collector_to_names.keys())
    for collector in collectors:
        try:
            REGISTRY.unregister(collector)
        except (KeyError, ValueError):
            pass


def _build_test_settings() -> Settings:
    """Construct base Settings object for tests."""
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        SECRET_KEY="test-secret-key",
        DEBUG=True,
        FLASK_ENV="testing",
        CORS_ORIGINS=["http://localhost:3000"],
        APPROVAL_LEVEL_THRESHOLDS=[Decimal("1000"), Decimal("5000")],
        DEFAULT_AUTO_APPROVE_BELOW=Decimal("500"),
        RESERVATION_TTL_SECONDS=3600,
    )


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with in-memory database."""
    return _build_test_settings()


@pytest.fixture(scope="session")
def template_connection() -> Generator[sqlite3.Connection, None, None]:
    """Create a template SQLite database once with the full schema."""
    conn = sqlite3.connect(":memory:", check_same_thread=False)

    settings = _build_test_settings().model_copy()
    settings.DATABASE_URL = "sqlite://"
    settings.set_engine_options_override({
        "poolclass": StaticPool,
        "creator": lambda: conn,
    })

    template_app = create_app(settings, skip_background_services=True)
    with template_app.app_context():
        init_db()

    yield conn

    conn.close()


@pytest.fixture
def app(test_settings: Settings, template_connection: sqlite3.Connection) -> Generator[Flask, None, None]:
    """Create Flask app for testing using a fresh copy of the template database."""
    clone_conn = sqlite3.connect(":memory:", check_same_thread=False)
    template_connection.backup(clone_conn)

    settings = test_settings.model_copy()
    settings.DATABASE_URL = "sqlite://"
    settings.set_engine_options_override({
        "poolclass": StaticPool,
        "creator": lambda: clone_conn,
    })

    app = create_app(settings, skip_background_services=True)

    try:
        yield app
    finally:
        with app.app_context():
            from app.extensions import db as flask_db

            flask_db.session.remove()

        clone_conn.close()


@pytest.fixture
def clock() -> DeterministicClock:
    """Controllable clock starting at 2024-01-15 12:00 UTC."""
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, 0))


@pytest.fixture
def container(app: Flask, clock: DeterministicClock) -> Generator[ServiceContainer, None, None]:
    """Access to the DI container with the deterministic clock installed."""
    container = app.container
    container.clock.override(providers.Object(clock))

    with app.app_context():
        yield container

    container.clock.reset_override()


@pytest.fixture
def session(container: ServiceContainer) -> Generator[Session, None, None]:
    """Create a new database session for a test."""

    session = container.db_session()

    exc = None
    try:
        yield session
    except Exception as e:
        exc = e

    if exc:
        session.rollback()
    else:
        session.commit()
    session.close()

    container.db_session.reset()


@pytest.fixture
def client(app: Flask, container: ServiceContainer):
    """Create test client sharing the container's clock."""
    return app.test_client()


@pytest.fixture
def make_part(session: Session):
    """Factory creating spare parts."""
    counter = {"n": 0}

    def _make_part(
        unit_price: Decimal | str = "100.00",
        category_id: int | None = None,
        warranty_months: int | None = None,
        name: str | None = None,
    ) -> SparePart:
        counter["n"] += 1
        part = SparePart(
            part_number=f"PN-{counter['n']:04d}",
            name=name or f"Test part {counter['n']}",
            category_id=category_id,
            unit_price=Decimal(str(unit_price)),
            warranty_months=warranty_months,
        )
        session.add(part)
        session.flush()
        return part

    return _make_part


@pytest.fixture
def make_store(session: Session):
    """Factory creating stores."""
    counter = {"n": 0}

    def _make_store(name: str | None = None) -> Store:
        counter["n"] += 1
        store = Store(code=f"ST{counter['n']:02d}", name=name or f"Store {counter['n']}")
        session.add(store)
        session.flush()
        return store

    return _make_store


@pytest.fixture
def stocked_part(session: Session, make_part, make_store):
    """A part priced 100.00 with 10 units on hand in one store."""
    part = make_part(unit_price="100.00", warranty_months=12)
    store = make_store()
    StockService(session).add_stock(part.id, store.id, 10)
    session.flush()
    return part, store


@dataclass
class Workflow:
    """Services of the outward flow wired to one session, clock and metrics stub."""

    stock: StockService
    limits: TechnicianLimitService
    limit_checker: LimitCheckerService
    reservations: ReservationService
    approvals: ApprovalService
    requests: SparePartRequestService
    costs: CostReconciliationService
    issuance: IssuanceService
    metrics: StubMetricsService


@pytest.fixture
def metrics_stub() -> StubMetricsService:
    return StubMetricsService()


@pytest.fixture
def workflow(session: Session, clock: DeterministicClock, metrics_stub: StubMetricsService) -> Workflow:
    """Build the services directly, the way the container wires them."""
    stock = StockService(session)
    reservations = ReservationService(
        session, stock, metrics_stub, clock, default_ttl_seconds=3600
    )
    approvals = ApprovalService(
        session,
        reservations,
        metrics_stub,
        clock,
        ThresholdApprovalLevelPolicy([Decimal("1000"), Decimal("5000")]),
        PermissiveApprovalAuthorization(),
    )
    limit_checker = LimitCheckerService(
        session, metrics_stub, clock, default_auto_approve_below=Decimal("500")
    )
    costs = CostReconciliationService(session)
    return Workflow(
        stock=stock,
        limits=TechnicianLimitService(session),
        limit_checker=limit_checker,
        reservations=reservations,
        approvals=approvals,
        requests=SparePartRequestService(
            session, limit_checker, approvals, reservations, metrics_stub, clock
        ),
        costs=costs,
        issuance=IssuanceService(session, reservations, costs, metrics_stub, clock),
        metrics=metrics_stub,
    )
