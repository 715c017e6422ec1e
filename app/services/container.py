"""Dependency injection container for services."""

from dependency_injector import containers, providers
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.services.approval_service import (
    ApprovalService,
    PermissiveApprovalAuthorization,
    ThresholdApprovalLevelPolicy,
)
from app.services.cost_reconciliation_service import CostReconciliationService
from app.services.issuance_service import IssuanceService
from app.services.limit_checker_service import LimitCheckerService
from app.services.metrics_service import MetricsService
from app.services.reservation_service import ReservationService
from app.services.reservation_sweeper import ReservationSweeper
from app.services.spare_part_request_service import SparePartRequestService
from app.services.stock_service import StockService
from app.services.technician_limit_service import TechnicianLimitService
from app.utils.clock import SystemClock
from app.utils.shutdown_coordinator import ShutdownCoordinator


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection."""

    __self__ = providers.Self()

    # Configuration and database session providers
    config = providers.Dependency(instance_of=Settings)
    session_maker = providers.Dependency(instance_of=sessionmaker)
    db_session = providers.ContextLocalSingleton(
        session_maker.provided.call()
    )

    # Time source, overridden with a DeterministicClock in tests
    clock = providers.Singleton(SystemClock)

    # Shutdown coordinator - Singleton for managing graceful shutdown
    shutdown_coordinator = providers.Singleton(
        ShutdownCoordinator,
        graceful_shutdown_timeout=config.provided.GRACEFUL_SHUTDOWN_TIMEOUT,
    )

    # Metrics service - Singleton for background thread management
    metrics_service = providers.Singleton(
        MetricsService,
        container=__self__,
        shutdown_coordinator=shutdown_coordinator,
    )

    # Approval policy collaborators
    approval_level_policy = providers.Singleton(
        ThresholdApprovalLevelPolicy,
        thresholds=config.provided.APPROVAL_LEVEL_THRESHOLDS,
    )
    approval_authorization = providers.Singleton(PermissiveApprovalAuthorization)

    # Service providers - Factory creates new instances for each request
    stock_service = providers.Factory(StockService, db=db_session)
    technician_limit_service = providers.Factory(TechnicianLimitService, db=db_session)
    cost_reconciliation_service = providers.Factory(CostReconciliationService, db=db_session)
    limit_checker_service = providers.Factory(
        LimitCheckerService,
        db=db_session,
        metrics_service=metrics_service,
        clock=clock,
        default_auto_approve_below=config.provided.DEFAULT_AUTO_APPROVE_BELOW,
    )
    reservation_service = providers.Factory(
        ReservationService,
        db=db_session,
        stock_service=stock_service,
        metrics_service=metrics_service,
        clock=clock,
        default_ttl_seconds=config.provided.RESERVATION_TTL_SECONDS,
    )
    approval_service = providers.Factory(
        ApprovalService,
        db=db_session,
        reservation_service=reservation_service,
        metrics_service=metrics_service,
        clock=clock,
        level_policy=approval_level_policy,
        authorization=approval_authorization,
    )
    spare_part_request_service = providers.Factory(
        SparePartRequestService,
        db=db_session,
        limit_checker_service=limit_checker_service,
        approval_service=approval_service,
        reservation_service=reservation_service,
        metrics_service=metrics_service,
        clock=clock,
    )
    issuance_service = providers.Factory(
        IssuanceService,
        db=db_session,
        reservation_service=reservation_service,
        cost_reconciliation_service=cost_reconciliation_service,
        metrics_service=metrics_service,
        clock=clock,
    )

    # Expiry sweeper - Singleton owning the background thread
    reservation_sweeper = providers.Singleton(
        ReservationSweeper,
        container=__self__,
        metrics_service=metrics_service,
        shutdown_coordinator=shutdown_coordinator,
        interval_seconds=config.provided.RESERVATION_SWEEP_INTERVAL_SECONDS,
    )
