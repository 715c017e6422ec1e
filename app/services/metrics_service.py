"""Prometheus metrics service for collecting and exposing application metrics."""

import logging
import threading
import time
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge, Histogram, generate_latest
from sqlalchemy import func, select

from app.models.approval_history import ApprovalHistoryEntry
from app.models.spare_part_request import RequestStatus, SparePartRequest
from app.models.stock_reservation import StockReservation
from app.utils.shutdown_coordinator import LifetimeEvent

if TYPE_CHECKING:
    from app.services.container import ServiceContainer
    from app.utils.shutdown_coordinator import ShutdownCoordinatorProtocol

logger = logging.getLogger(__name__)


class MetricsServiceProtocol(ABC):
    """Protocol for metrics service implementations.

    Recorder methods default to no-ops so test stubs only override what they
    assert on.
    """

    @abstractmethod
    def update_workflow_metrics(self) -> None:
        """Refresh gauges derived from persisted workflow state."""
        pass

    @abstractmethod
    def get_metrics_text(self) -> str:
        """Return metrics in Prometheus exposition format."""
        pass

    def record_request_created(self, outcome: str) -> None:
        """Record creation of a spare part request by limit check outcome."""
        return None

    def record_request_cancelled(self, previous_status: str) -> None:
        """Record cancellation of a spare part request."""
        return None

    def record_approval_decision(self, decision: str, level: int) -> None:
        """Record an approval decision."""
        return None

    def record_limit_check(self, outcome: str) -> None:
        """Record the outcome of a limit evaluation."""
        return None

    def record_reservation_event(self, event: str, quantity: int) -> None:
        """Record reservation placement, failure, release or consumption."""
        return None

    def record_reservations_swept(self, count: int, duration_seconds: float) -> None:
        """Record a completed expiry sweep."""
        return None

    def record_part_issued(self, quantity: int) -> None:
        """Record issuance of parts to a technician."""
        return None

    def record_part_installed(self, total_cost: Decimal) -> None:
        """Record installation with its realized cost."""
        return None

    def record_part_returned(self, condition: str, quantity: int) -> None:
        """Record unused parts handed back to a store."""
        return None

    def start_background_updater(self, interval_seconds: int = 60) -> None:
        """Start background metric updater."""
        return None

    def shutdown(self) -> None:
        """Stop background work."""
        return None


class MetricsService(MetricsServiceProtocol):
    """Service class for Prometheus metrics collection and exposure."""

    def __init__(self, container: "ServiceContainer", shutdown_coordinator: "ShutdownCoordinatorProtocol"):
        """Initialize service with container reference and metric objects.

        Args:
            container: Service container for accessing database sessions
            shutdown_coordinator: Coordinator for graceful shutdown
        """
        self.container = container
        self.shutdown_coordinator = shutdown_coordinator

        self.initialize_metrics()

        # Background update control
        self._stop_event = threading.Event()
        self._updater_thread: threading.Thread | None = None

        self.shutdown_coordinator.register_lifetime_notification(self._on_lifetime_event)

    def initialize_metrics(self) -> None:
        """Define all Prometheus metric objects."""
        # Check if already initialized (for container singleton reuse)
        if hasattr(self, 'requests_created_total'):
            return

        # Request lifecycle
        self.requests_created_total = Counter(
            'spare_part_requests_created_total',
            'Spare part requests created by limit check outcome',
            ['outcome']
        )
        self.requests_cancelled_total = Counter(
            'spare_part_requests_cancelled_total',
            'Spare part requests cancelled by prior status',
            ['previous_status']
        )
        self.requests_pending = Gauge(
            'spare_part_requests_pending',
            'Requests awaiting an approval decision'
        )

        # Approvals
        self.approvals_open = Gauge(
            'spare_part_approvals_open',
            'Approval levels awaiting a decision'
        )
        self.approval_decisions_total = Counter(
            'spare_part_approval_decisions_total',
            'Approval decisions by decision and level',
            ['decision', 'level']
        )
        self.limit_checks_total = Counter(
            'spare_part_limit_checks_total',
            'Technician limit evaluations by outcome',
            ['outcome']
        )

        # Reservations
        self.reservation_events_total = Counter(
            'spare_part_reservation_events_total',
            'Reservation events by type',
            ['event']
        )
        self.reservation_quantity_total = Counter(
            'spare_part_reservation_quantity_total',
            'Quantity moved through reservation events',
            ['event']
        )
        self.reservations_active = Gauge(
            'spare_part_reservations_active',
            'Currently active stock reservations'
        )
        self.reservations_swept_total = Counter(
            'spare_part_reservations_swept_total',
            'Expired reservations released by the sweeper'
        )
        self.reservation_sweep_duration_seconds = Histogram(
            'spare_part_reservation_sweep_duration_seconds',
            'Duration of expiry sweeps'
        )

        # Fulfilment
        self.parts_issued_total = Counter(
            'spare_parts_issued_total',
            'Quantity of parts issued to technicians'
        )
        self.parts_installed_total = Counter(
            'spare_parts_installed_total',
            'Installed part records created'
        )
        self.installation_cost = Histogram(
            'spare_part_installation_cost',
            'Realized cost per installed request',
            buckets=(50, 100, 250, 500, 1000, 2500, 5000, 10000, 25000, 50000)
        )
        self.parts_returned_total = Counter(
            'spare_parts_returned_total',
            'Quantity of unused parts returned by condition',
            ['condition']
        )

    def update_workflow_metrics(self) -> None:
        """Update gauges from the database."""
        # Own session so a scrape never touches the request's unit of work
        session = self.container.session_maker()()
        try:
            pending = session.execute(
                select(func.count(SparePartRequest.id)).where(
                    SparePartRequest.status == RequestStatus.PENDING
                )
            ).scalar() or 0
            active_reservations = session.execute(
                select(func.count(StockReservation.id)).where(
                    StockReservation.is_active.is_(True)
                )
            ).scalar() or 0
            open_levels = session.execute(
                select(func.count(ApprovalHistoryEntry.id)).where(
                    ApprovalHistoryEntry.is_active.is_(True)
                )
            ).scalar() or 0

            self.requests_pending.set(pending)
            self.approvals_open.set(open_levels)
            self.reservations_active.set(active_reservations)
        except Exception as e:
            logger.error(f"Error updating workflow metrics: {e}")
        finally:
            session.close()

    def record_request_created(self, outcome: str) -> None:
        try:
            self.requests_created_total.labels(outcome=outcome).inc()
        except Exception as exc:
            logger.error("Error recording request creation metric: %s", exc)

    def record_request_cancelled(self, previous_status: str) -> None:
        try:
            self.requests_cancelled_total.labels(previous_status=previous_status).inc()
        except Exception as exc:
            logger.error("Error recording request cancellation metric: %s", exc)

    def record_approval_decision(self, decision: str, level: int) -> None:
        try:
            self.approval_decisions_total.labels(decision=decision, level=str(level)).inc()
        except Exception as exc:
            logger.error("Error recording approval decision metric: %s", exc)

    def record_limit_check(self, outcome: str) -> None:
        try:
            self.limit_checks_total.labels(outcome=outcome).inc()
        except Exception as exc:
            logger.error("Error recording limit check metric: %s", exc)

    def record_reservation_event(self, event: str, quantity: int) -> None:
        """Record reservation events.

        Args:
            event: One of 'reserved', 'unavailable', 'released', 'expired', 'consumed'
            quantity: Quantity affected by the event
        """
        try:
            self.reservation_events_total.labels(event=event).inc()
            if quantity > 0:
                self.reservation_quantity_total.labels(event=event).inc(quantity)
        except Exception as exc:
            logger.error("Error recording reservation metric: %s", exc)

    def record_reservations_swept(self, count: int, duration_seconds: float) -> None:
        try:
            if count > 0:
                self.reservations_swept_total.inc(count)
            self.reservation_sweep_duration_seconds.observe(max(duration_seconds, 0.0))
        except Exception as exc:
            logger.error("Error recording sweep metrics: %s", exc)

    def record_part_issued(self, quantity: int) -> None:
        if quantity <= 0:
            return
        try:
            self.parts_issued_total.inc(quantity)
        except Exception as exc:
            logger.error("Error recording issuance metric: %s", exc)

    def record_part_installed(self, total_cost: Decimal) -> None:
        try:
            self.parts_installed_total.inc()
            self.installation_cost.observe(float(total_cost))
        except Exception as exc:
            logger.error("Error recording installation metrics: %s", exc)

    def record_part_returned(self, condition: str, quantity: int) -> None:
        if quantity <= 0:
            return
        try:
            self.parts_returned_total.labels(condition=condition).inc(quantity)
        except Exception as exc:
            logger.error("Error recording return metric: %s", exc)

    def start_background_updater(self, interval_seconds: int = 60) -> None:
        """Start background thread for periodic gauge updates."""
        if self._updater_thread is not None and self._updater_thread.is_alive():
            logger.warning("Background updater already running")
            return

        self._stop_event.clear()
        self._updater_thread = threading.Thread(
            target=self._background_update_loop,
            args=(interval_seconds,),
            daemon=True
        )
        self._updater_thread.start()
        logger.info(f"Started metrics background updater with {interval_seconds}s interval")

    def _stop_background_updater(self) -> None:
        """Stop the background metrics updater."""
        self._stop_event.set()
        if self._updater_thread:
            self._updater_thread.join(timeout=5)

    def _background_update_loop(self, interval_seconds: int) -> None:
        """Background loop for updating metrics."""
        while not self._stop_event.is_set():
            start = time.perf_counter()
            try:
                self.update_workflow_metrics()
            except Exception as e:
                logger.error(f"Error in background metrics update: {e}")
            logger.debug(f"Metrics update took {time.perf_counter() - start:.3f}s")

            self._stop_event.wait(interval_seconds)

    def get_metrics_text(self) -> str:
        """Generate metrics in Prometheus text format.

        Returns:
            Metrics data in Prometheus exposition format
        """
        return generate_latest().decode('utf-8')

    def _on_lifetime_event(self, event: LifetimeEvent) -> None:
        """Callback when shutdown lifetime events are raised."""
        if event == LifetimeEvent.SHUTDOWN:
            self.shutdown()

    def shutdown(self) -> None:
        """Implementation of the shutdown sequence, also for use by unit tests."""
        self._stop_background_updater()
