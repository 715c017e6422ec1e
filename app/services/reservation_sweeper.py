"""Background sweeper releasing expired stock reservations."""

import logging
import threading
import time
from typing import TYPE_CHECKING

from app.utils.shutdown_coordinator import LifetimeEvent, ShutdownCoordinatorProtocol

if TYPE_CHECKING:
    from app.services.container import ServiceContainer
    from app.services.metrics_service import MetricsServiceProtocol

logger = logging.getLogger(__name__)


class ReservationSweeper:
    """Periodically releases reservations whose expiry has passed.

    Each sweep runs in its own session and commits on its own; the release
    itself is a conditional update, so a sweep racing with consume or a
    manual release never double-applies.
    """

    def __init__(
        self,
        container: "ServiceContainer",
        metrics_service: "MetricsServiceProtocol",
        shutdown_coordinator: ShutdownCoordinatorProtocol,
        interval_seconds: int,
    ):
        self.container = container
        self.metrics_service = metrics_service
        self.interval_seconds = interval_seconds

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        shutdown_coordinator.register_lifetime_notification(self._on_lifetime_event)
        shutdown_coordinator.register_shutdown_waiter("ReservationSweeper", self._wait_for_sweep)

    def start(self) -> None:
        """Start the background sweep thread unless disabled by a zero interval."""
        if self.interval_seconds <= 0:
            logger.info("Reservation sweeper disabled")
            return
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop, name="reservation-sweeper", daemon=True
        )
        self._thread.start()
        logger.info(f"Started reservation sweeper with {self.interval_seconds}s interval")

    def stop(self, timeout: float = 5.0) -> bool:
        """Stop the sweep thread, letting an in-flight sweep commit.

        Returns:
            True if the thread finished within the timeout
        """
        self._stop_event.set()
        if self._thread is None or not self._thread.is_alive():
            return True

        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning("Reservation sweeper still running after %.1fs", timeout)
            return False

        logger.info("Stopped reservation sweeper")
        return True

    def sweep(self) -> int:
        """Release expired reservations in a dedicated transaction."""
        start = time.perf_counter()
        session = self.container.db_session()
        try:
            released = self.container.reservation_service().release_expired()
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            self.container.db_session.reset()

        self.metrics_service.record_reservations_swept(released, time.perf_counter() - start)
        return released

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Error sweeping expired reservations: {e}")

    def _on_lifetime_event(self, event: LifetimeEvent) -> None:
        if event == LifetimeEvent.PREPARE_SHUTDOWN:
            # No new sweeps; the waiter lets the current one finish
            self._stop_event.set()

    def _wait_for_sweep(self, timeout: float) -> bool:
        return self.stop(timeout=timeout)
