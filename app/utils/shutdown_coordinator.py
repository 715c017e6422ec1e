"""Graceful shutdown coordinator for the API process and its background threads.

Shutdown runs in three steps:

1. ``PREPARE_SHUTDOWN`` is raised. Readiness starts failing and background
   workers (reservation sweeper, metrics updater) stop scheduling new work.
2. Registered waiters are given the remaining ``GRACEFUL_SHUTDOWN_TIMEOUT``
   to finish work already in flight, such as a sweep that has not committed.
3. ``SHUTDOWN`` and then ``AFTER_SHUTDOWN`` are raised; ``run.py`` stops the
   server on the latter.
"""

import logging
import signal
import sys
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum

logger = logging.getLogger(__name__)


class LifetimeEvent(str, Enum):
    PREPARE_SHUTDOWN = "prepare-shutdown"
    SHUTDOWN = "shutdown"
    AFTER_SHUTDOWN = "after-shutdown"


class ShutdownCoordinatorProtocol(ABC):
    """Protocol for shutdown coordinator implementations."""

    @abstractmethod
    def initialize(self) -> None:
        """Install the SIGTERM/SIGINT handlers."""
        pass

    @abstractmethod
    def register_lifetime_notification(self, callback: Callable[[LifetimeEvent], None]) -> None:
        """Register a callback notified of every lifetime event.

        Args:
            callback: Function to call with the lifetime event
        """
        pass

    @abstractmethod
    def register_shutdown_waiter(self, name: str, handler: Callable[[float], bool]) -> None:
        """Register a handler that blocks until its component is idle.

        Args:
            name: Name of the component, used in shutdown logs
            handler: Called with the remaining timeout; returns True when idle
        """
        pass

    @abstractmethod
    def is_shutting_down(self) -> bool:
        """Check if shutdown has been initiated."""
        pass


class ShutdownCoordinator(ShutdownCoordinatorProtocol):
    """Runs the shutdown sequence once, on signal or on demand."""

    def __init__(self, graceful_shutdown_timeout: int):
        self._graceful_shutdown_timeout = graceful_shutdown_timeout
        self._shutting_down = False
        self._lock = threading.RLock()
        self._notifications: list[Callable[[LifetimeEvent], None]] = []
        self._waiters: dict[str, Callable[[float], bool]] = {}

    def initialize(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_sigterm)
        signal.signal(signal.SIGINT, self._handle_sigterm)
        logger.info(
            "Shutdown handlers installed (timeout %ss)", self._graceful_shutdown_timeout
        )

    def register_lifetime_notification(self, callback: Callable[[LifetimeEvent], None]) -> None:
        with self._lock:
            self._notifications.append(callback)

    def register_shutdown_waiter(self, name: str, handler: Callable[[float], bool]) -> None:
        with self._lock:
            self._waiters[name] = handler
            logger.debug("Registered shutdown waiter %s", name)

    def is_shutting_down(self) -> bool:
        with self._lock:
            return self._shutting_down

    def _handle_sigterm(self, signum: int, frame) -> None:
        logger.info("Received signal %s, initiating graceful shutdown", signum)
        if self.shutdown():
            sys.exit(0)

    def shutdown(self) -> bool:
        """Run the shutdown sequence.

        Returns:
            False if a shutdown was already in progress, True otherwise
        """
        with self._lock:
            if self._shutting_down:
                logger.warning("Shutdown already in progress, ignoring request")
                return False
            self._shutting_down = True
            waiters = dict(self._waiters)

        started = time.perf_counter()
        self._raise_lifetime_event(LifetimeEvent.PREPARE_SHUTDOWN)

        # Waiters run outside the lock so they can still query is_shutting_down
        not_ready = self._run_waiters(waiters, started)
        elapsed = time.perf_counter() - started
        if not_ready:
            logger.error(
                "Forcing shutdown after %.1fs; not idle: %s", elapsed, ", ".join(not_ready)
            )
        else:
            logger.info("All components idle after %.1fs", elapsed)

        self._raise_lifetime_event(LifetimeEvent.SHUTDOWN)
        self._raise_lifetime_event(LifetimeEvent.AFTER_SHUTDOWN)
        return True

    def _run_waiters(self, waiters: dict[str, Callable[[float], bool]], started: float) -> list[str]:
        """Give each waiter what is left of the timeout; return the names not idle."""
        not_ready: list[str] = []

        for name, waiter in waiters.items():
            remaining = self._graceful_shutdown_timeout - (time.perf_counter() - started)
            if remaining <= 0:
                not_ready.append(name)
                continue

            logger.info("Waiting for %s (remaining %.1fs)", name, remaining)
            try:
                if not waiter(remaining):
                    not_ready.append(name)
            except Exception as e:
                logger.error("Shutdown waiter %s failed: %s", name, e)
                not_ready.append(name)

        return not_ready

    def _raise_lifetime_event(self, event: LifetimeEvent) -> None:
        logger.info("Raising lifetime event %s", event.value)

        for callback in list(self._notifications):
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    "Lifetime callback %s failed on %s: %s",
                    getattr(callback, "__name__", repr(callback)),
                    event.value,
                    e,
                )
