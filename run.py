"""Server entry point for the Spare Parts Outward Flow API."""

import logging
import os
import threading

from paste.translogger import TransLogger  # type: ignore[import-untyped]
from waitress import serve

from app import create_app
from app.config import get_settings
from app.utils.shutdown_coordinator import LifetimeEvent


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = get_settings()
    app = create_app(settings)

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))

    shutdown_coordinator = app.container.shutdown_coordinator()

    app.logger.info(
        "Reservations expire after %ss, swept every %ss; approval thresholds %s",
        settings.RESERVATION_TTL_SECONDS,
        settings.RESERVATION_SWEEP_INTERVAL_SECONDS,
        settings.APPROVAL_LEVEL_THRESHOLDS,
    )

    if settings.FLASK_ENV in ("development", "testing"):
        app.logger.info("Running in debug mode")

        # Only the reloader's worker process handles signals
        if os.environ.get("WERKZEUG_RUN_MAIN") == "true":
            shutdown_coordinator.initialize()

        def signal_shutdown(lifetime_event: LifetimeEvent) -> None:
            if lifetime_event == LifetimeEvent.AFTER_SHUTDOWN:
                # sys.exit does not stop the reloader
                os._exit(0)

        shutdown_coordinator.register_lifetime_notification(signal_shutdown)

        app.run(host=host, port=port, debug=True)
        return

    shutdown_coordinator.initialize()

    def runner() -> None:
        wsgi = TransLogger(app, setup_console_handler=False)

        # One Waitress thread per pooled connection so requests never queue on the pool
        threads = int(
            os.getenv("WAITRESS_THREADS", settings.DB_POOL_SIZE + settings.DB_POOL_MAX_OVERFLOW)
        )
        wsgi.logger.info(f"Using Waitress WSGI server with {threads} threads")
        serve(wsgi, host=host, port=port, threads=threads)

    thread = threading.Thread(target=runner, daemon=True)
    thread.start()

    stopped = threading.Event()

    def signal_shutdown_prod(lifetime_event: LifetimeEvent) -> None:
        if lifetime_event == LifetimeEvent.AFTER_SHUTDOWN:
            stopped.set()

    shutdown_coordinator.register_lifetime_notification(signal_shutdown_prod)

    stopped.wait()


if __name__ == "__main__":
    main()
