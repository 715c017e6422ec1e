"""Tests for the expired reservation sweeper."""

from sqlalchemy import select

from app.models.stock_reservation import ReservationReleaseReason, StockReservation
from app.services.reservation_sweeper import ReservationSweeper
from tests.testing_utils import StubMetricsService, TestShutdownCoordinator


def _make_sweeper(container, interval_seconds=0):
    metrics = StubMetricsService()
    coordinator = TestShutdownCoordinator()
    sweeper = ReservationSweeper(
        container=container,
        metrics_service=metrics,
        shutdown_coordinator=coordinator,
        interval_seconds=interval_seconds,
    )
    return sweeper, metrics, coordinator


class TestReservationSweeper:
    def test_sweep_releases_only_expired(self, container, session, stocked_part, clock):
        part, store = stocked_part
        requests = container.spare_part_request_service()
        expiring = requests.create_request("SR-1", part.id, 2, "tech-1", store_id=store.id)
        clock.advance(1800)
        fresh = requests.create_request("SR-2", part.id, 3, "tech-1", store_id=store.id)
        session.commit()

        clock.advance(1801)
        sweeper, metrics, _ = _make_sweeper(container)
        released = sweeper.sweep()

        assert released == 1
        assert metrics.sweeps == [1]

        check = container.db_session()
        expired = check.execute(
            select(StockReservation).where(StockReservation.id == expiring.reservation.id)
        ).scalar_one()
        assert not expired.is_active
        assert expired.release_reason == ReservationReleaseReason.EXPIRED
        assert expired.released_at == clock.now()

        still_active = check.execute(
            select(StockReservation).where(StockReservation.id == fresh.reservation.id)
        ).scalar_one()
        assert still_active.is_active

        availability = container.stock_service().get_availability(part.id, store.id)
        assert availability.reserved == 3
        assert availability.available == 7

    def test_sweep_with_nothing_expired(self, container, session):
        sweeper, metrics, _ = _make_sweeper(container)

        assert sweeper.sweep() == 0
        assert metrics.sweeps == [0]

    def test_zero_interval_does_not_start(self, container):
        sweeper, _, _ = _make_sweeper(container, interval_seconds=0)

        sweeper.start()

        assert sweeper._thread is None

    def test_registers_shutdown_waiter(self, container):
        _, _, coordinator = _make_sweeper(container)

        assert "ReservationSweeper" in coordinator._waiters

    def test_stops_on_shutdown(self, container):
        sweeper, _, coordinator = _make_sweeper(container, interval_seconds=3600)
        sweeper.start()
        assert sweeper._thread.is_alive()

        coordinator.simulate_full_shutdown(timeout=5.0)

        assert not sweeper._thread.is_alive()

    def test_stop_without_thread_is_ready(self, container):
        sweeper, _, _ = _make_sweeper(container)

        assert sweeper.stop(timeout=0.1) is True
