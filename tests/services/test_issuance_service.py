"""Tests for IssuanceService issue, install and return of unused units."""

from datetime import date
from decimal import Decimal

import pytest

from app.exceptions import (
    InvalidTransitionException,
    ReservationExpiredException,
    ReservationRequiredException,
    ValidationException,
)
from app.models.spare_part_request import RequestStatus
from app.models.stock_return import ReturnCondition
from app.services.issuance_service import InstallationDetails, _add_months


@pytest.fixture
def reserved_request(workflow, stocked_part):
    """Auto-approved request for 2 units with its reservation in place."""
    part, store = stocked_part
    outcome = workflow.requests.create_request("SR-42", part.id, 2, "tech-1", store_id=store.id)
    assert outcome.reservation is not None
    return outcome.request


class TestIssue:
    def test_issue_consumes_reservation(self, workflow, reserved_request, stocked_part, clock):
        part, store = stocked_part
        clock.advance(300)

        event = workflow.issuance.issue(
            reserved_request.id, store.id, "storekeeper-1", issued_cost=Decimal("190.00")
        )

        request = event.request
        assert request.status == RequestStatus.ISSUED
        assert request.issued_by == "storekeeper-1"
        assert request.issued_at == clock.now()
        assert request.issued_cost == Decimal("190.00")
        assert request.actual_cost is None
        assert event.issuance.quantity == 2
        assert event.issuance.store_id == store.id

        availability = workflow.stock.get_availability(part.id, store.id)
        assert availability.current == 8
        assert availability.reserved == 0
        assert workflow.reservations.get_active_reservation(request.id) is None
        assert workflow.metrics.issued == [2]

    def test_issue_without_reservation(self, workflow, make_part, make_store):
        part = make_part(unit_price="100.00")
        store = make_store()
        request = workflow.requests.create_request("SR-42", part.id, 1, "tech-1").request
        assert request.status == RequestStatus.APPROVED

        with pytest.raises(ReservationRequiredException):
            workflow.issuance.issue(request.id, store.id, "storekeeper-1")

        assert request.status == RequestStatus.APPROVED

    def test_issue_from_other_store_requires_reservation_there(
        self, workflow, reserved_request, make_store
    ):
        other = make_store()

        with pytest.raises(ReservationRequiredException):
            workflow.issuance.issue(reserved_request.id, other.id, "storekeeper-1")

    def test_issue_after_expiry(self, workflow, reserved_request, stocked_part, clock):
        _, store = stocked_part
        clock.advance(3601)

        with pytest.raises(ReservationExpiredException):
            workflow.issuance.issue(reserved_request.id, store.id, "storekeeper-1")

        assert reserved_request.status == RequestStatus.APPROVED

    def test_issue_requires_approved(self, workflow, reserved_request, stocked_part):
        _, store = stocked_part
        workflow.issuance.issue(reserved_request.id, store.id, "storekeeper-1")

        with pytest.raises(InvalidTransitionException):
            workflow.issuance.issue(reserved_request.id, store.id, "storekeeper-1")


@pytest.fixture
def issued_request(workflow, reserved_request, stocked_part):
    """The reserved request issued from its store."""
    _, store = stocked_part
    return workflow.issuance.issue(reserved_request.id, store.id, "storekeeper-1").request


class TestInstall:
    def test_install_reconciles_actual_cost(self, workflow, issued_request, clock):
        clock.advance(3600)

        installed = workflow.issuance.install(
            issued_request.id,
            "tech-1",
            InstallationDetails(
                service_cost=Decimal("50.00"),
                labor_cost=Decimal("20.00"),
                mileage_at_installation=120500,
            ),
        )

        assert installed.quantity == 2
        assert installed.unit_cost == Decimal("100.00")
        assert installed.total_cost == Decimal("270.00")
        assert installed.installed_at == clock.now()
        assert installed.mileage_at_installation == 120500
        assert issued_request.status == RequestStatus.INSTALLED
        assert issued_request.actual_cost == Decimal("270.00")
        assert issued_request.estimated_cost == Decimal("200.00")
        assert workflow.metrics.installed == [Decimal("270.00")]

    def test_install_is_idempotent(self, workflow, issued_request):
        first = workflow.issuance.install(
            issued_request.id, "tech-1", InstallationDetails(labor_cost=Decimal("20.00"))
        )
        second = workflow.issuance.install(
            issued_request.id, "tech-2", InstallationDetails(labor_cost=Decimal("99.00"))
        )

        assert second.id == first.id
        assert second.installed_by == "tech-1"
        assert second.total_cost == Decimal("220.00")
        assert workflow.metrics.installed == [Decimal("220.00")]

    def test_warranty_defaults_from_part(self, workflow, issued_request):
        installed = workflow.issuance.install(issued_request.id, "tech-1")

        assert installed.warranty_start == date(2024, 1, 15)
        assert installed.warranty_end == date(2025, 1, 15)

    def test_explicit_warranty(self, workflow, issued_request):
        installed = workflow.issuance.install(
            issued_request.id,
            "tech-1",
            InstallationDetails(warranty_start=date(2024, 2, 1), warranty_end=date(2024, 8, 1)),
        )

        assert installed.warranty_start == date(2024, 2, 1)
        assert installed.warranty_end == date(2024, 8, 1)

    def test_warranty_end_before_start(self, workflow, issued_request):
        with pytest.raises(ValidationException):
            workflow.issuance.install(
                issued_request.id,
                "tech-1",
                InstallationDetails(warranty_start=date(2024, 8, 1), warranty_end=date(2024, 2, 1)),
            )

    def test_partial_quantity_and_unit_cost(self, workflow, issued_request):
        installed = workflow.issuance.install(
            issued_request.id,
            "tech-1",
            InstallationDetails(quantity=1, unit_cost=Decimal("95.50")),
        )

        assert installed.quantity == 1
        assert installed.total_cost == Decimal("95.50")

    @pytest.mark.parametrize("quantity", [0, 3])
    def test_quantity_out_of_bounds(self, workflow, issued_request, quantity):
        with pytest.raises(ValidationException):
            workflow.issuance.install(
                issued_request.id, "tech-1", InstallationDetails(quantity=quantity)
            )

        assert issued_request.status == RequestStatus.ISSUED

    def test_install_requires_issued(self, workflow, reserved_request):
        with pytest.raises(InvalidTransitionException):
            workflow.issuance.install(reserved_request.id, "tech-1")


class TestReturnUnused:
    @pytest.fixture
    def partly_installed(self, workflow, issued_request):
        """Request issued with 2 units of which only 1 was fitted."""
        workflow.issuance.install(issued_request.id, "tech-1", InstallationDetails(quantity=1))
        return issued_request

    def test_good_units_go_back_into_stock(self, workflow, partly_installed, stocked_part, clock):
        part, store = stocked_part
        clock.advance(600)

        stock_return = workflow.issuance.return_unused(
            partly_installed.id, 1, ReturnCondition.GOOD, "tech-1", reason="Only one pad worn"
        )

        assert stock_return.quantity == 1
        assert stock_return.store_id == store.id
        assert stock_return.part_id == part.id
        assert stock_return.returned_at == clock.now()
        assert partly_installed.status == RequestStatus.INSTALLED
        assert partly_installed.returned_quantity == 1
        availability = workflow.stock.get_availability(part.id, store.id)
        assert availability.current == 9
        assert availability.available == 9
        assert availability.damaged == 0
        assert workflow.metrics.returned == [("good", 1)]
        assert workflow.issuance.list_returns(partly_installed.id) == [stock_return]

    def test_damaged_units_are_counted_but_not_available(
        self, workflow, partly_installed, stocked_part
    ):
        part, store = stocked_part

        workflow.issuance.return_unused(partly_installed.id, 1, ReturnCondition.DAMAGED, "tech-1")

        availability = workflow.stock.get_availability(part.id, store.id)
        assert availability.current == 8
        assert availability.available == 8
        assert availability.damaged == 1
        assert workflow.metrics.returned == [("damaged", 1)]

    def test_cannot_return_more_than_unused(self, workflow, partly_installed, stocked_part):
        part, store = stocked_part
        with pytest.raises(ValidationException):
            workflow.issuance.return_unused(partly_installed.id, 2, ReturnCondition.GOOD, "tech-1")

        workflow.issuance.return_unused(partly_installed.id, 1, ReturnCondition.GOOD, "tech-1")
        with pytest.raises(ValidationException):
            workflow.issuance.return_unused(partly_installed.id, 1, ReturnCondition.GOOD, "tech-1")

        assert partly_installed.returned_quantity == 1
        assert workflow.stock.get_availability(part.id, store.id).current == 9

    def test_fully_installed_request_has_nothing_to_return(self, workflow, issued_request):
        workflow.issuance.install(issued_request.id, "tech-1")

        with pytest.raises(ValidationException):
            workflow.issuance.return_unused(issued_request.id, 1, ReturnCondition.GOOD, "tech-1")

    def test_return_requires_installed(self, workflow, issued_request):
        with pytest.raises(InvalidTransitionException):
            workflow.issuance.return_unused(issued_request.id, 1, ReturnCondition.GOOD, "tech-1")

        assert workflow.metrics.returned == []

    def test_quantity_must_be_positive(self, workflow, partly_installed):
        with pytest.raises(ValidationException):
            workflow.issuance.return_unused(partly_installed.id, 0, ReturnCondition.GOOD, "tech-1")



def test_add_months_clamps_to_month_end():
    assert _add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert _add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)
