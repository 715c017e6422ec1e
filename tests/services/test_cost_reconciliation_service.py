"""Tests for CostReconciliationService."""

from decimal import Decimal

import pytest

from app.exceptions import ValidationException
from app.models.spare_part_request import RequestStatus
from app.services.cost_reconciliation_service import CostReconciliationService
from app.services.issuance_service import InstallationDetails


class TestCalculateTotal:
    def test_parts_service_and_labor(self):
        total = CostReconciliationService.calculate_total(
            2, Decimal("100.00"), Decimal("50.00"), Decimal("20.00")
        )

        assert total == Decimal("270.00")

    def test_rounds_half_up_to_cents(self):
        assert CostReconciliationService.calculate_total(3, Decimal("0.335")) == Decimal("1.01")
        assert CostReconciliationService.calculate_total(1, Decimal("0.005")) == Decimal("0.01")

    def test_defaults_to_parts_only(self):
        assert CostReconciliationService.calculate_total(4, Decimal("12.50")) == Decimal("50.00")

    @pytest.mark.parametrize(
        "quantity,unit_cost,service_cost,labor_cost,field",
        [
            (0, Decimal("1"), Decimal("0"), Decimal("0"), "quantity"),
            (1, Decimal("-1"), Decimal("0"), Decimal("0"), "unit_cost"),
            (1, Decimal("1"), Decimal("-0.01"), Decimal("0"), "service_cost"),
            (1, Decimal("1"), Decimal("0"), Decimal("-5"), "labor_cost"),
        ],
    )
    def test_rejects_invalid_inputs(self, quantity, unit_cost, service_cost, labor_cost, field):
        with pytest.raises(ValidationException) as exc_info:
            CostReconciliationService.calculate_total(quantity, unit_cost, service_cost, labor_cost)

        assert exc_info.value.field == field


class TestServiceRequestCosts:
    def test_summarizes_installed_and_in_flight(self, workflow, stocked_part):
        part, store = stocked_part

        fitted = workflow.requests.create_request(
            "SR-9", part.id, 2, "tech-1", store_id=store.id
        ).request
        workflow.issuance.issue(fitted.id, store.id, "storekeeper-1")
        workflow.issuance.install(
            fitted.id,
            "tech-1",
            InstallationDetails(service_cost=Decimal("50.00"), labor_cost=Decimal("20.00")),
        )

        in_flight = workflow.requests.create_request("SR-9", part.id, 3, "tech-1").request
        cancelled = workflow.requests.create_request("SR-9", part.id, 1, "tech-1").request
        workflow.requests.cancel_request(cancelled.id, "tech-1")
        workflow.requests.create_request("SR-other", part.id, 1, "tech-1")

        costs = workflow.costs.get_service_request_costs("SR-9")

        assert in_flight.status == RequestStatus.APPROVED
        assert costs.installed_count == 1
        assert costs.parts_cost == Decimal("200.00")
        assert costs.service_cost == Decimal("50.00")
        assert costs.labor_cost == Decimal("20.00")
        assert costs.total_cost == Decimal("270.00")
        assert costs.in_flight_count == 1
        assert costs.in_flight_estimated_cost == Decimal("300.00")

    def test_unknown_service_request_is_empty(self, workflow):
        costs = workflow.costs.get_service_request_costs("SR-none")

        assert costs.installed_count == 0
        assert costs.total_cost == Decimal("0.00")
        assert costs.in_flight_count == 0
