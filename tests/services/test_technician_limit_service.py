"""Tests for TechnicianLimitService."""

from decimal import Decimal

import pytest

from app.exceptions import RecordNotFoundException, ValidationException
from app.models.technician_limit import LimitScope


class TestTechnicianLimitService:
    def test_create_total_limit(self, workflow):
        limit = workflow.limits.create_limit(
            "tech-1",
            LimitScope.TOTAL,
            max_value_per_day=Decimal("3000"),
            auto_approve_below=Decimal("250"),
        )

        assert limit.id is not None
        assert limit.is_active
        assert limit.target_id is None
        assert limit.max_value_per_day == Decimal("3000")
        assert not limit.requires_approval

    def test_part_limit_requires_existing_part(self, workflow, make_part):
        part = make_part()
        limit = workflow.limits.create_limit(
            "tech-1", LimitScope.PART, target_id=part.id, max_quantity_per_request=2
        )
        assert limit.target_id == part.id

        with pytest.raises(RecordNotFoundException):
            workflow.limits.create_limit("tech-1", LimitScope.PART, target_id=9999)

    @pytest.mark.parametrize(
        "scope,target_id",
        [(LimitScope.TOTAL, 1), (LimitScope.CATEGORY, None), (LimitScope.PART, None)],
    )
    def test_scope_and_target_must_agree(self, workflow, scope, target_id):
        with pytest.raises(ValidationException) as exc_info:
            workflow.limits.create_limit("tech-1", scope, target_id=target_id)

        assert exc_info.value.field == "target_id"

    def test_negative_ceiling(self, workflow):
        with pytest.raises(ValidationException) as exc_info:
            workflow.limits.create_limit("tech-1", LimitScope.TOTAL, max_value_per_month=Decimal("-1"))

        assert exc_info.value.field == "max_value_per_month"

    def test_list_and_deactivate(self, workflow):
        first = workflow.limits.create_limit("tech-1", LimitScope.TOTAL, max_quantity_per_day=10)
        second = workflow.limits.create_limit("tech-1", LimitScope.CATEGORY, target_id=7)
        workflow.limits.create_limit("tech-2", LimitScope.TOTAL)

        workflow.limits.deactivate_limit(first.id)

        assert [limit.id for limit in workflow.limits.list_limits("tech-1")] == [second.id]
        assert [limit.id for limit in workflow.limits.list_limits("tech-1", include_inactive=True)] == [
            first.id,
            second.id,
        ]
        assert len(workflow.limits.list_limits()) == 2

    def test_deactivate_unknown(self, workflow):
        with pytest.raises(RecordNotFoundException):
            workflow.limits.deactivate_limit(9999)
