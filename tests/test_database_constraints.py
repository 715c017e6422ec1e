"""Tests for database constraints and validation."""

from datetime import datetime
from decimal import Decimal

import pytest
from flask import Flask
from sqlalchemy import exc

from app.extensions import db
from app.models.spare_part import SparePart
from app.models.spare_part_request import SparePartRequest
from app.models.stock_level import StockLevel
from app.models.stock_reservation import StockReservation
from app.models.store import Store
from app.models.technician_limit import LimitScope, TechnicianLimit


def _part_and_store() -> tuple[SparePart, Store]:
    part = SparePart(part_number="PN-C1", name="Bearing", unit_price=Decimal("10.00"))
    store = Store(code="C1", name="Constraint store")
    db.session.add_all([part, store])
    db.session.flush()
    return part, store


class TestDatabaseConstraints:
    """Test cases for database constraints and validation."""

    def test_part_number_uniqueness(self, app: Flask):
        """Test that part_number must be unique."""
        with app.app_context():
            db.session.add(SparePart(part_number="PN-1", name="First", unit_price=Decimal("1")))
            db.session.commit()

            db.session.add(SparePart(part_number="PN-1", name="Second", unit_price=Decimal("2")))

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_part_negative_price_rejected(self, app: Flask):
        with app.app_context():
            db.session.add(SparePart(part_number="PN-2", name="Cheap", unit_price=Decimal("-1")))

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_store_code_uniqueness(self, app: Flask):
        """Test that store code must be unique."""
        with app.app_context():
            db.session.add(Store(code="DUP", name="Store A"))
            db.session.commit()

            db.session.add(Store(code="DUP", name="Store B"))

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_stock_level_unique_part_store_combination(self, app: Flask):
        """Test that (part_id, store_id) combination must be unique."""
        with app.app_context():
            part, store = _part_and_store()
            db.session.add(StockLevel(part_id=part.id, store_id=store.id, current_stock=1))
            db.session.commit()

            db.session.add(StockLevel(part_id=part.id, store_id=store.id, current_stock=2))

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_stock_level_reserved_cannot_exceed_current(self, app: Flask):
        with app.app_context():
            part, store = _part_and_store()
            db.session.add(
                StockLevel(part_id=part.id, store_id=store.id, current_stock=2, reserved_stock=3)
            )

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_stock_level_current_not_negative(self, app: Flask):
        with app.app_context():
            part, store = _part_and_store()
            db.session.add(
                StockLevel(part_id=part.id, store_id=store.id, current_stock=-1, reserved_stock=0)
            )

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_request_quantity_must_be_positive(self, app: Flask):
        with app.app_context():
            part, _ = _part_and_store()
            db.session.add(
                SparePartRequest(
                    service_request_id="SR-1",
                    part_id=part.id,
                    quantity=0,
                    estimated_cost=Decimal("0"),
                    requested_by="tech-1",
                    requested_at=datetime(2024, 1, 15, 12, 0, 0),
                )
            )

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_actual_cost_only_after_install(self, app: Flask):
        """A request that is not installed cannot carry an actual cost."""
        with app.app_context():
            part, _ = _part_and_store()
            db.session.add(
                SparePartRequest(
                    service_request_id="SR-2",
                    part_id=part.id,
                    quantity=1,
                    estimated_cost=Decimal("10.00"),
                    actual_cost=Decimal("10.00"),
                    requested_by="tech-1",
                    requested_at=datetime(2024, 1, 15, 12, 0, 0),
                )
            )

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    def test_inactive_reservation_requires_reason(self, app: Flask):
        with app.app_context():
            part, store = _part_and_store()
            request = SparePartRequest(
                service_request_id="SR-3",
                part_id=part.id,
                quantity=1,
                estimated_cost=Decimal("10.00"),
                requested_by="tech-1",
                requested_at=datetime(2024, 1, 15, 12, 0, 0),
            )
            db.session.add(request)
            db.session.flush()

            db.session.add(
                StockReservation(
                    request_id=request.id,
                    part_id=part.id,
                    store_id=store.id,
                    quantity=1,
                    reserved_by="tech-1",
                    reserved_at=datetime(2024, 1, 15, 12, 0, 0),
                    is_active=False,
                )
            )

            with pytest.raises(exc.IntegrityError):
                db.session.commit()

    @pytest.mark.parametrize(
        "scope,target_id",
        [
            (LimitScope.TOTAL, 5),
            (LimitScope.PART, None),
            (LimitScope.CATEGORY, None),
        ],
    )
    def test_limit_scope_target_consistency(self, app: Flask, scope, target_id):
        with app.app_context():
            db.session.add(
                TechnicianLimit(technician_id="tech-1", scope=scope, target_id=target_id)
            )

            with pytest.raises(exc.IntegrityError):
                db.session.commit()
