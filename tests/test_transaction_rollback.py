"""Tests for the transaction rollback mechanism.

A failing endpoint returns an error response through @handle_api_errors
instead of raising, so the request teardown relies on the session's
needs_rollback flag to discard partial work.
"""

from flask import Flask
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import InsufficientStockException
from app.models.store import Store
from app.services.container import ServiceContainer
from app.utils.error_handling import handle_api_errors


class TestTransactionRollbackMechanism:
    """Test the rollback flag with different exception types."""

    def _run_and_get_flag(self, app: Flask, container: ServiceContainer, exception: Exception):
        @handle_api_errors
        def failing_function():
            raise exception

        with app.test_request_context():
            db_session = container.db_session()
            db_session.info.pop('needs_rollback', None)
            _, status_code = failing_function()
            return db_session.info.get('needs_rollback'), status_code

    def test_validation_error_triggers_rollback(self, app: Flask, session: Session, container: ServiceContainer):
        flag, status_code = self._run_and_get_flag(
            app, container, ValidationError.from_exception_data("TestError", [])
        )

        assert flag is True
        assert status_code == 400

    def test_integrity_error_triggers_rollback(self, app: Flask, session: Session, container: ServiceContainer):
        flag, status_code = self._run_and_get_flag(
            app, container, IntegrityError("UNIQUE constraint failed", None, Exception("UNIQUE constraint failed"))
        )

        assert flag is True
        assert status_code == 409

    def test_domain_exception_triggers_rollback(self, app: Flask, session: Session, container: ServiceContainer):
        flag, status_code = self._run_and_get_flag(app, container, InsufficientStockException(5, 1))

        assert flag is True
        assert status_code == 409

    def test_successful_call_keeps_session(self, app: Flask, session: Session, container: ServiceContainer):
        @handle_api_errors
        def working_function():
            return {"ok": True}

        with app.test_request_context():
            db_session = container.db_session()
            db_session.info.pop('needs_rollback', None)
            assert working_function() == {"ok": True}
            assert 'needs_rollback' not in db_session.info


class TestRequestTeardown:
    """Partial writes of a failed request are not committed."""

    def test_failed_request_discards_partial_writes(self, app: Flask, container: ServiceContainer):
        @handle_api_errors
        def create_store_then_fail():
            db_session = container.db_session()
            db_session.add(Store(code="PARTIAL", name="Partial store"))
            db_session.flush()
            raise InsufficientStockException(1, 0)

        app.add_url_rule("/test/partial-write", "partial_write", create_store_then_fail, methods=["POST"])
        client = app.test_client()

        response = client.post("/test/partial-write")

        assert response.status_code == 409
        with app.app_context():
            check = container.session_maker()()
            try:
                count = check.execute(
                    select(func.count(Store.id)).where(Store.code == "PARTIAL")
                ).scalar_one()
            finally:
                check.close()
        assert count == 0
