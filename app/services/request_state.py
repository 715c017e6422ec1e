"""Guarded status transitions for spare part requests."""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.exceptions import InvalidTransitionException
from app.models.spare_part_request import RequestStatus, SparePartRequest


def transition_request(
    db: Session,
    request: SparePartRequest,
    allowed: Iterable[RequestStatus],
    target: RequestStatus,
    operation: str,
    **values: Any,
) -> None:
    """Move a request to ``target`` only if it is still in one of ``allowed``.

    The status check and the write are one UPDATE statement; a concurrent
    transition that got there first makes this raise InvalidTransitionException
    with the status the request actually has.
    """
    allowed_statuses = tuple(allowed)
    if request.status not in allowed_statuses:
        raise InvalidTransitionException(request.id, request.status.value, operation)

    stmt = (
        update(SparePartRequest)
        .where(
            SparePartRequest.id == request.id,
            SparePartRequest.status.in_(allowed_statuses),
        )
        .values(status=target, **values)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    db.refresh(request)
    if result.rowcount == 0:
        raise InvalidTransitionException(request.id, request.status.value, operation)
