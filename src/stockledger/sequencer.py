"""Reference sequencer: ``{sequence_code}/{N:05d}`` per operation type.

The counter is stored on the operation type row. Allocation increments it
with an ``UPDATE`` inside the caller's transaction before reading it back,
so the write lock taken by the update serialises concurrent creators of the
same type. Numbers are never reused: rolled back allocations return the
value, committed ones stay consumed even if the operation is later canceled
or deleted. The unique constraint on ``stock_operations.reference`` is the
backstop.
"""

from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from .exceptions import UnknownReferenceError
from .logging_config import get_logger
from .models import OperationType

logger = get_logger(__name__)

REFERENCE_WIDTH = 5


def format_reference(sequence_code: str, number: int) -> str:
    return f"{sequence_code}/{number:0{REFERENCE_WIDTH}d}"


class ReferenceSequencer:
    """Allocates references within the caller's transaction; never commits."""

    def __init__(self, session: Session):
        self._session = session

    def next_reference(self, operation_type_id: int) -> str:
        sequence_code = self._session.scalar(
            select(OperationType.sequence_code).where(OperationType.id == operation_type_id)
        )
        if sequence_code is None:
            raise UnknownReferenceError("Operation type", operation_type_id)

        self._session.execute(
            update(OperationType)
            .where(OperationType.id == operation_type_id)
            .values(sequence_next=OperationType.sequence_next + 1)
            .execution_options(synchronize_session=False)
        )
        number = self._session.scalar(
            select(OperationType.sequence_next).where(OperationType.id == operation_type_id)
        )
        reference = format_reference(sequence_code, number)
        logger.debug("reference_allocated", operation_type_id=operation_type_id, reference=reference)
        return reference

    def peek(self, operation_type_id: int) -> int:
        """Return the last number handed out for the type, without allocating."""

        number = self._session.scalar(
            select(OperationType.sequence_next).where(OperationType.id == operation_type_id)
        )
        if number is None:
            raise UnknownReferenceError("Operation type", operation_type_id)
        return number
