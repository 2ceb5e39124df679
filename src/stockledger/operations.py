"""Stock operation lifecycle.

An operation is created in ``draft`` with all of its moves in one commit.
``confirm`` moves a draft to ``ready`` when every move leaving an internal
location is covered by free stock there, otherwise to ``waiting``;
``check_availability`` re-evaluates waiting and ready operations.
``validate`` flips the moves and then the operation to ``done`` in a single
transaction. ``cancel`` ends any operation that is not done. Done and
canceled operations are immutable.

Every public function either commits its whole write set or rolls it back
before the exception leaves.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Sequence, Tuple

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from . import schemas
from .config import NegativeStockPolicy
from .exceptions import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    UnknownReferenceError,
    ValidationError,
)
from .ledger import ZERO_TOLERANCE, StockLedger, fold_balances
from .logging_config import get_logger
from .models import (
    Location,
    MoveStatus,
    OperationStatus,
    Product,
    StockMove,
    StockOperation,
)
from .sequencer import ReferenceSequencer

logger = get_logger(__name__)


# -- loading -------------------------------------------------------------------


def _detail_options():
    return (
        joinedload(StockOperation.operation_type),
        selectinload(StockOperation.moves).options(
            joinedload(StockMove.product),
            joinedload(StockMove.location_src),
            joinedload(StockMove.location_dest),
        ),
    )


def get_operation(db: Session, operation_id: int) -> StockOperation:
    """Operation with its moves, products and locations resolved."""

    statement = (
        select(StockOperation)
        .where(StockOperation.id == operation_id)
        .options(*_detail_options())
        .execution_options(populate_existing=True)
    )
    operation = db.scalars(statement).first()
    if operation is None:
        raise NotFoundError("Operation", operation_id)
    return operation


def list_operations(db: Session) -> List[StockOperation]:
    statement = (
        select(StockOperation)
        .options(
            joinedload(StockOperation.operation_type),
            selectinload(StockOperation.moves).joinedload(StockMove.product),
        )
        .order_by(StockOperation.created_at.desc(), StockOperation.id.desc())
    )
    return list(db.scalars(statement))


# -- move validation -------------------------------------------------------------


def _check_moves(db: Session, moves: Sequence[schemas.MoveCreate]) -> None:
    if not moves:
        raise ValidationError("An operation needs at least one move")

    product_ids = set()
    location_ids = set()
    for index, move in enumerate(moves):
        if move.quantity is None or not math.isfinite(move.quantity):
            raise ValidationError(f"Move {index}: quantity must be a finite number")
        if move.quantity <= 0:
            raise ValidationError(f"Move {index}: quantity must be greater than zero")
        if move.location_src_id == move.location_dest_id:
            raise ValidationError(f"Move {index}: source and destination locations must differ")
        product_ids.add(move.product_id)
        location_ids.update((move.location_src_id, move.location_dest_id))

    missing = product_ids - set(db.scalars(select(Product.id).where(Product.id.in_(product_ids))))
    if missing:
        raise UnknownReferenceError("Product", min(missing))
    missing = location_ids - set(db.scalars(select(Location.id).where(Location.id.in_(location_ids))))
    if missing:
        raise UnknownReferenceError("Location", min(missing))


def _build_moves(moves: Iterable[schemas.MoveCreate]) -> List[StockMove]:
    return [
        StockMove(
            position=position,
            product_id=move.product_id,
            quantity=move.quantity,
            location_src_id=move.location_src_id,
            location_dest_id=move.location_dest_id,
            status=MoveStatus.DRAFT,
        )
        for position, move in enumerate(moves)
    ]


def _ensure_editable(operation: StockOperation, action: str) -> None:
    if operation.status in (OperationStatus.DONE, OperationStatus.CANCELED):
        logger.warning(
            "operation_immutable", operation_id=operation.id, status=operation.status, action=action
        )
        raise ConflictError(f"Cannot {action} operation {operation.reference}: it is {operation.status}")


# -- create / edit / delete --------------------------------------------------------


def create_operation(db: Session, payload: schemas.OperationCreate) -> StockOperation:
    """Persist a draft operation and its moves atomically, stamped with a fresh reference."""

    try:
        _check_moves(db, payload.moves)
        reference = ReferenceSequencer(db).next_reference(payload.operation_type_id)
        operation = StockOperation(
            reference=reference,
            operation_type_id=payload.operation_type_id,
            contact=payload.contact,
            scheduled_date=payload.scheduled_date,
            status=OperationStatus.DRAFT,
            moves=_build_moves(payload.moves),
        )
        db.add(operation)
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Could not create operation: {exc.orig}") from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        "operation_created",
        operation_id=operation.id,
        reference=operation.reference,
        operation_type_id=operation.operation_type_id,
        moves=len(payload.moves),
    )
    return get_operation(db, operation.id)


def update_operation(db: Session, operation_id: int, payload: schemas.OperationUpdate) -> StockOperation:
    """Edit a draft: contact, scheduled date, or the full move list."""

    try:
        operation = get_operation(db, operation_id)
        if operation.status != OperationStatus.DRAFT:
            _ensure_editable(operation, "edit")
            raise ConflictError(
                f"Cannot edit operation {operation.reference}: only draft operations can be edited"
            )

        update_data = payload.model_dump(exclude_unset=True, exclude={"moves"})
        for key, value in update_data.items():
            setattr(operation, key, value)

        if payload.moves is not None:
            _check_moves(db, payload.moves)
            db.execute(delete(StockMove).where(StockMove.operation_id == operation.id))
            db.expire(operation, ["moves"])
            operation.moves.extend(_build_moves(payload.moves))

        operation.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise
    return get_operation(db, operation_id)


def delete_operation(db: Session, operation_id: int) -> None:
    """Remove a draft or canceled operation with its moves. Its reference number stays consumed."""

    operation = get_operation(db, operation_id)
    if operation.status not in (OperationStatus.DRAFT, OperationStatus.CANCELED):
        raise ConflictError(
            f"Cannot delete operation {operation.reference}: it is {operation.status}"
        )
    try:
        db.delete(operation)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("operation_deleted", operation_id=operation_id, reference=operation.reference)


# -- availability -------------------------------------------------------------------


def _requirements(operation: StockOperation) -> Dict[Tuple[int, int], float]:
    """Quantity each (product, internal source location) must supply."""

    required: Dict[Tuple[int, int], float] = defaultdict(float)
    for move in operation.moves:
        if move.location_src.is_internal:
            required[(move.product_id, move.location_src_id)] += move.quantity
    return required


def is_available(ledger: StockLedger, operation: StockOperation) -> bool:
    """True when free stock at every internal source covers the operation's moves."""

    for (product_id, location_id), quantity in _requirements(operation).items():
        available = ledger.on_hand(product_id, location_id) - ledger.reserved(
            product_id, location_id, exclude_operation_id=operation.id
        )
        if available + ZERO_TOLERANCE < quantity:
            return False
    return True


def _set_status(db: Session, operation: StockOperation, status: str) -> None:
    operation.status = status
    operation.updated_at = datetime.utcnow()
    db.commit()


def confirm_operation(db: Session, operation_id: int) -> StockOperation:
    """Mark a draft as to-do: ``ready`` if stock is available, else ``waiting``."""

    try:
        operation = get_operation(db, operation_id)
        _ensure_editable(operation, "confirm")
        if operation.status != OperationStatus.DRAFT:
            raise ConflictError(
                f"Cannot confirm operation {operation.reference}: it is already {operation.status}"
            )
        status = OperationStatus.READY if is_available(StockLedger(db), operation) else OperationStatus.WAITING
        _set_status(db, operation, status)
    except Exception:
        db.rollback()
        raise
    logger.info("operation_confirmed", operation_id=operation_id, status=status)
    return get_operation(db, operation_id)


def check_availability(db: Session, operation_id: int) -> StockOperation:
    """Re-evaluate a waiting or ready operation against current stock."""

    try:
        operation = get_operation(db, operation_id)
        _ensure_editable(operation, "check availability of")
        if operation.status not in OperationStatus.RESERVING:
            raise ConflictError(
                f"Operation {operation.reference} must be confirmed before checking availability"
            )
        status = OperationStatus.READY if is_available(StockLedger(db), operation) else OperationStatus.WAITING
        if status != operation.status:
            _set_status(db, operation, status)
            logger.info("operation_availability_changed", operation_id=operation_id, status=status)
    except Exception:
        db.rollback()
        raise
    return get_operation(db, operation_id)


def cancel_operation(db: Session, operation_id: int) -> StockOperation:
    try:
        operation = get_operation(db, operation_id)
        _ensure_editable(operation, "cancel")
        db.execute(
            update(StockMove)
            .where(StockMove.operation_id == operation.id)
            .values(status=MoveStatus.CANCELED)
            .execution_options(synchronize_session=False)
        )
        _set_status(db, operation, OperationStatus.CANCELED)
    except Exception:
        db.rollback()
        raise
    db.expire_all()
    logger.info("operation_canceled", operation_id=operation_id)
    return get_operation(db, operation_id)


# -- validate -------------------------------------------------------------------------


def _ensure_stock_covers(ledger: StockLedger, operation: StockOperation) -> None:
    for (product_id, location_id), net in fold_balances(operation.moves).items():
        if net >= 0:
            continue
        projected = ledger.on_hand(product_id, location_id) + net
        if projected < -ZERO_TOLERANCE:
            logger.warning(
                "validate_rejected_insufficient_stock",
                operation_id=operation.id,
                product_id=product_id,
                location_id=location_id,
                projected=projected,
            )
            raise InsufficientStockError(product_id, location_id, projected)


def _mark_moves_done(db: Session, operation: StockOperation, now: datetime) -> None:
    db.execute(
        update(StockMove)
        .where(StockMove.operation_id == operation.id)
        .values(status=MoveStatus.DONE, done_at=now)
        .execution_options(synchronize_session=False)
    )


def _mark_operation_done(db: Session, operation: StockOperation, now: datetime) -> None:
    result = db.execute(
        update(StockOperation)
        .where(
            StockOperation.id == operation.id,
            StockOperation.status.in_(OperationStatus.PENDING),
        )
        .values(status=OperationStatus.DONE, done_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(f"Operation {operation.reference} was validated concurrently")


def validate_operation(
    db: Session,
    operation_id: int,
    *,
    negative_stock_policy: NegativeStockPolicy = "allow",
) -> StockOperation:
    """Commit every move of the operation, then the operation itself, as one transaction.

    Re-validating a done operation is a conflict, not a no-op. With the
    ``reject`` policy, an operation that would take an internal location below
    zero is refused.
    """

    try:
        operation = get_operation(db, operation_id)
        if operation.status == OperationStatus.DONE:
            logger.warning("operation_already_done", operation_id=operation_id)
            raise ConflictError(f"Operation {operation.reference} is already done")
        _ensure_editable(operation, "validate")
        if negative_stock_policy == "reject":
            _ensure_stock_covers(StockLedger(db), operation)

        now = datetime.utcnow()
        _mark_moves_done(db, operation, now)
        _mark_operation_done(db, operation, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    operation = get_operation(db, operation_id)
    logger.info("operation_validated", operation_id=operation_id, reference=operation.reference)
    return operation
