"""Dashboard figures computed from real operation dates and stock, not fixed ratios."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from . import schemas
from .ledger import ZERO_TOLERANCE, StockLedger
from .models import OperationStatus, OperationType, Product, StockMove, StockOperation


def _is_short_of_stock(ledger: StockLedger, operation: StockOperation) -> bool:
    for move in operation.moves:
        if not move.location_src.is_internal:
            continue
        if ledger.reserved(move.product_id) > ledger.on_hand(move.product_id) + ZERO_TOLERANCE:
            return True
    return False


def dashboard_stats(db: Session, *, now: Optional[datetime] = None) -> schemas.DashboardStats:
    now = now or datetime.utcnow()
    ledger = StockLedger(db)

    pending = list(
        db.scalars(
            select(StockOperation)
            .where(StockOperation.status.in_(OperationStatus.PENDING))
            .options(selectinload(StockOperation.moves).joinedload(StockMove.location_src))
        )
    )

    pending_count: Dict[int, int] = defaultdict(int)
    late_count: Dict[int, int] = defaultdict(int)
    waiting_count: Dict[int, int] = defaultdict(int)
    for operation in pending:
        type_id = operation.operation_type_id
        pending_count[type_id] += 1
        if operation.scheduled_date is not None and operation.scheduled_date < now:
            late_count[type_id] += 1
        if operation.status == OperationStatus.WAITING or _is_short_of_stock(ledger, operation):
            waiting_count[type_id] += 1

    operation_types = db.scalars(select(OperationType).order_by(OperationType.id))
    return schemas.DashboardStats(
        product_count=db.scalar(select(func.count()).select_from(Product)) or 0,
        operation_count=db.scalar(select(func.count()).select_from(StockOperation)) or 0,
        pending_operations=len(pending),
        total_value=ledger.stock_value(),
        operation_types=[
            schemas.OperationTypeStats(
                id=operation_type.id,
                name=operation_type.name,
                type=operation_type.type,
                sequence_code=operation_type.sequence_code,
                pending_count=pending_count[operation_type.id],
                late_count=late_count[operation_type.id],
                waiting_count=waiting_count[operation_type.id],
            )
            for operation_type in operation_types
        ],
    )
