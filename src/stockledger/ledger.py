"""Ledger projection: stock figures derived by replaying committed moves.

No balance is stored anywhere. On-hand for a product at an internal
location is the sum of done moves arriving there minus the sum of done moves
leaving it; supplier and customer locations are virtual and never hold
stock. Reserved stock comes from moves that are not done yet and leave an
internal location under an operation in ``waiting`` or ``ready``; draft
operations reserve nothing.

A ``StockLedger`` reads the committed moves once and answers every query
from that snapshot. Create a new one to see later commits.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from .exceptions import LedgerIntegrityError
from .models import (
    Location,
    MoveStatus,
    OperationStatus,
    Product,
    StockMove,
    StockOperation,
)

ZERO_TOLERANCE = 1e-9

BalanceKey = Tuple[int, int]


def is_zero(quantity: float) -> bool:
    return abs(quantity) <= ZERO_TOLERANCE


@dataclass(frozen=True)
class StockLevel:
    product: Product
    location: Location
    quantity: float


@dataclass(frozen=True)
class ProductStock:
    product: Product
    on_hand: float
    reserved: float

    @property
    def free_to_use(self) -> float:
        """Free stock for display; never negative."""
        return max(0.0, self.on_hand - self.reserved)


def _check_resolved(move: StockMove) -> None:
    if move.product is None:
        raise LedgerIntegrityError(f"Stock move {move.id} references missing product {move.product_id}")
    if move.location_src is None:
        raise LedgerIntegrityError(
            f"Stock move {move.id} references missing source location {move.location_src_id}"
        )
    if move.location_dest is None:
        raise LedgerIntegrityError(
            f"Stock move {move.id} references missing destination location {move.location_dest_id}"
        )


def fold_balances(moves: Iterable[StockMove]) -> Dict[BalanceKey, float]:
    """Signed balance per (product, internal location) for the given done moves."""

    balances: Dict[BalanceKey, float] = defaultdict(float)
    for move in moves:
        if move.location_dest.is_internal:
            balances[(move.product_id, move.location_dest_id)] += move.quantity
        if move.location_src.is_internal:
            balances[(move.product_id, move.location_src_id)] -= move.quantity
    return balances


class StockLedger:
    def __init__(self, session: Session):
        self._session = session
        self._done: Optional[List[StockMove]] = None
        self._reserving: Optional[List[StockMove]] = None
        self._balances: Optional[Dict[BalanceKey, float]] = None

    # -- raw event access -----------------------------------------------------

    def done_moves(self) -> List[StockMove]:
        """Every committed move, newest first. Never compacted."""

        if self._done is None:
            statement = (
                select(StockMove)
                .where(StockMove.status == MoveStatus.DONE)
                .options(
                    joinedload(StockMove.product),
                    joinedload(StockMove.location_src),
                    joinedload(StockMove.location_dest),
                    joinedload(StockMove.operation).joinedload(StockOperation.operation_type),
                )
                .order_by(StockMove.done_at.desc(), StockMove.id.desc())
            )
            moves = list(self._session.scalars(statement).unique())
            for move in moves:
                _check_resolved(move)
            self._done = moves
        return self._done

    def reserving_moves(self) -> List[StockMove]:
        if self._reserving is None:
            statement = (
                select(StockMove)
                .join(StockMove.operation)
                .where(
                    StockMove.status != MoveStatus.DONE,
                    StockOperation.status.in_(OperationStatus.RESERVING),
                )
                .options(joinedload(StockMove.location_src), joinedload(StockMove.product))
            )
            moves = list(self._session.scalars(statement).unique())
            for move in moves:
                _check_resolved(move)
            self._reserving = [move for move in moves if move.location_src.is_internal]
        return self._reserving

    def balances(self) -> Dict[BalanceKey, float]:
        if self._balances is None:
            self._balances = dict(fold_balances(self.done_moves()))
        return self._balances

    # -- figures ----------------------------------------------------------------

    def on_hand(self, product_id: int, location_id: Optional[int] = None) -> float:
        total = 0.0
        for (balance_product, balance_location), quantity in self.balances().items():
            if balance_product != product_id:
                continue
            if location_id is not None and balance_location != location_id:
                continue
            total += quantity
        return total

    def reserved(
        self,
        product_id: int,
        location_id: Optional[int] = None,
        *,
        exclude_operation_id: Optional[int] = None,
    ) -> float:
        total = 0.0
        for move in self.reserving_moves():
            if move.product_id != product_id:
                continue
            if location_id is not None and move.location_src_id != location_id:
                continue
            if exclude_operation_id is not None and move.operation_id == exclude_operation_id:
                continue
            total += move.quantity
        return total

    def free_to_use(self, product_id: int, location_id: Optional[int] = None) -> float:
        """Signed on-hand minus reserved; callers clamp for display."""

        return self.on_hand(product_id, location_id) - self.reserved(product_id, location_id)

    def product_stock(self) -> List[ProductStock]:
        on_hand: Dict[int, float] = defaultdict(float)
        for (product_id, _), quantity in self.balances().items():
            on_hand[product_id] += quantity
        reserved: Dict[int, float] = defaultdict(float)
        for move in self.reserving_moves():
            reserved[move.product_id] += move.quantity

        products = self._session.scalars(
            select(Product).order_by(Product.created_at.desc(), Product.id.desc())
        )
        return [
            ProductStock(product=product, on_hand=on_hand[product.id], reserved=reserved[product.id])
            for product in products
        ]

    def stock_levels(self) -> List[StockLevel]:
        """Non-zero signed balances per (product, location)."""

        products: Dict[int, Product] = {}
        locations: Dict[int, Location] = {}
        for move in self.done_moves():
            products[move.product_id] = move.product
            locations[move.location_src_id] = move.location_src
            locations[move.location_dest_id] = move.location_dest

        levels = [
            StockLevel(product=products[product_id], location=locations[location_id], quantity=quantity)
            for (product_id, location_id), quantity in self.balances().items()
            if not is_zero(quantity)
        ]
        levels.sort(key=lambda level: (level.product.name, level.location.name, level.location.id))
        return levels

    def history(
        self, *, product_id: Optional[int] = None, location_id: Optional[int] = None
    ) -> List[StockMove]:
        moves = self.done_moves()
        if product_id is not None:
            moves = [move for move in moves if move.product_id == product_id]
        if location_id is not None:
            moves = [
                move
                for move in moves
                if location_id in (move.location_src_id, move.location_dest_id)
            ]
        return moves

    def stock_value(self) -> float:
        """Σ on-hand × cost over internal locations, floored at zero for display."""

        costs = {move.product_id: move.product.cost for move in self.done_moves()}
        value = sum(quantity * costs[product_id] for (product_id, _), quantity in self.balances().items())
        return max(0.0, value)
