from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ... import catalog, locations
from ...dependencies import get_db
from ...ledger import StockLedger
from ...schemas import LedgerEntry, LocationSummary, OnHand, ProductRead, StockLevel

router = APIRouter(prefix="/reporting", tags=["reporting"])


@router.get("/ledger", response_model=list[LedgerEntry])
def get_stock_ledger(
    product_id: Optional[int] = None,
    location_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return StockLedger(db).history(product_id=product_id, location_id=location_id)


@router.get("/stock-levels", response_model=list[StockLevel])
def get_stock_levels(db: Session = Depends(get_db)) -> list[StockLevel]:
    return [
        StockLevel(
            product=ProductRead.model_validate(level.product),
            location=LocationSummary.model_validate(level.location),
            quantity=level.quantity,
        )
        for level in StockLedger(db).stock_levels()
    ]


@router.get("/on-hand/{product_id}", response_model=OnHand)
def get_on_hand(
    product_id: int,
    location_id: Optional[int] = None,
    db: Session = Depends(get_db),
) -> OnHand:
    catalog.get_product(db, product_id)
    if location_id is not None:
        locations.get_location(db, location_id)
    ledger = StockLedger(db)
    on_hand = ledger.on_hand(product_id, location_id)
    reserved = ledger.reserved(product_id, location_id)
    return OnHand(
        product_id=product_id,
        location_id=location_id,
        on_hand=on_hand,
        reserved=reserved,
        free_to_use=max(0.0, on_hand - reserved),
    )
