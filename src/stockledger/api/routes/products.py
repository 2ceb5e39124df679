from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ... import catalog
from ...dependencies import get_db
from ...ledger import StockLedger
from ...schemas import Message, ProductCreate, ProductRead, ProductStock, ProductUpdate

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=list[ProductStock])
def list_products(db: Session = Depends(get_db)) -> list[ProductStock]:
    return [
        ProductStock(
            **ProductRead.model_validate(item.product).model_dump(),
            on_hand=item.on_hand,
            free_to_use=item.free_to_use,
        )
        for item in StockLedger(db).product_stock()
    ]


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return catalog.create_product(db, payload)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return catalog.get_product(db, product_id)


@router.patch("/{product_id}", response_model=ProductRead)
def update_product(product_id: int, payload: ProductUpdate, db: Session = Depends(get_db)):
    return catalog.update_product(db, product_id, payload)


@router.delete("/{product_id}", response_model=Message)
def delete_product(product_id: int, db: Session = Depends(get_db)) -> Message:
    catalog.delete_product(db, product_id)
    return Message(message="Product deleted successfully")
