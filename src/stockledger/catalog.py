"""Product catalog and operation type reference data."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .exceptions import ConflictError, IntegrityError, NotFoundError, ValidationError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_OPERATION_TYPES = (
    {"name": "Receipts", "type": models.OperationKind.RECEIPT, "sequence_code": "WH/IN"},
    {"name": "Deliveries", "type": models.OperationKind.DELIVERY, "sequence_code": "WH/OUT"},
    {"name": "Internal Transfers", "type": models.OperationKind.INTERNAL, "sequence_code": "WH/INT"},
)


def _check_amounts(cost: Optional[float], price: Optional[float]) -> None:
    for label, amount in (("cost", cost), ("price", price)):
        if amount is None:
            continue
        if not math.isfinite(amount):
            raise ValidationError(f"Product {label} must be a finite number")
        if amount < 0:
            raise ValidationError(f"Product {label} cannot be negative")


def _sku_taken(db: Session, sku: str, *, exclude_id: Optional[int] = None) -> bool:
    statement = select(models.Product.id).where(models.Product.sku == sku)
    if exclude_id is not None:
        statement = statement.where(models.Product.id != exclude_id)
    return db.scalar(statement) is not None


def list_products(db: Session) -> list[models.Product]:
    statement = select(models.Product).order_by(models.Product.created_at.desc(), models.Product.id.desc())
    return list(db.scalars(statement))


def get_product(db: Session, product_id: int) -> models.Product:
    product = db.get(models.Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def create_product(db: Session, payload: schemas.ProductCreate) -> models.Product:
    _check_amounts(payload.cost, payload.price)
    if _sku_taken(db, payload.sku):
        raise ConflictError(f"Product with SKU '{payload.sku}' already exists")

    product = models.Product(**payload.model_dump())
    db.add(product)
    try:
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Product with SKU '{payload.sku}' already exists") from exc
    db.refresh(product)
    logger.info("product_created", product_id=product.id, sku=product.sku)
    return product


def update_product(db: Session, product_id: int, payload: schemas.ProductUpdate) -> models.Product:
    product = get_product(db, product_id)
    update_data = payload.model_dump(exclude_unset=True)
    _check_amounts(update_data.get("cost"), update_data.get("price"))
    for key in ("name", "sku", "cost", "price"):
        if key in update_data and update_data[key] is None:
            raise ValidationError(f"Product {key} cannot be null")

    new_sku = update_data.get("sku")
    if new_sku and new_sku != product.sku and _sku_taken(db, new_sku, exclude_id=product.id):
        raise ConflictError(f"Product with SKU '{new_sku}' already exists")

    for key, value in update_data.items():
        setattr(product, key, value)
    product.updated_at = datetime.utcnow()
    db.add(product)
    try:
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Product with SKU '{new_sku}' already exists") from exc
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> None:
    """Delete a product nobody references; moves pointing at it block the delete."""

    product = get_product(db, product_id)
    referenced = db.scalar(select(exists().where(models.StockMove.product_id == product_id)))
    if referenced:
        logger.warning("product_delete_blocked", product_id=product_id)
        raise IntegrityError(f"Product {product_id} is referenced by stock moves and cannot be deleted")

    db.delete(product)
    try:
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise IntegrityError(f"Product {product_id} is referenced and cannot be deleted") from exc
    logger.info("product_deleted", product_id=product_id)


# -- operation types ---------------------------------------------------------


def list_operation_types(db: Session) -> list[models.OperationType]:
    return list(db.scalars(select(models.OperationType).order_by(models.OperationType.id)))


def get_operation_type(db: Session, operation_type_id: int) -> models.OperationType:
    operation_type = db.get(models.OperationType, operation_type_id)
    if operation_type is None:
        raise NotFoundError("Operation type", operation_type_id)
    return operation_type


def create_operation_type(db: Session, payload: schemas.OperationTypeCreate) -> models.OperationType:
    if payload.type not in models.OperationKind.ALL:
        raise ValidationError(
            f"Unknown operation type '{payload.type}', expected one of {', '.join(models.OperationKind.ALL)}"
        )
    operation_type = models.OperationType(
        name=payload.name, type=payload.type, sequence_code=payload.sequence_code, sequence_next=0
    )
    db.add(operation_type)
    try:
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Sequence code '{payload.sequence_code}' already exists") from exc
    db.refresh(operation_type)
    return operation_type


def ensure_default_operation_types(db: Session) -> list[models.OperationType]:
    """Create the receipt/delivery/internal types that are missing. Idempotent."""

    created = []
    for definition in DEFAULT_OPERATION_TYPES:
        existing = db.scalar(
            select(models.OperationType).where(
                models.OperationType.sequence_code == definition["sequence_code"]
            )
        )
        if existing is None:
            operation_type = models.OperationType(**definition, sequence_next=0)
            db.add(operation_type)
            created.append(operation_type)
    db.commit()
    return created
