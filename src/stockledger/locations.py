"""Warehouses and the location graph."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Session, selectinload

from . import models, schemas
from .exceptions import ConflictError, NotFoundError, UnknownReferenceError, ValidationError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_WAREHOUSE_LOCATIONS = ("Stock", "Input", "Output")


def list_warehouses(db: Session) -> list[models.Warehouse]:
    statement = (
        select(models.Warehouse)
        .options(selectinload(models.Warehouse.locations))
        .order_by(models.Warehouse.id)
    )
    return list(db.scalars(statement))


def get_warehouse(db: Session, warehouse_id: int) -> models.Warehouse:
    warehouse = db.get(models.Warehouse, warehouse_id, options=[selectinload(models.Warehouse.locations)])
    if warehouse is None:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


def create_warehouse(db: Session, payload: schemas.WarehouseCreate) -> models.Warehouse:
    """Create a warehouse together with its Stock/Input/Output internal locations."""

    warehouse = models.Warehouse(name=payload.name, short_code=payload.short_code)
    warehouse.locations = [
        models.Location(name=name, type=models.LocationType.INTERNAL)
        for name in DEFAULT_WAREHOUSE_LOCATIONS
    ]
    db.add(warehouse)
    try:
        db.commit()
    except DBIntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Warehouse short code '{payload.short_code}' already exists") from exc
    db.refresh(warehouse)
    logger.info("warehouse_created", warehouse_id=warehouse.id, short_code=warehouse.short_code)
    return get_warehouse(db, warehouse.id)


def list_locations(db: Session) -> list[models.Location]:
    statement = (
        select(models.Location)
        .options(selectinload(models.Location.warehouse))
        .order_by(models.Location.id)
    )
    return list(db.scalars(statement))


def get_location(db: Session, location_id: int) -> models.Location:
    location = db.get(models.Location, location_id)
    if location is None:
        raise NotFoundError("Location", location_id)
    return location


def create_location(db: Session, payload: schemas.LocationCreate) -> models.Location:
    if payload.type not in models.LocationType.ALL:
        raise ValidationError(
            f"Unknown location type '{payload.type}', expected one of {', '.join(models.LocationType.ALL)}"
        )
    if payload.warehouse_id is not None and db.get(models.Warehouse, payload.warehouse_id) is None:
        raise UnknownReferenceError("Warehouse", payload.warehouse_id)

    location = models.Location(name=payload.name, type=payload.type, warehouse_id=payload.warehouse_id)
    db.add(location)
    db.commit()
    db.refresh(location)
    return location
