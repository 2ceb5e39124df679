"""Demo and reference data."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from . import catalog, models
from .logging_config import get_logger

logger = get_logger(__name__)

DEMO_WAREHOUSE = {"name": "San Francisco Main", "short_code": "SF"}
DEMO_LOCATIONS = (
    ("Stock", models.LocationType.INTERNAL),
    ("Input", models.LocationType.INTERNAL),
    ("Output", models.LocationType.INTERNAL),
    ("Vendors", models.LocationType.SUPPLIER),
    ("Customers", models.LocationType.CUSTOMER),
)
DEMO_PRODUCTS = (
    {"name": "Gaming Laptop", "sku": "LAP-001", "category": "Electronics", "cost": 800, "price": 1200, "barcode": "123456789"},
    {"name": "Mechanical Keyboard", "sku": "KEY-002", "category": "Accessories", "cost": 50, "price": 100, "barcode": "987654321"},
    {"name": "Wireless Mouse", "sku": "MOU-003", "category": "Accessories", "cost": 20, "price": 45, "barcode": "456123789"},
    {"name": "4K Monitor", "sku": "MON-004", "category": "Electronics", "cost": 200, "price": 350, "barcode": "789123456"},
)


def seed_demo_data(db: Session) -> None:
    """Insert the demo warehouse, operation types and products that are missing. Idempotent."""

    warehouse = db.scalar(
        select(models.Warehouse).where(models.Warehouse.short_code == DEMO_WAREHOUSE["short_code"])
    )
    if warehouse is None:
        warehouse = models.Warehouse(**DEMO_WAREHOUSE)
        warehouse.locations = [
            models.Location(name=name, type=location_type) for name, location_type in DEMO_LOCATIONS
        ]
        db.add(warehouse)
        logger.info("seed_warehouse_created", short_code=warehouse.short_code)

    for definition in DEMO_PRODUCTS:
        if db.scalar(select(models.Product.id).where(models.Product.sku == definition["sku"])) is None:
            db.add(models.Product(**definition))
    db.commit()

    catalog.ensure_default_operation_types(db)
    logger.info("seed_complete")
