from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from stockledger import catalog, locations, models, schemas
from stockledger.app import create_app
from stockledger.config import Settings
from stockledger.database import Database


@pytest.fixture(name="database")
def database_fixture(tmp_path) -> Generator[Database, None, None]:
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture(name="db")
def db_fixture(database: Database) -> Generator[Session, None, None]:
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(name="settings")
def settings_fixture(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        cors_origins=[],
        seed_data=True,
        negative_stock_policy="allow",
    )


@pytest.fixture(name="client")
def client_fixture(settings: Settings, database: Database) -> Generator[TestClient, None, None]:
    app = create_app(settings, database)
    with TestClient(app) as client:
        yield client


class World:
    """Reference data most ledger tests need: one warehouse with boundary locations."""

    def __init__(self, db: Session) -> None:
        self.db = db
        warehouse = locations.create_warehouse(db, schemas.WarehouseCreate(name="Main", short_code="WH"))
        self.warehouse = warehouse
        self.stock, self.input, self.output = warehouse.locations
        self.vendors = locations.create_location(
            db, schemas.LocationCreate(name="Vendors", type=models.LocationType.SUPPLIER)
        )
        self.customers = locations.create_location(
            db, schemas.LocationCreate(name="Customers", type=models.LocationType.CUSTOMER)
        )
        catalog.ensure_default_operation_types(db)
        types = {t.sequence_code: t for t in catalog.list_operation_types(db)}
        self.receipt_type = types["WH/IN"]
        self.delivery_type = types["WH/OUT"]
        self.internal_type = types["WH/INT"]

    def product(self, sku: str, *, cost: float = 10.0, price: float = 15.0) -> models.Product:
        return catalog.create_product(
            self.db, schemas.ProductCreate(name=f"Product {sku}", sku=sku, cost=cost, price=price)
        )

    def move(self, product, quantity, src, dest) -> schemas.MoveCreate:
        return schemas.MoveCreate(
            product_id=product.id,
            quantity=quantity,
            location_src_id=src.id,
            location_dest_id=dest.id,
        )

    def receipt(self, product, quantity, dest=None, **extra) -> schemas.OperationCreate:
        return schemas.OperationCreate(
            operation_type_id=self.receipt_type.id,
            moves=[self.move(product, quantity, self.vendors, dest or self.stock)],
            **extra,
        )

    def delivery(self, product, quantity, src=None, **extra) -> schemas.OperationCreate:
        return schemas.OperationCreate(
            operation_type_id=self.delivery_type.id,
            moves=[self.move(product, quantity, src or self.stock, self.customers)],
            **extra,
        )

    def transfer(self, product, quantity, src, dest) -> schemas.OperationCreate:
        return schemas.OperationCreate(
            operation_type_id=self.internal_type.id,
            moves=[self.move(product, quantity, src, dest)],
        )


@pytest.fixture(name="world")
def world_fixture(db: Session) -> World:
    return World(db)
