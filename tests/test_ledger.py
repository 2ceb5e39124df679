import pytest
from sqlalchemy import text

from stockledger import models, operations, schemas
from stockledger.exceptions import LedgerIntegrityError
from stockledger.ledger import StockLedger, fold_balances


def _commit(world, payload) -> models.StockOperation:
    created = operations.create_operation(world.db, payload)
    return operations.validate_operation(world.db, created.id)


def test_receipt_then_delivery(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 10))
    assert StockLedger(world.db).on_hand(product.id) == 10

    _commit(world, world.delivery(product, 4))
    assert StockLedger(world.db).on_hand(product.id) == 6


def test_draft_operations_do_not_change_on_hand(world) -> None:
    product = world.product("SKU-1")
    operations.create_operation(world.db, world.receipt(product, 10))
    assert StockLedger(world.db).on_hand(product.id) == 0


def test_internal_transfer_keeps_total_and_shifts_locations(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 10))
    _commit(world, world.transfer(product, 3, world.stock, world.output))

    ledger = StockLedger(world.db)
    assert ledger.on_hand(product.id) == 10
    assert ledger.on_hand(product.id, world.stock.id) == 7
    assert ledger.on_hand(product.id, world.output.id) == 3

    levels = {(level.product.id, level.location.id): level.quantity for level in ledger.stock_levels()}
    assert levels == {(product.id, world.stock.id): 7, (product.id, world.output.id): 3}


def test_stock_levels_omit_zero_balances(world) -> None:
    product = world.product("SKU-1")
    other = world.product("SKU-2")
    _commit(world, world.receipt(product, 5))
    _commit(world, world.delivery(product, 5))
    _commit(world, world.receipt(other, 1, dest=world.input))

    levels = StockLedger(world.db).stock_levels()

    assert [(level.product.sku, level.location.name, level.quantity) for level in levels] == [
        ("SKU-2", "Input", 1)
    ]


def test_stock_levels_keep_negative_balances(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.delivery(product, 2))

    levels = StockLedger(world.db).stock_levels()

    assert [(level.location.name, level.quantity) for level in levels] == [("Stock", -2)]


def test_boundary_locations_never_hold_stock(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 5))

    ledger = StockLedger(world.db)
    assert ledger.on_hand(product.id, world.vendors.id) == 0
    assert all(level.location.type == "internal" for level in ledger.stock_levels())


def test_reserved_only_counts_waiting_and_ready_operations(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 10))
    draft = operations.create_operation(world.db, world.delivery(product, 3))

    ledger = StockLedger(world.db)
    assert ledger.reserved(product.id) == 0
    assert ledger.free_to_use(product.id) == 10

    operations.confirm_operation(world.db, draft.id)
    ledger = StockLedger(world.db)
    assert ledger.reserved(product.id) == 3
    assert ledger.free_to_use(product.id) == 7
    assert ledger.on_hand(product.id) == 10


def test_reserved_ignores_inbound_moves(world) -> None:
    product = world.product("SKU-1")
    receipt = operations.create_operation(world.db, world.receipt(product, 10))
    operations.confirm_operation(world.db, receipt.id)

    assert StockLedger(world.db).reserved(product.id) == 0


def test_validated_and_canceled_operations_release_reservation(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 10))
    first = operations.create_operation(world.db, world.delivery(product, 3))
    second = operations.create_operation(world.db, world.delivery(product, 2))
    operations.confirm_operation(world.db, first.id)
    operations.confirm_operation(world.db, second.id)
    assert StockLedger(world.db).reserved(product.id) == 5

    operations.validate_operation(world.db, first.id)
    operations.cancel_operation(world.db, second.id)

    ledger = StockLedger(world.db)
    assert ledger.reserved(product.id) == 0
    assert ledger.on_hand(product.id) == 7


def test_product_stock_clamps_free_to_use(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 2))
    delivery = operations.create_operation(world.db, world.delivery(product, 5))
    operations.confirm_operation(world.db, delivery.id)

    (row,) = StockLedger(world.db).product_stock()

    assert row.on_hand == 2
    assert row.reserved == 5
    assert row.free_to_use == 0


def test_history_is_complete_and_newest_first(world) -> None:
    product = world.product("SKU-1")
    receipt = _commit(world, world.receipt(product, 10))
    transfer = _commit(world, world.transfer(product, 3, world.stock, world.output))
    delivery = _commit(world, world.delivery(product, 1, src=world.output))
    operations.create_operation(world.db, world.delivery(product, 1))

    history = StockLedger(world.db).history()

    assert [move.operation.reference for move in history] == [
        delivery.reference,
        transfer.reference,
        receipt.reference,
    ]
    assert history[0].operation.operation_type.sequence_code == "WH/OUT"
    assert history[0].location_src.name == "Output"

    by_location = StockLedger(world.db).history(location_id=world.output.id)
    assert [move.operation_id for move in by_location] == [delivery.id, transfer.id]


def test_receipt_scenario_only_counts_validated_receipt(world) -> None:
    product = world.product("SKU-1")
    receipts = [
        operations.create_operation(
            world.db,
            schemas.OperationCreate(
                operation_type_id=world.receipt_type.id,
                moves=[world.move(product, quantity, world.vendors, world.stock)],
            ),
        )
        for quantity in (1, 2, 3)
    ]
    assert [op.reference for op in receipts] == ["WH/IN/00001", "WH/IN/00002", "WH/IN/00003"]

    operations.validate_operation(world.db, receipts[1].id)

    ledger = StockLedger(world.db)
    assert ledger.on_hand(product.id) == 2
    history = ledger.history()
    assert len(history) == 1
    assert history[0].operation.reference == "WH/IN/00002"


def test_stock_value_uses_product_cost(world) -> None:
    laptop = world.product("LAP-001", cost=800)
    mouse = world.product("MOU-003", cost=20)
    _commit(world, world.receipt(laptop, 2))
    _commit(world, world.receipt(mouse, 10))
    _commit(world, world.delivery(mouse, 4))

    assert StockLedger(world.db).stock_value() == 2 * 800 + 6 * 20


def test_fractional_quantities_net_to_zero(world) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 0.1))
    _commit(world, world.receipt(product, 0.2))
    _commit(world, world.delivery(product, 0.3))

    assert StockLedger(world.db).stock_levels() == []


def test_fold_balances_applies_both_sides() -> None:
    internal_a = models.Location(id=1, name="A", type="internal")
    internal_b = models.Location(id=2, name="B", type="internal")
    customer = models.Location(id=3, name="C", type="customer")
    moves = [
        models.StockMove(
            product_id=7, quantity=5, location_src_id=1, location_dest_id=2,
            location_src=internal_a, location_dest=internal_b,
        ),
        models.StockMove(
            product_id=7, quantity=2, location_src_id=2, location_dest_id=3,
            location_src=internal_b, location_dest=customer,
        ),
    ]

    assert dict(fold_balances(moves)) == {(7, 1): -5, (7, 2): 3}


def test_move_with_deleted_product_is_an_integrity_error(world, database) -> None:
    product = world.product("SKU-1")
    _commit(world, world.receipt(product, 1))
    product_id = product.id
    world.db.close()

    with database.engine.connect() as connection:
        connection.exec_driver_sql("PRAGMA foreign_keys=OFF")
        connection.execute(text("DELETE FROM products WHERE id = :id"), {"id": product_id})
        connection.commit()

    with database.session() as session:
        with pytest.raises(LedgerIntegrityError):
            StockLedger(session).stock_levels()
