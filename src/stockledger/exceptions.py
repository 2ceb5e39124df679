"""Typed failures raised by the ledger engine.

Every failure carries a machine-readable ``code`` and the HTTP status the
transport layer maps it to. Callers catch by type, never by message.

    StockLedgerError
    +-- ValidationError
    |   +-- UnknownReferenceError (also a NotFoundError)
    +-- NotFoundError
    +-- ConflictError
    |   +-- InsufficientStockError
    +-- IntegrityError
    +-- LedgerIntegrityError
"""

from __future__ import annotations


class StockLedgerError(Exception):
    """Base class for all engine failures."""

    code = "stock_ledger_error"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(StockLedgerError):
    """Malformed or missing input."""

    code = "validation_error"
    status_code = 422


class NotFoundError(StockLedgerError):
    """Unknown id for any entity."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class UnknownReferenceError(ValidationError, NotFoundError):
    """A payload names an id that does not exist."""

    code = "unknown_reference"
    status_code = 422

    def __init__(self, entity: str, entity_id: object) -> None:
        NotFoundError.__init__(self, entity, entity_id)


class ConflictError(StockLedgerError):
    """The request clashes with current state (duplicates, finished operations)."""

    code = "conflict"
    status_code = 409


class InsufficientStockError(ConflictError):
    """Validation would drive an internal location below zero."""

    code = "insufficient_stock"

    def __init__(self, product_id: int, location_id: int, balance: float) -> None:
        super().__init__(
            f"Product {product_id} would drop to {balance:g} at location {location_id}"
        )
        self.product_id = product_id
        self.location_id = location_id
        self.balance = balance


class IntegrityError(StockLedgerError):
    """A delete is blocked by existing references."""

    code = "integrity_error"
    status_code = 409


class LedgerIntegrityError(StockLedgerError):
    """A committed move points at a product or location that cannot be resolved."""

    code = "ledger_integrity_error"
    status_code = 500
