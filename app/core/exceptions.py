"""
Typed exceptions for stock control.

Every exception carries a machine-readable ``code`` and a human-readable
message. The API layer maps each class to an HTTP status and returns
``{"code": ..., "message": ...}`` so the front end can show the message in
its acknowledgment dialog.

    StockControlError
    +-- ValidationError
    +-- PermissionDeniedError
    +-- InsufficientStockError
    +-- NotFoundError
    +-- StoreError
"""

from typing import Optional


class StockControlError(Exception):
    """Base class for all stock control errors."""

    code: str = "STOCK_CONTROL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StockControlError):
    """Malformed or missing required input."""

    code = "VALIDATION_ERROR"


class PermissionDeniedError(StockControlError):
    """Role, activation or ownership violation."""

    code = "PERMISSION_DENIED"


class InsufficientStockError(StockControlError):
    """A movement would drive a product's quantity below zero."""

    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: int, requested: int, message: Optional[str] = None):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            message
            or f"Insufficient stock for product {product_id}: {available} available, {requested} requested"
        )


class NotFoundError(StockControlError):
    """A referenced product, entry, exit or profile does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class StoreError(StockControlError):
    """The underlying database call failed."""

    code = "STORE_ERROR"
