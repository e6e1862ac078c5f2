"""Error taxonomy for order, menu and inventory operations.

Every failure the services can report is identified by an OrderErrorCode.
Services raise OrderServiceError subclasses internally and hand an OrderError
value to their callers, so the API layer only ever switches on the code.
"""

from dataclasses import dataclass, field
from enum import Enum


class OrderErrorCode(str, Enum):
    """Closed set of failure kinds exposed by the services."""

    VALIDATION_FAILED = "validation_failed"
    UNKNOWN_MENU_ITEM = "unknown_menu_item"
    UNKNOWN_INVENTORY_ITEM = "unknown_inventory_item"
    INSUFFICIENT_STOCK = "insufficient_stock"
    DUPLICATE_ORDER = "duplicate_order"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"


@dataclass
class OrderError:
    """Failure reported by a service operation.

    Attributes:
        code: Discriminant of the failure
        message: Human-readable description
        field_errors: Field path to problem mapping for validation failures
    """

    code: OrderErrorCode
    message: str
    field_errors: dict[str, str] = field(default_factory=dict)


class OrderServiceError(Exception):
    """Base class for failures raised inside the service layer."""

    code = OrderErrorCode.INTERNAL_ERROR

    def to_error(self) -> OrderError:
        """Convert the exception into an OrderError value."""
        return OrderError(code=self.code, message=str(self))


class ValidationFailedError(OrderServiceError):
    """Submitted payload is missing fields or has invalid values."""

    code = OrderErrorCode.VALIDATION_FAILED

    def __init__(self, field_errors: dict[str, str]) -> None:
        super().__init__("Request validation failed")
        self.field_errors = field_errors

    def to_error(self) -> OrderError:
        return OrderError(code=self.code, message=str(self), field_errors=dict(self.field_errors))


class UnknownMenuItemError(OrderServiceError):
    """A line item references a menu item that does not exist."""

    code = OrderErrorCode.UNKNOWN_MENU_ITEM

    def __init__(self, menu_item_id: str) -> None:
        super().__init__(f"Menu item {menu_item_id} does not exist")
        self.menu_item_id = menu_item_id


class UnknownInventoryItemError(OrderServiceError):
    """A requirement or decrement references a missing inventory item."""

    code = OrderErrorCode.UNKNOWN_INVENTORY_ITEM

    def __init__(self, inventory_id: str) -> None:
        super().__init__(f"Inventory item {inventory_id} does not exist")
        self.inventory_id = inventory_id


class InsufficientStockError(OrderServiceError):
    """Decrementing an inventory item would drive its quantity negative."""

    code = OrderErrorCode.INSUFFICIENT_STOCK

    def __init__(self, inventory_id: str, requested: int, available: int | None = None) -> None:
        message = f"Insufficient stock for inventory item {inventory_id}: requested {requested}"
        if available is not None:
            message += f", available {available}"
        super().__init__(message)
        self.inventory_id = inventory_id
        self.requested = requested
        self.available = available


class DuplicateOrderError(OrderServiceError):
    """An order with the generated identifier already exists."""

    code = OrderErrorCode.DUPLICATE_ORDER

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order {order_id} already exists")
        self.order_id = order_id


class RecordNotFoundError(OrderServiceError):
    """The addressed record does not exist (or is not in a modifiable state)."""

    code = OrderErrorCode.NOT_FOUND

    def __init__(self, entity: str, record_id: str) -> None:
        super().__init__(f"{entity} {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class StorageError(OrderServiceError):
    """DynamoDB call failed for a reason other than a business rule."""

    code = OrderErrorCode.INTERNAL_ERROR


class TransactionConflictError(StorageError):
    """DynamoDB cancelled a transaction because of a concurrent writer."""


class OrderTimeoutError(OrderServiceError):
    """Placement exceeded its deadline before commit."""

    code = OrderErrorCode.INTERNAL_ERROR
