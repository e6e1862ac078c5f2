"""Order, line item and batch processing models.

Orders are stored in DynamoDB with order_id as partition key. Line items live in
a separate table keyed by (order_id, menu_item_id) and are always written in the
same transaction as their order.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Open key-value bag for customer preferences (e.g. {"milk": "oat", "size": "L"})
CustomerPreferences = dict[str, Any]


def preferences_to_dynamodb(preferences: CustomerPreferences) -> dict[str, Any]:
    """Convert a preferences bag to DynamoDB-safe values.

    boto3 rejects float values, so floats are converted to Decimal.

    Args:
        preferences: Free-form preferences mapping

    Returns:
        dict: Mapping with floats replaced by Decimal
    """
    result: dict[str, Any] = json.loads(json.dumps(preferences), parse_float=Decimal)
    return result


def preferences_from_dynamodb(value: Any) -> Any:
    """Convert DynamoDB numbers inside a preferences bag back to int/float."""
    if isinstance(value, dict):
        return {k: preferences_from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [preferences_from_dynamodb(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


class OrderStatus(str, Enum):
    """Enumeration of order status values."""

    OPEN = "open"
    CLOSED = "closed"


class PlacementStage(str, Enum):
    """Stages of a single order placement attempt."""

    VALIDATING = "validating"
    CREATING = "creating"
    CONSUMING_INVENTORY = "consuming_inventory"
    COMMITTED = "committed"
    ABORTED = "aborted"


def _null_as_default(model: type[BaseModel], value: Any, info: ValidationInfo) -> Any:
    """Replace an explicit null with the field's default so the validator reports it."""
    if value is None and info.field_name is not None:
        return model.model_fields[info.field_name].get_default(call_default_factory=True)
    return value


class OrderLineItemRequest(BaseModel):
    """Line item as submitted by a client, checked by the order validator."""

    menu_item_id: str = ""
    quantity: int = 0

    @field_validator("menu_item_id", "quantity", mode="before")
    @classmethod
    def null_as_missing(cls, value: Any, info: ValidationInfo) -> Any:
        return _null_as_default(cls, value, info)


class OrderRequest(BaseModel):
    """Payload for placing or replacing an order.

    Null fields are read as missing, so a null customer name or item list is
    rejected by validate_order with a field error instead of failing parsing.
    """

    customer_name: str = ""
    customer_preferences: CustomerPreferences = Field(default_factory=dict)
    items: list[OrderLineItemRequest] = Field(default_factory=list)

    @field_validator("customer_name", "customer_preferences", "items", mode="before")
    @classmethod
    def null_as_missing(cls, value: Any, info: ValidationInfo) -> Any:
        if info.field_name == "items" and isinstance(value, list):
            return [OrderLineItemRequest() if line is None else line for line in value]
        return _null_as_default(cls, value, info)


class OrderLineItem(BaseModel):
    """One (menu item, quantity) pair of a stored order."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    menu_item_id: str = Field(..., description="Referenced menu item")
    quantity: int = Field(..., description="Units ordered", ge=1)
    unit_price: Decimal = Field(default=Decimal("0"), description="Menu price at order time", ge=0)

    def to_dynamodb_item(self, order_id: str) -> dict[str, Any]:
        """Convert to DynamoDB item format for the order items table.

        Args:
            order_id: Owning order identifier

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "order_id": order_id,
            "menu_item_id": self.menu_item_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderLineItem":
        """Create OrderLineItem from DynamoDB item."""
        return cls(
            menu_item_id=item["menu_item_id"],
            quantity=int(item["quantity"]),
            unit_price=Decimal(str(item.get("unit_price", "0"))),
        )


class Order(BaseModel):
    """Customer order with its line items."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    order_id: str = Field(..., description="Unique order identifier")
    customer_name: str = Field(..., description="Customer name", min_length=1)
    status: OrderStatus = Field(default=OrderStatus.OPEN, description="Order status")
    created_at: datetime = Field(..., description="Order creation timestamp")
    customer_preferences: CustomerPreferences = Field(
        default_factory=dict, description="Free-form customer preferences"
    )
    items: list[OrderLineItem] = Field(default_factory=list, description="Ordered line items")
    total_price: Decimal = Field(default=Decimal("0"), description="Sum of line totals", ge=0)

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert the order row (without line items) to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "order_id": self.order_id,
            "customer_name": self.customer_name,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "customer_preferences": preferences_to_dynamodb(self.customer_preferences),
            "total_price": self.total_price,
        }

    @classmethod
    def from_dynamodb_item(
        cls, item: dict[str, Any], line_items: list[OrderLineItem] | None = None
    ) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB order item dictionary
            line_items: Line items loaded from the order items table

        Returns:
            Order: Parsed model instance
        """
        return cls(
            order_id=item["order_id"],
            customer_name=item["customer_name"],
            status=OrderStatus(item["status"]),
            created_at=datetime.fromisoformat(item["created_at"]),
            customer_preferences=preferences_from_dynamodb(item.get("customer_preferences", {})),
            items=line_items or [],
            total_price=Decimal(str(item.get("total_price", "0"))),
        )


class BatchOrderStatus(str, Enum):
    """Per-order outcome inside a batch."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


class BatchRejectionReason(str, Enum):
    """Fixed set of reasons a batch order can be rejected for."""

    MISSING_FIELDS = "missing fields"
    UNKNOWN_MENU_ITEM = "menu item does not exist"
    INSUFFICIENT_INVENTORY = "insufficient inventory"
    INTERNAL_ERROR = "internal server error"


class BatchOrderRequest(BaseModel):
    """Payload for batch order processing."""

    orders: list[OrderRequest] = Field(default_factory=list)

    @field_validator("orders", mode="before")
    @classmethod
    def null_orders_as_empty(cls, value: Any) -> Any:
        # A null entry becomes an empty order that is rejected on its own
        if value is None:
            return []
        if isinstance(value, list):
            return [OrderRequest() if order is None else order for order in value]
        return value


class ProcessedOrder(BaseModel):
    """Outcome of one order inside a batch."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    order_id: str | None = None
    customer_name: str
    status: BatchOrderStatus
    reason: BatchRejectionReason | None = None
    total: Decimal | None = None


class BatchInventoryUpdate(BaseModel):
    """Aggregated consumption of one inventory item across a batch."""

    inventory_id: str
    name: str
    quantity_used: int
    remaining: int


class BatchSummary(BaseModel):
    """Totals across all orders of a batch."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    total_orders: int = 0
    accepted: int = 0
    rejected: int = 0
    total_revenue: Decimal = Decimal("0")
    inventory_updates: list[BatchInventoryUpdate] = Field(default_factory=list)


class BatchResult(BaseModel):
    """Batch processing response."""

    processed_orders: list[ProcessedOrder] = Field(default_factory=list)
    summary: BatchSummary = Field(default_factory=BatchSummary)
    inventory_error: str | None = Field(
        None, description="Set when the aggregated inventory view could not be computed"
    )
