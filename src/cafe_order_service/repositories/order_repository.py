"""DynamoDB repository for orders and their line items.

Order rows and line item rows live in two tables. Every write that touches both
is staged on a DynamoTransaction so the order and its line items are created,
replaced and deleted together.
"""

import logging
from typing import Any

from boto3.dynamodb.conditions import Key
from mypy_boto3_dynamodb.client import DynamoDBClient
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

from cafe_order_service.models.errors import (
    DuplicateOrderError,
    RecordNotFoundError,
    StorageError,
)
from cafe_order_service.models.order_models import (
    Order,
    OrderLineItem,
    OrderStatus,
    preferences_to_dynamodb,
)
from cafe_order_service.repositories.transaction import (
    DYNAMODB_ERRORS,
    ActionKind,
    DynamoTransaction,
    is_condition_failure,
)

logger = logging.getLogger(__name__)


class OrderRepository:
    """Repository for order and line item operations.

    Orders use order_id as partition key. Line items use (order_id, menu_item_id)
    as composite key, which also enforces one line per menu item per order.
    Reads run on batch worker threads, so they use the thread-safe client.
    """

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        orders_table_name: str,
        order_items_table_name: str,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            orders_table_name: Name of the orders table
            order_items_table_name: Name of the order line items table
        """
        self.orders_table_name = orders_table_name
        self.order_items_table_name = order_items_table_name
        self.client: DynamoDBClient = dynamodb_resource.meta.client

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order with its line items.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.client.get_item(
                TableName=self.orders_table_name, Key={"order_id": order_id}, ConsistentRead=True
            )
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to get order {order_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to get order {order_id}") from e

        if "Item" not in response:
            return None

        return Order.from_dynamodb_item(response["Item"], self.get_line_items(order_id))

    def get_line_items(self, order_id: str) -> list[OrderLineItem]:
        """Retrieve all line items of an order.

        Args:
            order_id: Order identifier

        Returns:
            list: OrderLineItem objects (empty list if none)
        """
        items: list[OrderLineItem] = []
        query_kwargs: dict[str, Any] = {
            "TableName": self.order_items_table_name,
            "KeyConditionExpression": Key("order_id").eq(order_id),
            "ConsistentRead": True,
        }
        try:
            while True:
                response = self.client.query(**query_kwargs)
                items.extend(OrderLineItem.from_dynamodb_item(i) for i in response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                query_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to get line items for order {order_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to get line items for order {order_id}") from e

        return items

    def get_line_items_for_orders(self, order_ids: list[str]) -> dict[str, list[OrderLineItem]]:
        """Retrieve line items for several orders.

        Args:
            order_ids: Order identifiers

        Returns:
            dict: order_id to its line items
        """
        return {order_id: self.get_line_items(order_id) for order_id in dict.fromkeys(order_ids)}

    def list_orders(self) -> list[Order]:
        """List all orders with their line items, oldest first.

        Returns:
            list: Order objects (empty list if none)
        """
        order_rows = self._scan(self.orders_table_name, "orders")
        line_rows = self._scan(self.order_items_table_name, "order line items")

        lines_by_order: dict[str, list[OrderLineItem]] = {}
        for row in line_rows:
            lines_by_order.setdefault(row["order_id"], []).append(OrderLineItem.from_dynamodb_item(row))

        orders = [
            Order.from_dynamodb_item(row, lines_by_order.get(row["order_id"], []))
            for row in order_rows
        ]
        return sorted(orders, key=lambda o: o.created_at)

    def stage_create(self, tx: DynamoTransaction, order: Order) -> None:
        """Stage the insert of an order row and all of its line items.

        Args:
            tx: Transaction to stage the writes on
            order: Order to insert, line items included
        """
        tx.put(
            table_name=self.orders_table_name,
            item=order.to_dynamodb_item(),
            kind=ActionKind.ORDER,
            ref=order.order_id,
            condition="attribute_not_exists(order_id)",
            on_condition_failed=lambda _old: DuplicateOrderError(order.order_id),
        )
        for line in order.items:
            tx.put(
                table_name=self.order_items_table_name,
                item=line.to_dynamodb_item(order.order_id),
                kind=ActionKind.LINE_ITEM,
                ref=f"{order.order_id}/{line.menu_item_id}",
                condition="attribute_not_exists(order_id)",
                on_condition_failed=lambda _old: DuplicateOrderError(order.order_id),
            )

    def stage_replace(
        self, tx: DynamoTransaction, order: Order, previous_items: list[OrderLineItem]
    ) -> None:
        """Stage a full replacement of an open order's fields and line items.

        Line items that are not part of the new order are deleted; the rest are
        overwritten. created_at and status are left untouched.

        Args:
            tx: Transaction to stage the writes on
            order: Order carrying the new customer name, preferences and line items
            previous_items: Line items currently stored for the order
        """
        tx.update(
            table_name=self.orders_table_name,
            key={"order_id": order.order_id},
            update_expression=(
                "SET customer_name = :name, customer_preferences = :prefs, total_price = :total"
            ),
            kind=ActionKind.ORDER,
            ref=order.order_id,
            condition="attribute_exists(order_id) AND #status = :open",
            names={"#status": "status"},
            values={
                ":name": order.customer_name,
                ":prefs": preferences_to_dynamodb(order.customer_preferences),
                ":total": order.total_price,
                ":open": OrderStatus.OPEN.value,
            },
            on_condition_failed=lambda _old: RecordNotFoundError("Open order", order.order_id),
        )

        new_menu_ids = {line.menu_item_id for line in order.items}
        for line in previous_items:
            if line.menu_item_id not in new_menu_ids:
                tx.delete(
                    table_name=self.order_items_table_name,
                    key={"order_id": order.order_id, "menu_item_id": line.menu_item_id},
                    kind=ActionKind.LINE_ITEM,
                    ref=f"{order.order_id}/{line.menu_item_id}",
                )
        for line in order.items:
            tx.put(
                table_name=self.order_items_table_name,
                item=line.to_dynamodb_item(order.order_id),
                kind=ActionKind.LINE_ITEM,
                ref=f"{order.order_id}/{line.menu_item_id}",
            )

    def stage_delete(
        self, tx: DynamoTransaction, order_id: str, line_items: list[OrderLineItem]
    ) -> None:
        """Stage the removal of an order and its line items."""
        tx.delete(
            table_name=self.orders_table_name,
            key={"order_id": order_id},
            kind=ActionKind.ORDER,
            ref=order_id,
            condition="attribute_exists(order_id)",
            on_condition_failed=lambda _old: RecordNotFoundError("Order", order_id),
        )
        for line in line_items:
            tx.delete(
                table_name=self.order_items_table_name,
                key={"order_id": order_id, "menu_item_id": line.menu_item_id},
                kind=ActionKind.LINE_ITEM,
                ref=f"{order_id}/{line.menu_item_id}",
            )

    def close_order(self, order_id: str) -> None:
        """Set an order's status to closed.

        Closing an already closed order rewrites the same status and succeeds.

        Args:
            order_id: Order identifier

        Raises:
            RecordNotFoundError: If the order does not exist
        """
        try:
            self.client.update_item(
                TableName=self.orders_table_name,
                Key={"order_id": order_id},
                UpdateExpression="SET #status = :closed",
                ConditionExpression="attribute_exists(order_id)",
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues={":closed": OrderStatus.CLOSED.value},
            )
        except DYNAMODB_ERRORS as e:
            if is_condition_failure(e):
                raise RecordNotFoundError("Order", order_id) from e
            logger.error(f"Failed to close order {order_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to close order {order_id}") from e

    def _scan(self, table_name: str, label: str) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        scan_kwargs: dict[str, Any] = {}
        try:
            while True:
                response = self.client.scan(TableName=table_name, **scan_kwargs)
                rows.extend(response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to scan {label}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to scan {label}") from e
        return rows
