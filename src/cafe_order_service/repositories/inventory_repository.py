"""DynamoDB repository for inventory items.

Reads return None when a record does not exist. Writes that address a missing
record raise RecordNotFoundError, and DynamoDB failures are logged and raised
as StorageError so callers can tell "missing" apart from "store unavailable".
"""

import logging
from typing import Any

from mypy_boto3_dynamodb.client import DynamoDBClient
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

from cafe_order_service.models.errors import (
    InsufficientStockError,
    OrderServiceError,
    RecordNotFoundError,
    StorageError,
    UnknownInventoryItemError,
)
from cafe_order_service.models.inventory_models import InventoryItem
from cafe_order_service.repositories.transaction import (
    DYNAMODB_ERRORS,
    ActionKind,
    DynamoTransaction,
    is_condition_failure,
)

logger = logging.getLogger(__name__)

# BatchGetItem accepts at most this many keys per request
BATCH_GET_LIMIT = 100

DECREMENT_CONDITION = "attribute_exists(inventory_id) AND quantity >= :amount"


class InventoryRepository:
    """Repository for inventory items and their on-hand quantities.

    Manages inventory records in DynamoDB with inventory_id as partition key.
    Quantity never goes negative: every decrement is a conditional update.
    All calls go through the resource's low-level client, which unlike the
    resource itself may be shared by worker threads.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.client: DynamoDBClient = dynamodb_resource.meta.client

    def get_item(self, inventory_id: str) -> InventoryItem | None:
        """Retrieve an inventory item.

        Args:
            inventory_id: Inventory identifier

        Returns:
            InventoryItem if found, None otherwise
        """
        try:
            response = self.client.get_item(
                TableName=self.table_name,
                Key={"inventory_id": inventory_id},
                ConsistentRead=True,
            )
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to get inventory item {inventory_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to get inventory item {inventory_id}") from e

        if "Item" not in response:
            return None

        return InventoryItem.from_dynamodb_item(response["Item"])

    def get_items(self, inventory_ids: list[str]) -> dict[str, InventoryItem]:
        """Retrieve several inventory items in as few requests as possible.

        Args:
            inventory_ids: Inventory identifiers (duplicates are ignored)

        Returns:
            dict: inventory_id to InventoryItem for every item that exists
        """
        unique_ids = list(dict.fromkeys(inventory_ids))
        items: dict[str, InventoryItem] = {}

        for start in range(0, len(unique_ids), BATCH_GET_LIMIT):
            chunk = unique_ids[start : start + BATCH_GET_LIMIT]
            request: dict[str, Any] = {
                self.table_name: {
                    "Keys": [{"inventory_id": i} for i in chunk],
                    "ConsistentRead": True,
                }
            }
            try:
                while request:
                    response = self.client.batch_get_item(RequestItems=request)
                    for raw in response.get("Responses", {}).get(self.table_name, []):
                        item = InventoryItem.from_dynamodb_item(raw)
                        items[item.inventory_id] = item
                    request = response.get("UnprocessedKeys") or {}
            except DYNAMODB_ERRORS as e:
                logger.error(f"Failed to batch get inventory items: {e}")  # pragma: no cover
                raise StorageError("Failed to batch get inventory items") from e

        return items

    def list_items(self) -> list[InventoryItem]:
        """List all inventory items.

        Returns:
            list: InventoryItem objects sorted by name (empty list if none)
        """
        items: list[InventoryItem] = []
        scan_kwargs: dict[str, Any] = {}
        try:
            while True:
                response = self.client.scan(TableName=self.table_name, **scan_kwargs)
                items.extend(InventoryItem.from_dynamodb_item(i) for i in response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to list inventory items: {e}")  # pragma: no cover
            raise StorageError("Failed to list inventory items") from e

        return sorted(items, key=lambda i: i.name)

    def create_item(self, item: InventoryItem) -> None:
        """Insert a new inventory item.

        Args:
            item: InventoryItem to insert
        """
        try:
            self.client.put_item(
                TableName=self.table_name,
                Item=item.to_dynamodb_item(),
                ConditionExpression="attribute_not_exists(inventory_id)",
            )
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to create inventory item {item.inventory_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to create inventory item {item.inventory_id}") from e

    def replace_item(self, item: InventoryItem) -> None:
        """Overwrite an existing inventory item, quantity included (absolute set).

        Args:
            item: InventoryItem with the new field values

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        try:
            self.client.put_item(
                TableName=self.table_name,
                Item=item.to_dynamodb_item(),
                ConditionExpression="attribute_exists(inventory_id)",
            )
        except DYNAMODB_ERRORS as e:
            if is_condition_failure(e):
                raise RecordNotFoundError("Inventory item", item.inventory_id) from e
            logger.error(f"Failed to update inventory item {item.inventory_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to update inventory item {item.inventory_id}") from e

    def delete_item(self, inventory_id: str) -> None:
        """Delete an inventory item.

        Args:
            inventory_id: Inventory identifier

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        try:
            self.client.delete_item(
                TableName=self.table_name,
                Key={"inventory_id": inventory_id},
                ConditionExpression="attribute_exists(inventory_id)",
            )
        except DYNAMODB_ERRORS as e:
            if is_condition_failure(e):
                raise RecordNotFoundError("Inventory item", inventory_id) from e
            logger.error(f"Failed to delete inventory item {inventory_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to delete inventory item {inventory_id}") from e

    def decrement(self, inventory_id: str, amount: int) -> int:
        """Atomically subtract amount from an item's quantity.

        DynamoDB evaluates the stock condition and the update as one operation,
        so concurrent decrements can never drive the quantity negative.

        Args:
            inventory_id: Inventory identifier
            amount: Quantity to subtract

        Returns:
            int: Quantity remaining after the decrement

        Raises:
            InsufficientStockError: If less than amount is on hand
            UnknownInventoryItemError: If the item does not exist
        """
        try:
            response = self.client.update_item(
                TableName=self.table_name,
                Key={"inventory_id": inventory_id},
                UpdateExpression="SET quantity = quantity - :amount",
                ConditionExpression=DECREMENT_CONDITION,
                ExpressionAttributeValues={":amount": amount},
                ReturnValues="UPDATED_NEW",
            )
        except DYNAMODB_ERRORS as e:
            if is_condition_failure(e):
                raise self.decrement_failure(inventory_id, amount, None) from e
            logger.error(f"Failed to decrement inventory item {inventory_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to decrement inventory item {inventory_id}") from e

        return int(response["Attributes"]["quantity"])

    def stage_decrement(self, tx: DynamoTransaction, inventory_id: str, amount: int) -> None:
        """Stage a conditional decrement inside a larger transaction.

        Args:
            tx: Transaction to stage the update on
            inventory_id: Inventory identifier
            amount: Quantity to subtract
        """
        tx.update(
            table_name=self.table_name,
            key={"inventory_id": inventory_id},
            update_expression="SET quantity = quantity - :amount",
            kind=ActionKind.INVENTORY_DECREMENT,
            ref=inventory_id,
            condition=DECREMENT_CONDITION,
            values={":amount": amount},
            on_condition_failed=lambda old: self.decrement_failure(inventory_id, amount, old),
        )

    def stage_exists_check(self, tx: DynamoTransaction, inventory_id: str) -> None:
        """Stage a check that an inventory item exists when the transaction commits."""
        tx.condition_check(
            table_name=self.table_name,
            key={"inventory_id": inventory_id},
            condition="attribute_exists(inventory_id)",
            kind=ActionKind.INVENTORY_CHECK,
            ref=inventory_id,
            on_condition_failed=lambda _old: UnknownInventoryItemError(inventory_id),
        )

    def decrement_failure(
        self, inventory_id: str, amount: int, old_item: dict[str, Any] | None
    ) -> OrderServiceError:
        """Explain why a conditional decrement was rejected.

        Args:
            inventory_id: Inventory identifier
            amount: Quantity that was requested
            old_item: Item as it was when the condition failed, if DynamoDB returned it

        Returns:
            InsufficientStockError if the item exists, UnknownInventoryItemError otherwise
        """
        if old_item is not None and "quantity" in old_item:
            return InsufficientStockError(inventory_id, amount, int(old_item["quantity"]))

        current = self.get_item(inventory_id)
        if current is None:
            return UnknownInventoryItemError(inventory_id)
        return InsufficientStockError(inventory_id, amount, current.quantity)
