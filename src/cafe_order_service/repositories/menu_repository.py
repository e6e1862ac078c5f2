"""DynamoDB repository for menu items and their inventory requirements."""

import logging
from typing import Any

from mypy_boto3_dynamodb.client import DynamoDBClient
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

from cafe_order_service.models.errors import (
    RecordNotFoundError,
    StorageError,
    UnknownMenuItemError,
)
from cafe_order_service.models.menu_models import MenuItem
from cafe_order_service.repositories.transaction import (
    DYNAMODB_ERRORS,
    ActionKind,
    DynamoTransaction,
    is_condition_failure,
)

logger = logging.getLogger(__name__)

BATCH_GET_LIMIT = 100


class MenuRepository:
    """Repository for menu item CRUD operations.

    Manages menu records in DynamoDB with menu_item_id as partition key.
    The requirement list is embedded in the menu record, so a menu item and its
    requirements are always written together.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.client: DynamoDBClient = dynamodb_resource.meta.client

    def get_item(self, menu_item_id: str) -> MenuItem | None:
        """Retrieve a menu item.

        Args:
            menu_item_id: Menu item identifier

        Returns:
            MenuItem if found, None otherwise
        """
        try:
            response = self.client.get_item(
                TableName=self.table_name, Key={"menu_item_id": menu_item_id}
            )
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to get menu item {menu_item_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to get menu item {menu_item_id}") from e

        if "Item" not in response:
            return None

        return MenuItem.from_dynamodb_item(response["Item"])

    def get_items(self, menu_item_ids: list[str]) -> dict[str, MenuItem]:
        """Retrieve several menu items with BatchGetItem.

        Args:
            menu_item_ids: Menu item identifiers (duplicates are ignored)

        Returns:
            dict: menu_item_id to MenuItem for every item that exists
        """
        unique_ids = list(dict.fromkeys(menu_item_ids))
        items: dict[str, MenuItem] = {}

        for start in range(0, len(unique_ids), BATCH_GET_LIMIT):
            chunk = unique_ids[start : start + BATCH_GET_LIMIT]
            request: dict[str, Any] = {
                self.table_name: {"Keys": [{"menu_item_id": i} for i in chunk]}
            }
            try:
                while request:
                    response = self.client.batch_get_item(RequestItems=request)
                    for raw in response.get("Responses", {}).get(self.table_name, []):
                        item = MenuItem.from_dynamodb_item(raw)
                        items[item.menu_item_id] = item
                    request = response.get("UnprocessedKeys") or {}
            except DYNAMODB_ERRORS as e:
                logger.error(f"Failed to batch get menu items: {e}")  # pragma: no cover
                raise StorageError("Failed to batch get menu items") from e

        return items

    def list_items(self) -> list[MenuItem]:
        """List all menu items.

        Returns:
            list: MenuItem objects sorted by name (empty list if none)
        """
        items: list[MenuItem] = []
        scan_kwargs: dict[str, Any] = {}
        try:
            while True:
                response = self.client.scan(TableName=self.table_name, **scan_kwargs)
                items.extend(MenuItem.from_dynamodb_item(i) for i in response.get("Items", []))
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except DYNAMODB_ERRORS as e:
            logger.error(f"Failed to list menu items: {e}")  # pragma: no cover
            raise StorageError("Failed to list menu items") from e

        return sorted(items, key=lambda i: i.name)

    def stage_create(self, tx: DynamoTransaction, item: MenuItem) -> None:
        """Stage the insert of a new menu item."""
        tx.put(
            table_name=self.table_name,
            item=item.to_dynamodb_item(),
            kind=ActionKind.MENU_ITEM,
            ref=item.menu_item_id,
            condition="attribute_not_exists(menu_item_id)",
            on_condition_failed=lambda _old: StorageError(
                f"Menu item {item.menu_item_id} already exists"
            ),
        )

    def stage_replace(self, tx: DynamoTransaction, item: MenuItem) -> None:
        """Stage the replacement of an existing menu item."""
        tx.put(
            table_name=self.table_name,
            item=item.to_dynamodb_item(),
            kind=ActionKind.MENU_ITEM,
            ref=item.menu_item_id,
            condition="attribute_exists(menu_item_id)",
            on_condition_failed=lambda _old: RecordNotFoundError("Menu item", item.menu_item_id),
        )

    def stage_exists_check(self, tx: DynamoTransaction, menu_item_id: str) -> None:
        """Stage a check that a menu item still exists when the transaction commits."""
        tx.condition_check(
            table_name=self.table_name,
            key={"menu_item_id": menu_item_id},
            condition="attribute_exists(menu_item_id)",
            kind=ActionKind.MENU_ITEM_CHECK,
            ref=menu_item_id,
            on_condition_failed=lambda _old: UnknownMenuItemError(menu_item_id),
        )

    def delete_item(self, menu_item_id: str) -> None:
        """Delete a menu item.

        Args:
            menu_item_id: Menu item identifier

        Raises:
            RecordNotFoundError: If the menu item does not exist
        """
        try:
            self.client.delete_item(
                TableName=self.table_name,
                Key={"menu_item_id": menu_item_id},
                ConditionExpression="attribute_exists(menu_item_id)",
            )
        except DYNAMODB_ERRORS as e:
            if is_condition_failure(e):
                raise RecordNotFoundError("Menu item", menu_item_id) from e
            logger.error(f"Failed to delete menu item {menu_item_id}: {e}")  # pragma: no cover
            raise StorageError(f"Failed to delete menu item {menu_item_id}") from e
