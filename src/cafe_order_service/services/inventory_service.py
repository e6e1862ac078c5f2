"""Inventory ledger: on-hand quantities and inventory CRUD."""

import logging
import uuid

from cafe_order_service.models.errors import (
    RecordNotFoundError,
    UnknownInventoryItemError,
    ValidationFailedError,
)
from cafe_order_service.models.inventory_models import (
    InventoryItem,
    InventoryItemRequest,
    UnitOfMeasure,
)
from cafe_order_service.repositories.inventory_repository import InventoryRepository
from cafe_order_service.repositories.transaction import DynamoTransaction
from cafe_order_service.services.validators import validate_inventory_item

logger = logging.getLogger(__name__)


class InventoryService:
    """Ledger of on-hand inventory quantities.

    Stock is only ever reduced through conditional decrements evaluated by
    DynamoDB, never through a read followed by a write, so concurrent orders
    cannot oversell an item. Quantities read through get_quantity are for
    reporting only.
    """

    def __init__(self, inventory_repository: InventoryRepository) -> None:
        """Initialize the InventoryService.

        Args:
            inventory_repository: Repository for inventory items
        """
        self.inventory_repository = inventory_repository

    def decrement(self, inventory_id: str, amount: int) -> int:
        """Atomically subtract amount from an inventory item.

        Args:
            inventory_id: Inventory identifier
            amount: Positive quantity to subtract

        Returns:
            int: Quantity remaining

        Raises:
            ValidationFailedError: If amount is not positive
            InsufficientStockError: If less than amount is on hand
            UnknownInventoryItemError: If the item does not exist
        """
        if amount < 1:
            raise ValidationFailedError({"amount": "Amount must be 1 or more"})
        return self.inventory_repository.decrement(inventory_id, amount)

    def stage_consumption(self, tx: DynamoTransaction, needs: dict[str, int]) -> None:
        """Stage one conditional decrement per inventory item on a transaction.

        Args:
            tx: Transaction the decrements become part of
            needs: inventory_id to total quantity required
        """
        for inventory_id, amount in needs.items():
            self.inventory_repository.stage_decrement(tx, inventory_id, amount)

    def get_quantity(self, inventory_id: str) -> int:
        """Get the current on-hand quantity of an inventory item.

        Raises:
            UnknownInventoryItemError: If the item does not exist
        """
        item = self.inventory_repository.get_item(inventory_id)
        if item is None:
            raise UnknownInventoryItemError(inventory_id)
        return item.quantity

    def find_items(self, inventory_ids: list[str]) -> dict[str, InventoryItem]:
        """Fetch the inventory items that exist among the given identifiers."""
        if not inventory_ids:
            return {}
        return self.inventory_repository.get_items(inventory_ids)

    async def get_item(self, inventory_id: str) -> InventoryItem:
        """Get an inventory item by ID.

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        item = self.inventory_repository.get_item(inventory_id)
        if item is None:
            raise RecordNotFoundError("Inventory item", inventory_id)
        return item

    async def list_items(self) -> list[InventoryItem]:
        """List all inventory items."""
        return self.inventory_repository.list_items()

    async def create_item(self, request: InventoryItemRequest) -> InventoryItem:
        """Create an inventory item.

        Raises:
            ValidationFailedError: If the payload is invalid
        """
        item = self._build_item(f"inv_{uuid.uuid4().hex[:12]}", request)
        self.inventory_repository.create_item(item)
        logger.info(f"Created inventory item {item.inventory_id} ({item.name})")
        return item

    async def update_item(self, inventory_id: str, request: InventoryItemRequest) -> InventoryItem:
        """Replace an inventory item, setting its quantity to an absolute value.

        Raises:
            ValidationFailedError: If the payload is invalid
            RecordNotFoundError: If the item does not exist
        """
        item = self._build_item(inventory_id, request)
        self.inventory_repository.replace_item(item)
        logger.info(f"Updated inventory item {inventory_id}, quantity set to {item.quantity}")
        return item

    async def delete_item(self, inventory_id: str) -> None:
        """Delete an inventory item.

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        self.inventory_repository.delete_item(inventory_id)
        logger.info(f"Deleted inventory item {inventory_id}")

    def _build_item(self, inventory_id: str, request: InventoryItemRequest) -> InventoryItem:
        errors = validate_inventory_item(request)
        if errors:
            raise ValidationFailedError(errors)

        return InventoryItem(
            inventory_id=inventory_id,
            name=request.name.strip(),
            unit=UnitOfMeasure(request.unit),
            quantity=request.quantity,
            categories=request.categories,
        )
