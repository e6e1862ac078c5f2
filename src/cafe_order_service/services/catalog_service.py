"""Catalog service: menu item lookups and menu CRUD."""

import logging
import uuid

from cafe_order_service.models.errors import (
    RecordNotFoundError,
    UnknownMenuItemError,
    ValidationFailedError,
)
from cafe_order_service.models.menu_models import MenuItem, MenuItemRequest, MenuItemRequirement
from cafe_order_service.repositories.inventory_repository import InventoryRepository
from cafe_order_service.repositories.menu_repository import MenuRepository
from cafe_order_service.repositories.transaction import DynamoTransaction, transaction
from cafe_order_service.services.validators import validate_menu_item

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for resolving menu items to the inventory they consume.

    Lookups are read-only and are used by order placement to size inventory
    needs. The CRUD methods keep every menu item's requirements pointing at
    existing inventory items.
    """

    def __init__(
        self,
        menu_repository: MenuRepository,
        inventory_repository: InventoryRepository,
    ) -> None:
        """Initialize the CatalogService.

        Args:
            menu_repository: Repository for menu items
            inventory_repository: Repository used to check referenced inventory
        """
        self.menu_repository = menu_repository
        self.inventory_repository = inventory_repository

    def requirements_for(self, menu_item_id: str) -> list[MenuItemRequirement]:
        """Resolve a menu item to its per-unit inventory requirements.

        Args:
            menu_item_id: Menu item identifier

        Returns:
            list: Requirements in their stored order

        Raises:
            UnknownMenuItemError: If the menu item does not exist
        """
        item = self.menu_repository.get_item(menu_item_id)
        if item is None:
            raise UnknownMenuItemError(menu_item_id)
        return list(item.requirements)

    def find_menu_items(self, menu_item_ids: list[str]) -> dict[str, MenuItem]:
        """Fetch the menu items that exist among the given identifiers."""
        if not menu_item_ids:
            return {}
        return self.menu_repository.get_items(menu_item_ids)

    def lookup_menu_items(self, menu_item_ids: list[str]) -> dict[str, MenuItem]:
        """Fetch menu items, failing on the first one that does not exist.

        Args:
            menu_item_ids: Menu item identifiers in line item order

        Returns:
            dict: menu_item_id to MenuItem

        Raises:
            UnknownMenuItemError: For the first identifier that does not exist
        """
        found = self.find_menu_items(menu_item_ids)
        for menu_item_id in menu_item_ids:
            if menu_item_id not in found:
                raise UnknownMenuItemError(menu_item_id)
        return found

    def stage_exists_check(self, tx: DynamoTransaction, menu_item_id: str) -> None:
        """Make a transaction fail with UnknownMenuItemError if the item disappears."""
        self.menu_repository.stage_exists_check(tx, menu_item_id)

    async def get_menu_item(self, menu_item_id: str) -> MenuItem:
        """Get a menu item by ID.

        Raises:
            RecordNotFoundError: If the menu item does not exist
        """
        item = self.menu_repository.get_item(menu_item_id)
        if item is None:
            raise RecordNotFoundError("Menu item", menu_item_id)
        return item

    async def list_menu_items(self) -> list[MenuItem]:
        """List all menu items."""
        return self.menu_repository.list_items()

    async def create_menu_item(self, request: MenuItemRequest) -> MenuItem:
        """Create a menu item whose requirements reference existing inventory.

        Args:
            request: Menu item payload

        Returns:
            The created MenuItem

        Raises:
            ValidationFailedError: If the payload is invalid
            UnknownInventoryItemError: If a requirement references missing inventory
        """
        item = self._build_item(f"menu_{uuid.uuid4().hex[:12]}", request)

        with transaction(self.menu_repository.client) as tx:
            self.menu_repository.stage_create(tx, item)
            self._stage_requirement_checks(tx, item)

        logger.info(f"Created menu item {item.menu_item_id} ({item.name})")
        return item

    async def update_menu_item(self, menu_item_id: str, request: MenuItemRequest) -> MenuItem:
        """Replace an existing menu item.

        Raises:
            ValidationFailedError: If the payload is invalid
            RecordNotFoundError: If the menu item does not exist
            UnknownInventoryItemError: If a requirement references missing inventory
        """
        item = self._build_item(menu_item_id, request)

        with transaction(self.menu_repository.client) as tx:
            self.menu_repository.stage_replace(tx, item)
            self._stage_requirement_checks(tx, item)

        logger.info(f"Updated menu item {menu_item_id}")
        return item

    async def delete_menu_item(self, menu_item_id: str) -> None:
        """Delete a menu item.

        Raises:
            RecordNotFoundError: If the menu item does not exist
        """
        self.menu_repository.delete_item(menu_item_id)
        logger.info(f"Deleted menu item {menu_item_id}")

    def _build_item(self, menu_item_id: str, request: MenuItemRequest) -> MenuItem:
        errors = validate_menu_item(request)
        if errors:
            raise ValidationFailedError(errors)

        return MenuItem(
            menu_item_id=menu_item_id,
            name=request.name.strip(),
            description=request.description,
            price=request.price,
            requirements=[
                MenuItemRequirement(inventory_id=r.inventory_id, quantity=r.quantity)
                for r in request.requirements
            ],
        )

    def _stage_requirement_checks(self, tx: DynamoTransaction, item: MenuItem) -> None:
        for requirement in item.requirements:
            self.inventory_repository.stage_exists_check(tx, requirement.inventory_id)
