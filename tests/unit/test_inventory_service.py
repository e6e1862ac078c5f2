"""Unit tests for InventoryService."""

from unittest.mock import MagicMock

import pytest

from cafe_order_service.models.errors import (
    InsufficientStockError,
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
from cafe_order_service.services.inventory_service import InventoryService


@pytest.mark.unit
class TestInventoryService:
    """Test suite for InventoryService."""

    @pytest.fixture
    def mock_inventory_repo(self) -> MagicMock:
        """Create a mock InventoryRepository."""
        return MagicMock(spec=InventoryRepository)

    @pytest.fixture
    def inventory_service(self, mock_inventory_repo: MagicMock) -> InventoryService:
        """Create an InventoryService with a mocked repository."""
        return InventoryService(inventory_repository=mock_inventory_repo)

    def test_decrement_delegates_to_guarded_update(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that decrement is a single conditional repository call."""
        mock_inventory_repo.decrement.return_value = 2

        assert inventory_service.decrement("inv_milk", 3) == 2
        mock_inventory_repo.decrement.assert_called_once_with("inv_milk", 3)
        mock_inventory_repo.get_item.assert_not_called()

    @pytest.mark.parametrize("amount", [0, -3])
    def test_decrement_rejects_non_positive_amount(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock, amount: int
    ) -> None:
        """Test that zero or negative amounts never reach DynamoDB."""
        with pytest.raises(ValidationFailedError):
            inventory_service.decrement("inv_milk", amount)

        mock_inventory_repo.decrement.assert_not_called()

    def test_decrement_propagates_shortfall(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that a shortfall surfaces unchanged."""
        mock_inventory_repo.decrement.side_effect = InsufficientStockError("inv_milk", 6, 5)

        with pytest.raises(InsufficientStockError):
            inventory_service.decrement("inv_milk", 6)

    def test_get_quantity(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock, milk: InventoryItem
    ) -> None:
        """Test reading the on-hand quantity."""
        mock_inventory_repo.get_item.return_value = milk

        assert inventory_service.get_quantity("inv_milk") == 5

    def test_get_quantity_unknown_item(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that reading a missing item raises UnknownInventoryItemError."""
        mock_inventory_repo.get_item.return_value = None

        with pytest.raises(UnknownInventoryItemError):
            inventory_service.get_quantity("inv_missing")

    def test_stage_consumption_one_decrement_per_item(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that each aggregated need becomes exactly one staged decrement."""
        tx = DynamoTransaction(MagicMock())

        inventory_service.stage_consumption(tx, {"inv_milk": 6, "inv_beans": 36})

        calls = [c.args for c in mock_inventory_repo.stage_decrement.call_args_list]
        assert calls == [(tx, "inv_milk", 6), (tx, "inv_beans", 36)]

    @pytest.mark.asyncio
    async def test_create_item(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test creating an inventory item with a generated identifier."""
        item = await inventory_service.create_item(
            InventoryItemRequest(name="Oat milk", unit="ml", quantity=2000, categories=["vegan"])
        )

        assert item.inventory_id.startswith("inv_")
        assert item.unit == UnitOfMeasure.MILLILITERS
        mock_inventory_repo.create_item.assert_called_once_with(item)

    @pytest.mark.asyncio
    async def test_update_item_sets_absolute_quantity(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that updates overwrite the quantity rather than adjust it."""
        item = await inventory_service.update_item(
            "inv_milk", InventoryItemRequest(name="Milk", unit="ml", quantity=40)
        )

        assert item.quantity == 40
        mock_inventory_repo.replace_item.assert_called_once_with(item)

    @pytest.mark.asyncio
    async def test_update_item_rejects_negative_quantity(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that a negative absolute quantity is a validation failure."""
        with pytest.raises(ValidationFailedError) as exc_info:
            await inventory_service.update_item(
                "inv_milk", InventoryItemRequest(name="Milk", unit="ml", quantity=-1)
            )

        assert exc_info.value.field_errors == {"quantity": "Quantity must not be negative"}
        mock_inventory_repo.replace_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_item_not_found(
        self, inventory_service: InventoryService, mock_inventory_repo: MagicMock
    ) -> None:
        """Test that reading a missing item over the API path is a not-found."""
        mock_inventory_repo.get_item.return_value = None

        with pytest.raises(RecordNotFoundError):
            await inventory_service.get_item("inv_missing")
