"""Unit tests for payload validators."""

from decimal import Decimal

import pytest

from cafe_order_service.models.inventory_models import InventoryItemRequest
from cafe_order_service.models.menu_models import MenuItemRequest, MenuItemRequirementRequest
from cafe_order_service.models.order_models import OrderLineItemRequest, OrderRequest
from cafe_order_service.services.validators import (
    MAX_LINE_ITEMS,
    validate_inventory_item,
    validate_menu_item,
    validate_order,
)


@pytest.mark.unit
class TestValidateOrder:
    """Test suite for validate_order."""

    def test_valid_order_has_no_errors(self, latte_order: OrderRequest) -> None:
        """Test that a complete order passes."""
        assert validate_order(latte_order) == {}

    def test_blank_customer_name(self) -> None:
        """Test that a whitespace-only customer name is reported."""
        order = OrderRequest(
            customer_name="   ",
            items=[OrderLineItemRequest(menu_item_id="menu_latte", quantity=1)],
        )

        errors = validate_order(order)

        assert errors == {"customer_name": "Customer name is required"}

    def test_missing_items(self) -> None:
        """Test that an order without line items is reported."""
        errors = validate_order(OrderRequest(customer_name="Alice"))

        assert errors == {"items": "At least one order item is required"}

    def test_duplicate_menu_item_reported_once_first_wins(self) -> None:
        """Test that repeats of a menu item are flagged at their own position."""
        order = OrderRequest(
            customer_name="Alice",
            items=[
                OrderLineItemRequest(menu_item_id="menu_latte", quantity=1),
                OrderLineItemRequest(menu_item_id="menu_latte", quantity=2),
            ],
        )

        errors = validate_order(order)

        assert errors == {"items[1].menu_item_id": "Duplicate menu item ID detected"}

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity(self, quantity: int) -> None:
        """Test that quantities below one are reported."""
        order = OrderRequest(
            customer_name="Alice",
            items=[OrderLineItemRequest(menu_item_id="menu_latte", quantity=quantity)],
        )

        errors = validate_order(order)

        assert errors == {"items[0].quantity": "Quantity must be 1 or more"}

    def test_missing_menu_item_id(self) -> None:
        """Test that a line item without menu item is reported."""
        order = OrderRequest(
            customer_name="Alice",
            items=[OrderLineItemRequest(menu_item_id="", quantity=1)],
        )

        errors = validate_order(order)

        assert errors == {"items[0].menu_item_id": "Menu item ID is required"}

    def test_lines_without_menu_item_are_reported_separately(self) -> None:
        """Test that problems on lines sharing a blank menu item ID do not overwrite each other."""
        order = OrderRequest(
            customer_name="Alice",
            items=[
                OrderLineItemRequest(menu_item_id="", quantity=0),
                OrderLineItemRequest(menu_item_id="", quantity=-2),
            ],
        )

        errors = validate_order(order)

        assert errors == {
            "items[0].menu_item_id": "Menu item ID is required",
            "items[0].quantity": "Quantity must be 1 or more",
            "items[1].menu_item_id": "Menu item ID is required",
            "items[1].quantity": "Quantity must be 1 or more",
        }

    def test_reports_every_problem(self) -> None:
        """Test that all problems are collected instead of stopping at the first."""
        order = OrderRequest(
            customer_name="",
            items=[
                OrderLineItemRequest(menu_item_id="menu_latte", quantity=0),
                OrderLineItemRequest(menu_item_id="menu_latte", quantity=1),
            ],
        )

        errors = validate_order(order)

        assert set(errors) == {
            "customer_name",
            "items[0].quantity",
            "items[1].menu_item_id",
        }

    def test_too_many_line_items(self) -> None:
        """Test that orders that cannot fit one transaction are rejected."""
        order = OrderRequest(
            customer_name="Alice",
            items=[
                OrderLineItemRequest(menu_item_id=f"menu_{i}", quantity=1)
                for i in range(MAX_LINE_ITEMS + 1)
            ],
        )

        errors = validate_order(order)

        assert "items" in errors


@pytest.mark.unit
class TestValidateInventoryItem:
    """Test suite for validate_inventory_item."""

    def test_valid_item(self) -> None:
        """Test that a complete inventory item passes."""
        item = InventoryItemRequest(name="Milk", unit="ml", quantity=0)

        assert validate_inventory_item(item) == {}

    def test_missing_fields(self) -> None:
        """Test that name and unit are required."""
        errors = validate_inventory_item(InventoryItemRequest())

        assert errors == {"name": "missing Name", "unit": "missing Unit"}

    def test_unknown_unit_and_negative_quantity(self) -> None:
        """Test that units outside the enumerated set and negative stock are rejected."""
        errors = validate_inventory_item(
            InventoryItemRequest(name="Milk", unit="gallons", quantity=-1)
        )

        assert set(errors) == {"unit", "quantity"}


@pytest.mark.unit
class TestValidateMenuItem:
    """Test suite for validate_menu_item."""

    def test_valid_item(self) -> None:
        """Test that a complete menu item passes."""
        item = MenuItemRequest(
            name="Latte",
            price=Decimal("4.50"),
            requirements=[MenuItemRequirementRequest(inventory_id="inv_milk", quantity=3)],
        )

        assert validate_menu_item(item) == {}

    def test_negative_price_and_bad_requirements(self) -> None:
        """Test price and requirement checks."""
        item = MenuItemRequest(
            name="Latte",
            price=Decimal("-1"),
            requirements=[
                MenuItemRequirementRequest(inventory_id="inv_milk", quantity=0),
                MenuItemRequirementRequest(inventory_id="inv_milk", quantity=1),
            ],
        )

        errors = validate_menu_item(item)

        assert errors == {
            "price": "Price must not be negative",
            "requirements[0].quantity": "Quantity must be 1 or more",
            "requirements[1].inventory_id": "Duplicate inventory ID detected",
        }
