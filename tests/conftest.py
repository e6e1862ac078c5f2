"""Shared pytest fixtures and configuration for all tests."""

import os
from collections.abc import Iterator
from decimal import Decimal
from typing import Any

import boto3
import pytest
from moto import mock_aws

# Keep main.py and lambda_handler.py from building the app at import
os.environ.setdefault("ENVIRONMENT", "test")

from cafe_order_service.models.inventory_models import InventoryItem, UnitOfMeasure  # noqa: E402
from cafe_order_service.models.menu_models import MenuItem, MenuItemRequirement  # noqa: E402
from cafe_order_service.models.order_models import OrderLineItemRequest, OrderRequest  # noqa: E402

INVENTORY_TABLE = "test-inventory"
MENU_TABLE = "test-menu-items"
ORDERS_TABLE = "test-orders"
ORDER_ITEMS_TABLE = "test-order-items"


@pytest.fixture
def milk() -> InventoryItem:
    """Fixture providing an inventory item with 5 units on hand."""
    return InventoryItem(
        inventory_id="inv_milk",
        name="Milk",
        unit=UnitOfMeasure.MILLILITERS,
        quantity=5,
        categories=["dairy"],
    )


@pytest.fixture
def espresso_beans() -> InventoryItem:
    """Fixture providing a well-stocked inventory item."""
    return InventoryItem(
        inventory_id="inv_beans",
        name="Espresso beans",
        unit=UnitOfMeasure.GRAMS,
        quantity=1000,
    )


@pytest.fixture
def latte() -> MenuItem:
    """Fixture providing a menu item that needs 3 milk and 18 beans per unit."""
    return MenuItem(
        menu_item_id="menu_latte",
        name="Latte",
        description="Espresso with steamed milk",
        price=Decimal("4.50"),
        requirements=[
            MenuItemRequirement(inventory_id="inv_milk", quantity=3),
            MenuItemRequirement(inventory_id="inv_beans", quantity=18),
        ],
    )


@pytest.fixture
def cappuccino() -> MenuItem:
    """Fixture providing a second menu item that needs 3 milk per unit."""
    return MenuItem(
        menu_item_id="menu_cappuccino",
        name="Cappuccino",
        description="Espresso with milk foam",
        price=Decimal("4.00"),
        requirements=[MenuItemRequirement(inventory_id="inv_milk", quantity=3)],
    )


@pytest.fixture
def latte_order() -> OrderRequest:
    """Fixture providing a valid order for one latte."""
    return OrderRequest(
        customer_name="Alice",
        customer_preferences={"milk": "oat", "extra_shot": True},
        items=[OrderLineItemRequest(menu_item_id="menu_latte", quantity=1)],
    )


def create_tables(dynamodb: Any) -> None:
    """Create the four service tables on a (mocked) DynamoDB resource."""
    for name, keys in (
        (INVENTORY_TABLE, ["inventory_id"]),
        (MENU_TABLE, ["menu_item_id"]),
        (ORDERS_TABLE, ["order_id"]),
        (ORDER_ITEMS_TABLE, ["order_id", "menu_item_id"]),
    ):
        key_types = ["HASH", "RANGE"]
        dynamodb.create_table(
            TableName=name,
            KeySchema=[{"AttributeName": k, "KeyType": key_types[i]} for i, k in enumerate(keys)],
            AttributeDefinitions=[{"AttributeName": k, "AttributeType": "S"} for k in keys],
            BillingMode="PAY_PER_REQUEST",
        )


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Fake AWS credentials so nothing can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def dynamodb_resource(aws_credentials: None) -> Iterator[Any]:
    """In-memory DynamoDB with all service tables created."""
    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")
        create_tables(dynamodb)
        yield dynamodb
