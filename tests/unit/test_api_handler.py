"""Unit tests for FastAPI endpoints."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from cafe_order_service.handlers.api_handler import ERROR_STATUS_CODES, create_app
from cafe_order_service.models.errors import (
    InsufficientStockError,
    OrderError,
    OrderErrorCode,
    RecordNotFoundError,
    StorageError,
    UnknownInventoryItemError,
    ValidationFailedError,
)
from cafe_order_service.models.inventory_models import InventoryItem
from cafe_order_service.models.menu_models import MenuItem
from cafe_order_service.models.order_models import (
    BatchOrderStatus,
    BatchResult,
    BatchSummary,
    Order,
    OrderRequest,
    PlacementStage,
    ProcessedOrder,
)
from cafe_order_service.services.batch_service import BatchOrderService
from cafe_order_service.services.catalog_service import CatalogService
from cafe_order_service.services.inventory_service import InventoryService
from cafe_order_service.services.order_service import OrderResult, OrderService


@pytest.fixture
def client() -> TestClient:
    """Create a test client with mocked services."""
    app = create_app(
        inventory_service=MagicMock(spec=InventoryService),
        catalog_service=MagicMock(spec=CatalogService),
        order_service=MagicMock(spec=OrderService),
        batch_service=MagicMock(spec=BatchOrderService),
    )
    return TestClient(app)


@pytest.mark.unit
class TestErrorStatusCodes:
    """Test suite for the error code to HTTP status table."""

    def test_every_error_code_is_mapped(self) -> None:
        """Test that the table is exhaustive over OrderErrorCode."""
        assert set(ERROR_STATUS_CODES) == set(OrderErrorCode)

    @pytest.mark.parametrize(
        ("code", "status"),
        [
            (OrderErrorCode.VALIDATION_FAILED, 400),
            (OrderErrorCode.UNKNOWN_MENU_ITEM, 404),
            (OrderErrorCode.UNKNOWN_INVENTORY_ITEM, 404),
            (OrderErrorCode.NOT_FOUND, 404),
            (OrderErrorCode.INSUFFICIENT_STOCK, 409),
            (OrderErrorCode.DUPLICATE_ORDER, 409),
            (OrderErrorCode.INTERNAL_ERROR, 500),
        ],
    )
    def test_status_codes(self, code: OrderErrorCode, status: int) -> None:
        """Test each code's HTTP status."""
        assert ERROR_STATUS_CODES[code] == status


@pytest.mark.unit
class TestHealthEndpoint:
    """Test suite for health check endpoint."""

    def test_health_check(self, client: TestClient) -> None:
        """Test health check endpoint returns 200."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.unit
class TestOrderEndpoints:
    """Test suite for order endpoints."""

    def test_place_order_created(self, client: TestClient) -> None:
        """Test that a committed order returns 201 with id and total."""
        client.app.state.order_service.place_order = AsyncMock(
            return_value=OrderResult(
                success=True,
                stage=PlacementStage.COMMITTED,
                order_id="ord_abc",
                total_price=Decimal("9.00"),
            )
        )

        response = client.post(
            "/orders",
            json={"customer_name": "Alice", "items": [{"menu_item_id": "menu_latte", "quantity": 2}]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order_id"] == "ord_abc"
        assert Decimal(str(data["total_price"])) == Decimal("9.00")
        assert data["status"] == "open"

    def test_place_order_validation_failed(self, client: TestClient) -> None:
        """Test that validation failures return 400 with the field map."""
        client.app.state.order_service.place_order = AsyncMock(
            return_value=OrderResult(
                success=False,
                stage=PlacementStage.VALIDATING,
                error=OrderError(
                    OrderErrorCode.VALIDATION_FAILED,
                    "Request validation failed",
                    {"customer_name": "Customer name is required"},
                ),
            )
        )

        response = client.post("/orders", json={"items": []})

        assert response.status_code == 400
        assert response.json()["field_errors"] == {"customer_name": "Customer name is required"}

    def test_place_order_insufficient_stock(self, client: TestClient) -> None:
        """Test that a shortfall returns 409."""
        client.app.state.order_service.place_order = AsyncMock(
            return_value=OrderResult(
                success=False,
                stage=PlacementStage.CONSUMING_INVENTORY,
                error=InsufficientStockError("inv_milk", 6, 5).to_error(),
            )
        )

        response = client.post(
            "/orders",
            json={"customer_name": "Alice", "items": [{"menu_item_id": "menu_latte", "quantity": 2}]},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "insufficient_stock"

    def test_internal_error_hides_details(self, client: TestClient) -> None:
        """Test that internal errors never leak their message."""
        client.app.state.order_service.place_order = AsyncMock(
            return_value=OrderResult(
                success=False,
                stage=PlacementStage.CONSUMING_INVENTORY,
                error=StorageError("table cafe-orders throttled").to_error(),
            )
        )

        response = client.post(
            "/orders",
            json={"customer_name": "Alice", "items": [{"menu_item_id": "menu_latte", "quantity": 1}]},
        )

        assert response.status_code == 500
        assert response.json()["message"] == "Internal server error"

    def test_malformed_body_is_validation_failure(self, client: TestClient) -> None:
        """Test that type errors in the body map to 400 instead of 422."""
        response = client.post(
            "/orders",
            json={"customer_name": "Alice", "items": [{"menu_item_id": "m", "quantity": "two"}]},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation_failed"
        assert "items.0.quantity" in data["field_errors"]

    def test_close_order(self, client: TestClient) -> None:
        """Test closing an order."""
        client.app.state.order_service.close_order = AsyncMock(return_value=None)

        response = client.post("/orders/ord_1/close")

        assert response.status_code == 200
        assert response.json() == {"order_id": "ord_1", "status": "closed"}

    def test_close_missing_order(self, client: TestClient) -> None:
        """Test that closing a missing order returns 404."""
        client.app.state.order_service.close_order = AsyncMock(
            side_effect=RecordNotFoundError("Order", "ord_missing")
        )

        response = client.post("/orders/ord_missing/close")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_get_order(self, client: TestClient) -> None:
        """Test reading an order."""
        client.app.state.order_service.get_order = AsyncMock(
            return_value=Order(
                order_id="ord_1",
                customer_name="Alice",
                created_at=datetime(2024, 1, 15, tzinfo=UTC),
            )
        )

        response = client.get("/orders/ord_1")

        assert response.status_code == 200
        assert response.json()["customer_name"] == "Alice"

    def test_delete_order(self, client: TestClient) -> None:
        """Test deleting an order."""
        client.app.state.order_service.delete_order = AsyncMock(return_value=None)

        response = client.delete("/orders/ord_1")

        assert response.status_code == 204

    def test_batch_process(self, client: TestClient) -> None:
        """Test that a complete batch returns 200."""
        client.app.state.batch_service.process_batch = AsyncMock(
            return_value=BatchResult(
                processed_orders=[
                    ProcessedOrder(
                        order_id="ord_1",
                        customer_name="Alice",
                        status=BatchOrderStatus.ACCEPTED,
                        total=Decimal("4.50"),
                    )
                ],
                summary=BatchSummary(total_orders=1, accepted=1, total_revenue=Decimal("4.50")),
            )
        )

        response = client.post(
            "/orders/batch-process",
            json={"orders": [{"customer_name": "Alice", "items": [{"menu_item_id": "m", "quantity": 1}]}]},
        )

        assert response.status_code == 200
        assert response.json()["summary"]["accepted"] == 1
        requests = client.app.state.batch_service.process_batch.call_args.args[0]
        assert requests[0].customer_name == "Alice"

    def test_batch_null_fields_reach_the_service(self, client: TestClient) -> None:
        """Test that null order fields do not fail the whole batch at parsing."""
        client.app.state.batch_service.process_batch = AsyncMock(return_value=BatchResult())

        response = client.post(
            "/orders/batch-process",
            json={
                "orders": [
                    {"customer_name": None, "items": [{"menu_item_id": "m", "quantity": 1}]},
                    {"customer_name": "Bob", "items": None},
                    {"customer_name": "Cy", "items": [None, {"menu_item_id": None, "quantity": None}]},
                    None,
                    {"customer_name": "Dee", "items": [{"menu_item_id": "m", "quantity": 1}]},
                ]
            },
        )

        assert response.status_code == 200
        requests = client.app.state.batch_service.process_batch.call_args.args[0]
        assert len(requests) == 5
        assert requests[0].customer_name == ""
        assert requests[1].items == []
        assert [(i.menu_item_id, i.quantity) for i in requests[2].items] == [("", 0), ("", 0)]
        assert requests[3] == OrderRequest()
        assert requests[4].customer_name == "Dee"

    def test_batch_process_partial(self, client: TestClient) -> None:
        """Test that a missing inventory summary returns 207."""
        client.app.state.batch_service.process_batch = AsyncMock(
            return_value=BatchResult(
                summary=BatchSummary(total_orders=1, accepted=1, total_revenue=Decimal("4.50")),
                inventory_error="Failed to compute inventory updates",
            )
        )

        response = client.post("/orders/batch-process", json={"orders": []})

        assert response.status_code == 207
        assert response.json()["inventory_error"] == "Failed to compute inventory updates"


@pytest.mark.unit
class TestInventoryAndMenuEndpoints:
    """Test suite for inventory and menu endpoints."""

    def test_create_inventory_item(self, client: TestClient, milk: InventoryItem) -> None:
        """Test creating an inventory item."""
        client.app.state.inventory_service.create_item = AsyncMock(return_value=milk)

        response = client.post("/inventory", json={"name": "Milk", "unit": "ml", "quantity": 5})

        assert response.status_code == 201
        assert response.json()["inventory_id"] == "inv_milk"

    def test_create_inventory_item_invalid(self, client: TestClient) -> None:
        """Test that service validation errors become 400."""
        client.app.state.inventory_service.create_item = AsyncMock(
            side_effect=ValidationFailedError({"name": "missing Name"})
        )

        response = client.post("/inventory", json={"unit": "ml"})

        assert response.status_code == 400
        assert response.json()["field_errors"] == {"name": "missing Name"}

    def test_list_inventory(self, client: TestClient, milk: InventoryItem) -> None:
        """Test listing inventory."""
        client.app.state.inventory_service.list_items = AsyncMock(return_value=[milk])

        response = client.get("/inventory")

        assert response.status_code == 200
        assert [i["name"] for i in response.json()] == ["Milk"]

    def test_create_menu_item_with_unknown_inventory(self, client: TestClient) -> None:
        """Test that a requirement on missing inventory returns 404."""
        client.app.state.catalog_service.create_menu_item = AsyncMock(
            side_effect=UnknownInventoryItemError("inv_missing")
        )

        response = client.post(
            "/menu",
            json={
                "name": "Latte",
                "price": "4.50",
                "requirements": [{"inventory_id": "inv_missing", "quantity": 1}],
            },
        )

        assert response.status_code == 404
        assert response.json()["error"] == "unknown_inventory_item"

    def test_get_menu_item(self, client: TestClient, latte: MenuItem) -> None:
        """Test reading a menu item."""
        client.app.state.catalog_service.get_menu_item = AsyncMock(return_value=latte)

        response = client.get("/menu/menu_latte")

        assert response.status_code == 200
        assert len(response.json()["requirements"]) == 2

    def test_delete_menu_item(self, client: TestClient) -> None:
        """Test deleting a menu item."""
        client.app.state.catalog_service.delete_menu_item = AsyncMock(return_value=None)

        response = client.delete("/menu/menu_latte")

        assert response.status_code == 204
