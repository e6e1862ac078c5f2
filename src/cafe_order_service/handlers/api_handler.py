"""FastAPI application for the cafe order API."""

import logging
from decimal import Decimal
from typing import Union

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict

from cafe_order_service.models.errors import OrderError, OrderErrorCode, OrderServiceError
from cafe_order_service.models.inventory_models import InventoryItem, InventoryItemRequest
from cafe_order_service.models.menu_models import MenuItem, MenuItemRequest
from cafe_order_service.models.order_models import (
    BatchOrderRequest,
    BatchResult,
    Order,
    OrderRequest,
    OrderStatus,
)
from cafe_order_service.services.batch_service import BatchOrderService
from cafe_order_service.services.catalog_service import CatalogService
from cafe_order_service.services.inventory_service import InventoryService
from cafe_order_service.services.order_service import OrderService

logger = logging.getLogger(__name__)

# Every error code maps to exactly one HTTP status
ERROR_STATUS_CODES: dict[OrderErrorCode, int] = {
    OrderErrorCode.VALIDATION_FAILED: 400,
    OrderErrorCode.UNKNOWN_MENU_ITEM: 404,
    OrderErrorCode.UNKNOWN_INVENTORY_ITEM: 404,
    OrderErrorCode.NOT_FOUND: 404,
    OrderErrorCode.INSUFFICIENT_STOCK: 409,
    OrderErrorCode.DUPLICATE_ORDER: 409,
    OrderErrorCode.INTERNAL_ERROR: 500,
}

INTERNAL_ERROR_MESSAGE = "Internal server error"


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


class ErrorResponse(BaseModel):
    """Body of every error response."""

    error: OrderErrorCode
    message: str
    field_errors: dict[str, str] = {}


class OrderCreatedResponse(BaseModel):
    """Response model for a placed order."""

    model_config = ConfigDict(json_encoders={Decimal: str})

    order_id: str
    total_price: Decimal
    status: OrderStatus


class OrderClosedResponse(BaseModel):
    """Response model for a closed order."""

    order_id: str
    status: OrderStatus


def error_response(error: OrderError) -> JSONResponse:
    """Build the HTTP response for a service error.

    Internal errors never expose their message to the client.

    Args:
        error: Error reported by a service

    Returns:
        JSONResponse with the mapped status code
    """
    status_code = ERROR_STATUS_CODES[error.code]
    message = INTERNAL_ERROR_MESSAGE if status_code == 500 else error.message
    body = ErrorResponse(error=error.code, message=message, field_errors=error.field_errors)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(
    inventory_service: InventoryService,
    catalog_service: CatalogService,
    order_service: OrderService,
    batch_service: BatchOrderService,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        inventory_service: Inventory ledger and inventory CRUD
        catalog_service: Menu lookups and menu CRUD
        order_service: Order placement and lifecycle
        batch_service: Batch order processing

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Cafe Order Service API",
        description="Orders, menu and inventory for a cafe point of sale",
        version="1.0.0",
    )

    # Store services in app state for access in route handlers
    app.state.inventory_service = inventory_service
    app.state.catalog_service = catalog_service
    app.state.order_service = order_service
    app.state.batch_service = batch_service

    @app.exception_handler(OrderServiceError)
    async def handle_service_error(_request: Request, exc: OrderServiceError) -> JSONResponse:
        if exc.code == OrderErrorCode.INTERNAL_ERROR:
            logger.error(f"Request failed with internal error: {exc}")  # pragma: no cover
        return error_response(exc.to_error())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_request: Request, exc: RequestValidationError) -> JSONResponse:
        field_errors = {
            ".".join(str(part) for part in err["loc"] if part != "body"): err["msg"]
            for err in exc.errors()
        }
        return error_response(
            OrderError(OrderErrorCode.VALIDATION_FAILED, "Request validation failed", field_errors)
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint.

        Returns:
            Health status indicating service is running
        """
        return HealthResponse(status="healthy")

    # Inventory

    @app.post("/inventory", response_model=InventoryItem, status_code=201, tags=["Inventory"])
    async def create_inventory_item(payload: InventoryItemRequest) -> InventoryItem:
        """Create an inventory item."""
        item: InventoryItem = await app.state.inventory_service.create_item(payload)
        return item

    @app.get("/inventory", response_model=list[InventoryItem], tags=["Inventory"])
    async def list_inventory_items() -> list[InventoryItem]:
        """List all inventory items."""
        items: list[InventoryItem] = await app.state.inventory_service.list_items()
        return items

    @app.get("/inventory/{inventory_id}", response_model=InventoryItem, tags=["Inventory"])
    async def get_inventory_item(inventory_id: str) -> InventoryItem:
        """Get an inventory item."""
        item: InventoryItem = await app.state.inventory_service.get_item(inventory_id)
        return item

    @app.put("/inventory/{inventory_id}", response_model=InventoryItem, tags=["Inventory"])
    async def update_inventory_item(inventory_id: str, payload: InventoryItemRequest) -> InventoryItem:
        """Replace an inventory item; quantity is set, not adjusted."""
        item: InventoryItem = await app.state.inventory_service.update_item(inventory_id, payload)
        return item

    @app.delete("/inventory/{inventory_id}", status_code=204, tags=["Inventory"])
    async def delete_inventory_item(inventory_id: str) -> Response:
        """Delete an inventory item."""
        await app.state.inventory_service.delete_item(inventory_id)
        return Response(status_code=204)

    # Menu

    @app.post("/menu", response_model=MenuItem, status_code=201, tags=["Menu"])
    async def create_menu_item(payload: MenuItemRequest) -> MenuItem:
        """Create a menu item."""
        item: MenuItem = await app.state.catalog_service.create_menu_item(payload)
        return item

    @app.get("/menu", response_model=list[MenuItem], tags=["Menu"])
    async def list_menu_items() -> list[MenuItem]:
        """List all menu items."""
        items: list[MenuItem] = await app.state.catalog_service.list_menu_items()
        return items

    @app.get("/menu/{menu_item_id}", response_model=MenuItem, tags=["Menu"])
    async def get_menu_item(menu_item_id: str) -> MenuItem:
        """Get a menu item."""
        item: MenuItem = await app.state.catalog_service.get_menu_item(menu_item_id)
        return item

    @app.put("/menu/{menu_item_id}", response_model=MenuItem, tags=["Menu"])
    async def update_menu_item(menu_item_id: str, payload: MenuItemRequest) -> MenuItem:
        """Replace a menu item."""
        item: MenuItem = await app.state.catalog_service.update_menu_item(menu_item_id, payload)
        return item

    @app.delete("/menu/{menu_item_id}", status_code=204, tags=["Menu"])
    async def delete_menu_item(menu_item_id: str) -> Response:
        """Delete a menu item."""
        await app.state.catalog_service.delete_menu_item(menu_item_id)
        return Response(status_code=204)

    # Orders

    @app.post(
        "/orders/batch-process",
        response_model=BatchResult,
        tags=["Orders"],
    )
    async def process_batch(payload: BatchOrderRequest) -> Union[BatchResult, JSONResponse]:
        """Place several orders, each in its own transaction.

        Returns:
            Per-order outcomes and the batch summary; 207 when the
            inventory summary could not be computed
        """
        logger.info(f"Batch of {len(payload.orders)} orders received")
        result: BatchResult = await app.state.batch_service.process_batch(payload.orders)

        if result.inventory_error:
            # Orders were placed, only the summary is incomplete
            return JSONResponse(status_code=207, content=result.model_dump(mode="json"))

        return result

    @app.post(
        "/orders",
        response_model=OrderCreatedResponse,
        status_code=201,
        tags=["Orders"],
    )
    async def place_order(payload: OrderRequest) -> Union[OrderCreatedResponse, JSONResponse]:
        """Place an order and consume its inventory.

        Returns:
            The new order id and total price
        """
        result = await app.state.order_service.place_order(payload)
        if not result.success:
            return error_response(result.error)

        return OrderCreatedResponse(
            order_id=result.order_id,
            total_price=result.total_price,
            status=OrderStatus.OPEN,
        )

    @app.get("/orders", response_model=list[Order], tags=["Orders"])
    async def list_orders() -> list[Order]:
        """List all orders, oldest first."""
        orders: list[Order] = await app.state.order_service.list_orders()
        return orders

    @app.get("/orders/{order_id}", response_model=Order, tags=["Orders"])
    async def get_order(order_id: str) -> Order:
        """Get an order with its line items."""
        order: Order = await app.state.order_service.get_order(order_id)
        return order

    @app.put("/orders/{order_id}", response_model=Order, tags=["Orders"])
    async def update_order(order_id: str, payload: OrderRequest) -> Order:
        """Replace the contents of an open order."""
        order: Order = await app.state.order_service.update_order(order_id, payload)
        return order

    @app.delete("/orders/{order_id}", status_code=204, tags=["Orders"])
    async def delete_order(order_id: str) -> Response:
        """Delete an order and its line items."""
        await app.state.order_service.delete_order(order_id)
        return Response(status_code=204)

    @app.post("/orders/{order_id}/close", response_model=OrderClosedResponse, tags=["Orders"])
    async def close_order(order_id: str) -> OrderClosedResponse:
        """Close an order."""
        await app.state.order_service.close_order(order_id)
        return OrderClosedResponse(order_id=order_id, status=OrderStatus.CLOSED)

    return app
