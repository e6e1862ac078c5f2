"""Order transaction coordinator.

Placing an order creates the order row, its line items and every inventory
decrement in a single DynamoDB transaction, so an order either commits with
all of its stock consumed or leaves no trace at all.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from cafe_order_service.models.errors import (
    DuplicateOrderError,
    InsufficientStockError,
    OrderError,
    OrderErrorCode,
    OrderServiceError,
    OrderTimeoutError,
    RecordNotFoundError,
    TransactionConflictError,
    UnknownInventoryItemError,
    UnknownMenuItemError,
    ValidationFailedError,
)
from cafe_order_service.models.menu_models import MenuItem
from cafe_order_service.models.order_models import (
    Order,
    OrderLineItem,
    OrderLineItemRequest,
    OrderRequest,
    OrderStatus,
    PlacementStage,
)
from cafe_order_service.observability import traced
from cafe_order_service.observability.metrics import (
    record_inventory_shortfall,
    record_order_placed,
    record_order_rejected,
    record_placement_duration,
    record_transaction_retry,
)
from cafe_order_service.repositories.order_repository import OrderRepository
from cafe_order_service.repositories.transaction import MAX_TRANSACTION_ACTIONS, transaction
from cafe_order_service.services.catalog_service import CatalogService
from cafe_order_service.services.inventory_service import InventoryService
from cafe_order_service.services.validators import validate_order

logger = logging.getLogger(__name__)

# Abort stage of a failed commit, keyed by the error of the failing action
COMMIT_FAILURE_STAGES: dict[type[OrderServiceError], PlacementStage] = {
    DuplicateOrderError: PlacementStage.CREATING,
    UnknownMenuItemError: PlacementStage.CREATING,
    InsufficientStockError: PlacementStage.CONSUMING_INVENTORY,
    UnknownInventoryItemError: PlacementStage.CONSUMING_INVENTORY,
}


@dataclass
class OrderResult:
    """Result of placing a single order.

    Attributes:
        success: Whether the order was committed
        stage: Stage the placement ended in (committed, or the stage it aborted in)
        order_id: Identifier of the committed order, None on failure
        total_price: Sum of line totals of the committed order
        order: The committed order
        error: Failure details, None on success
    """

    success: bool
    stage: PlacementStage
    order_id: str | None = None
    total_price: Decimal | None = None
    order: Order | None = None
    error: OrderError | None = None


def aggregate_inventory_needs(
    items: list[OrderLineItemRequest], menu_items: dict[str, MenuItem]
) -> dict[str, int]:
    """Sum the inventory an order consumes, per inventory item.

    Two line items sharing an ingredient produce one entry, so each inventory
    item is decremented exactly once per order.

    Args:
        items: Line items of the order
        menu_items: menu_item_id to MenuItem for every line item

    Returns:
        dict: inventory_id to total quantity required, in first-use order
    """
    needs: dict[str, int] = {}
    for line in items:
        for requirement in menu_items[line.menu_item_id].requirements:
            needs[requirement.inventory_id] = (
                needs.get(requirement.inventory_id, 0) + requirement.quantity * line.quantity
            )
    return needs


class OrderService:
    """Service coordinating order placement and the order lifecycle.

    Placement runs validating -> creating -> consuming_inventory -> committed.
    Any failure before commit discards the staged transaction and the result
    reports the stage it aborted in. Transactions cancelled by a concurrent
    writer are retried a bounded number of times.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        catalog_service: CatalogService,
        inventory_service: InventoryService,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.05,
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the OrderService.

        Args:
            order_repository: Repository for orders and line items
            catalog_service: Resolves menu items to inventory requirements
            inventory_service: Ledger that stages inventory decrements
            max_attempts: Placement attempts when transactions conflict
            retry_delay_seconds: Base delay between attempts (multiplied by attempt number)
            timeout_seconds: Deadline for a placement, checked before commit
        """
        self.order_repository = order_repository
        self.catalog_service = catalog_service
        self.inventory_service = inventory_service
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds

    @traced("place_order", service_name="order-svc")
    async def place_order(self, request: OrderRequest) -> OrderResult:
        """Validate an order and commit it together with its inventory consumption.

        The blocking DynamoDB work runs in a worker thread so concurrent
        placements overlap on storage I/O.

        Args:
            request: Submitted order

        Returns:
            OrderResult with the committed order, or the error and abort stage
        """
        started = time.monotonic()
        deadline = started + self.timeout_seconds

        attempt = 1
        while True:
            try:
                result = await asyncio.to_thread(self._place_once, request, deadline)
                break
            except TransactionConflictError as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Order for {request.customer_name!r} still conflicting after {attempt} attempts"
                    )  # pragma: no cover
                    result = self._aborted(PlacementStage.CONSUMING_INVENTORY, e)
                    break
                logger.warning(
                    f"Transaction conflict placing order for {request.customer_name!r}, "
                    f"retrying (attempt {attempt + 1}/{self.max_attempts})"
                )
                record_transaction_retry()
                await asyncio.sleep(self.retry_delay_seconds * attempt)
                attempt += 1

        record_placement_duration(result.success, time.monotonic() - started)
        if result.success:
            record_order_placed(len(request.items))
        elif result.error is not None:
            record_order_rejected(result.error.code.value)
        return result

    def _place_once(self, request: OrderRequest, deadline: float) -> OrderResult:
        """Run one placement attempt.

        Raises:
            TransactionConflictError: So the caller can retry the attempt
        """
        stage = PlacementStage.VALIDATING
        try:
            field_errors = validate_order(request)
            if field_errors:
                raise ValidationFailedError(field_errors)

            stage = PlacementStage.CREATING
            menu_items = self.catalog_service.lookup_menu_items(
                [line.menu_item_id for line in request.items]
            )
            order = self._build_order(f"ord_{uuid.uuid4().hex[:12]}", request, menu_items)

            with transaction(self.order_repository.client) as tx:
                self.order_repository.stage_create(tx, order)
                for menu_item_id in menu_items:
                    self.catalog_service.stage_exists_check(tx, menu_item_id)

                stage = PlacementStage.CONSUMING_INVENTORY
                needs = aggregate_inventory_needs(request.items, menu_items)
                if len(tx) + len(needs) > MAX_TRANSACTION_ACTIONS:
                    raise ValidationFailedError(
                        {"items": "Order consumes too many inventory items for one transaction"}
                    )
                self.inventory_service.stage_consumption(tx, needs)

                if time.monotonic() > deadline:
                    raise OrderTimeoutError(f"Placement exceeded {self.timeout_seconds}s deadline")
        except TransactionConflictError:
            raise
        except OrderServiceError as e:
            return self._aborted(COMMIT_FAILURE_STAGES.get(type(e), stage), e)
        except Exception as e:
            logger.exception(f"Unexpected error placing order in stage {stage.value}: {e}")
            return OrderResult(
                success=False,
                stage=stage,
                error=OrderError(OrderErrorCode.INTERNAL_ERROR, "Unexpected error placing order"),
            )

        logger.info(
            f"Committed order {order.order_id} for {order.customer_name!r}: "
            f"{len(order.items)} line items, {len(needs)} inventory items consumed, "
            f"total {order.total_price}"
        )
        return OrderResult(
            success=True,
            stage=PlacementStage.COMMITTED,
            order_id=order.order_id,
            total_price=order.total_price,
            order=order,
        )

    def _aborted(self, stage: PlacementStage, error: OrderServiceError) -> OrderResult:
        if isinstance(error, InsufficientStockError):
            record_inventory_shortfall(error.inventory_id)
        logger.info(f"Order placement aborted in stage {stage.value}: {error}")
        return OrderResult(success=False, stage=stage, error=error.to_error())

    @traced("close_order", service_name="order-svc")
    async def close_order(self, order_id: str) -> None:
        """Mark an order closed. Closing a closed order succeeds again.

        Raises:
            RecordNotFoundError: If the order does not exist
        """
        self.order_repository.close_order(order_id)
        logger.info(f"Closed order {order_id}")

    async def get_order(self, order_id: str) -> Order:
        """Get an order with its line items.

        Raises:
            RecordNotFoundError: If the order does not exist
        """
        order = self.order_repository.get_order(order_id)
        if order is None:
            raise RecordNotFoundError("Order", order_id)
        return order

    async def list_orders(self) -> list[Order]:
        """List all orders, oldest first."""
        return self.order_repository.list_orders()

    async def update_order(self, order_id: str, request: OrderRequest) -> Order:
        """Replace the customer fields and line items of an open order.

        Inventory is not adjusted: stock consumed when the order was placed
        stays consumed.

        Args:
            order_id: Order identifier
            request: Replacement payload

        Returns:
            The updated Order

        Raises:
            ValidationFailedError: If the payload is invalid
            UnknownMenuItemError: If a line item references a missing menu item
            RecordNotFoundError: If the order does not exist or is closed
        """
        field_errors = validate_order(request)
        if field_errors:
            raise ValidationFailedError(field_errors)

        existing = self.order_repository.get_order(order_id)
        if existing is None:
            raise RecordNotFoundError("Order", order_id)
        if existing.status != OrderStatus.OPEN:
            raise RecordNotFoundError("Open order", order_id)

        menu_items = self.catalog_service.lookup_menu_items(
            [line.menu_item_id for line in request.items]
        )
        order = self._build_order(order_id, request, menu_items, created_at=existing.created_at)

        with transaction(self.order_repository.client) as tx:
            self.order_repository.stage_replace(tx, order, existing.items)
            for menu_item_id in menu_items:
                self.catalog_service.stage_exists_check(tx, menu_item_id)
            if len(tx) > MAX_TRANSACTION_ACTIONS:
                raise ValidationFailedError(
                    {"items": "Order update touches too many line items for one transaction"}
                )

        logger.info(f"Updated order {order_id}: {len(order.items)} line items")
        return order

    async def delete_order(self, order_id: str) -> None:
        """Delete an order and its line items. Inventory is not restored.

        Raises:
            RecordNotFoundError: If the order does not exist
        """
        line_items = self.order_repository.get_line_items(order_id)
        with transaction(self.order_repository.client) as tx:
            self.order_repository.stage_delete(tx, order_id, line_items)
        logger.info(f"Deleted order {order_id}")

    def _build_order(
        self,
        order_id: str,
        request: OrderRequest,
        menu_items: dict[str, MenuItem],
        created_at: datetime | None = None,
    ) -> Order:
        lines = [
            OrderLineItem(
                menu_item_id=line.menu_item_id,
                quantity=line.quantity,
                unit_price=menu_items[line.menu_item_id].price,
            )
            for line in request.items
        ]
        total = sum((line.unit_price * line.quantity for line in lines), Decimal("0"))

        return Order(
            order_id=order_id,
            customer_name=request.customer_name.strip(),
            status=OrderStatus.OPEN,
            created_at=created_at or datetime.now(UTC),
            customer_preferences=request.customer_preferences,
            items=lines,
            total_price=total,
        )
