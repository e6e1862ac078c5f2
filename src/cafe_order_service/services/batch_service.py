"""Batch order processing."""

import asyncio
import logging
from decimal import Decimal

from cafe_order_service.models.errors import OrderErrorCode, OrderServiceError
from cafe_order_service.models.order_models import (
    BatchInventoryUpdate,
    BatchOrderStatus,
    BatchRejectionReason,
    BatchResult,
    BatchSummary,
    OrderRequest,
    ProcessedOrder,
)
from cafe_order_service.observability import traced
from cafe_order_service.observability.metrics import record_batch_processed
from cafe_order_service.repositories.order_repository import OrderRepository
from cafe_order_service.services.catalog_service import CatalogService
from cafe_order_service.services.inventory_service import InventoryService
from cafe_order_service.services.order_service import OrderResult, OrderService

logger = logging.getLogger(__name__)

REJECTION_REASONS: dict[OrderErrorCode, BatchRejectionReason] = {
    OrderErrorCode.VALIDATION_FAILED: BatchRejectionReason.MISSING_FIELDS,
    OrderErrorCode.UNKNOWN_MENU_ITEM: BatchRejectionReason.UNKNOWN_MENU_ITEM,
    OrderErrorCode.INSUFFICIENT_STOCK: BatchRejectionReason.INSUFFICIENT_INVENTORY,
    OrderErrorCode.UNKNOWN_INVENTORY_ITEM: BatchRejectionReason.INTERNAL_ERROR,
    OrderErrorCode.DUPLICATE_ORDER: BatchRejectionReason.INTERNAL_ERROR,
    OrderErrorCode.NOT_FOUND: BatchRejectionReason.INTERNAL_ERROR,
    OrderErrorCode.INTERNAL_ERROR: BatchRejectionReason.INTERNAL_ERROR,
}


class BatchOrderService:
    """Service for placing a list of orders and summarizing the outcome.

    Every order is placed as its own atomic unit: a rejected order never
    affects the orders around it. Inventory consumption is summarized once,
    after all orders have been placed, from what was actually committed.
    """

    def __init__(
        self,
        order_service: OrderService,
        order_repository: OrderRepository,
        catalog_service: CatalogService,
        inventory_service: InventoryService,
        max_concurrency: int = 1,
    ) -> None:
        """Initialize the BatchOrderService.

        Args:
            order_service: Coordinator placing each order
            order_repository: Repository used to read back committed line items
            catalog_service: Resolves committed line items to inventory usage
            inventory_service: Provides names and remaining quantities
            max_concurrency: Orders placed at the same time (1 = sequential)
        """
        self.order_service = order_service
        self.order_repository = order_repository
        self.catalog_service = catalog_service
        self.inventory_service = inventory_service
        self.max_concurrency = max(1, max_concurrency)

    @traced("process_batch", service_name="order-svc")
    async def process_batch(self, requests: list[OrderRequest]) -> BatchResult:
        """Place every order of a batch and build the batch summary.

        Args:
            requests: Orders in submission order

        Returns:
            BatchResult with one ProcessedOrder per request, in input order
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def place(request: OrderRequest) -> OrderResult:
            async with semaphore:
                return await self.order_service.place_order(request)

        results = await asyncio.gather(*(place(r) for r in requests))
        processed = [self._to_processed(req, res) for req, res in zip(requests, results)]

        accepted = [p for p in processed if p.status == BatchOrderStatus.ACCEPTED]
        summary = BatchSummary(
            total_orders=len(processed),
            accepted=len(accepted),
            rejected=len(processed) - len(accepted),
            total_revenue=sum((p.total or Decimal("0") for p in accepted), Decimal("0")),
        )

        inventory_error: str | None = None
        accepted_ids = [p.order_id for p in accepted if p.order_id]
        try:
            summary.inventory_updates = await asyncio.to_thread(
                self._inventory_updates, accepted_ids
            )
        except OrderServiceError as e:
            logger.error(f"Failed to summarize batch inventory usage: {e}")  # pragma: no cover
            inventory_error = "Failed to compute inventory updates"
        except Exception as e:
            # orders are already committed, so the batch result is still returned
            logger.exception(f"Unexpected error summarizing batch inventory usage: {e}")
            inventory_error = "Failed to compute inventory updates"

        logger.info(
            f"Processed batch of {summary.total_orders} orders: "
            f"{summary.accepted} accepted, {summary.rejected} rejected, "
            f"revenue {summary.total_revenue}"
        )
        record_batch_processed(summary.total_orders, summary.accepted)

        return BatchResult(
            processed_orders=processed,
            summary=summary,
            inventory_error=inventory_error,
        )

    def _to_processed(self, request: OrderRequest, result: OrderResult) -> ProcessedOrder:
        if result.success:
            return ProcessedOrder(
                order_id=result.order_id,
                customer_name=request.customer_name,
                status=BatchOrderStatus.ACCEPTED,
                total=result.total_price,
            )

        code = result.error.code if result.error else OrderErrorCode.INTERNAL_ERROR
        return ProcessedOrder(
            customer_name=request.customer_name,
            status=BatchOrderStatus.REJECTED,
            reason=REJECTION_REASONS[code],
        )

    def _inventory_updates(self, order_ids: list[str]) -> list[BatchInventoryUpdate]:
        """Aggregate inventory consumed by the given committed orders.

        Args:
            order_ids: Identifiers of the orders accepted in this batch

        Returns:
            list: One BatchInventoryUpdate per consumed inventory item, by name
        """
        if not order_ids:
            return []

        lines_by_order = self.order_repository.get_line_items_for_orders(order_ids)
        lines = [line for order_lines in lines_by_order.values() for line in order_lines]
        menu_items = self.catalog_service.find_menu_items([line.menu_item_id for line in lines])

        used: dict[str, int] = {}
        for line in lines:
            menu_item = menu_items.get(line.menu_item_id)
            if menu_item is None:
                logger.warning(
                    f"Menu item {line.menu_item_id} deleted after placement, usage not reported"
                )
                continue
            for requirement in menu_item.requirements:
                used[requirement.inventory_id] = (
                    used.get(requirement.inventory_id, 0) + requirement.quantity * line.quantity
                )

        inventory = self.inventory_service.find_items(list(used))
        updates = [
            BatchInventoryUpdate(
                inventory_id=inventory_id,
                name=inventory[inventory_id].name,
                quantity_used=quantity,
                remaining=inventory[inventory_id].quantity,
            )
            for inventory_id, quantity in used.items()
            if inventory_id in inventory
        ]
        return sorted(updates, key=lambda u: u.name)
