"""Custom metrics for the cafe order service."""

from opentelemetry import metrics

# Get meter for order service
meter = metrics.get_meter("order-svc")

# Order placement outcome counters
orders_placed_counter = meter.create_counter(
    name="orders_placed_total",
    description="Total number of orders committed",
    unit="1",
)

orders_rejected_counter = meter.create_counter(
    name="orders_rejected_total",
    description="Total number of orders aborted by error code",
    unit="1",
)

# Placement duration histogram
placement_duration_histogram = meter.create_histogram(
    name="order_placement_duration_seconds",
    description="Duration of order placement including conflict retries",
    unit="s",
)

inventory_shortfall_counter = meter.create_counter(
    name="inventory_shortfall_total",
    description="Total number of orders rejected for insufficient stock by inventory item",
    unit="1",
)

transaction_retry_counter = meter.create_counter(
    name="order_transaction_retries_total",
    description="Total number of placement attempts retried after a transaction conflict",
    unit="1",
)

# Batch size histogram
batch_size_histogram = meter.create_histogram(
    name="order_batch_size",
    description="Number of orders submitted per batch",
    unit="1",
)


def record_order_placed(line_item_count: int) -> None:
    """Record a committed order.

    Args:
        line_item_count: Number of line items in the order
    """
    orders_placed_counter.add(1, {"line_items": line_item_count})


def record_order_rejected(reason: str) -> None:
    """Record an aborted order.

    Args:
        reason: Error code the placement failed with
    """
    orders_rejected_counter.add(1, {"reason": reason})


def record_placement_duration(success: bool, duration_seconds: float) -> None:
    """Record the duration of an order placement.

    Args:
        success: Whether the order was committed
        duration_seconds: Duration in seconds
    """
    placement_duration_histogram.record(duration_seconds, {"success": success})


def record_inventory_shortfall(inventory_id: str) -> None:
    """Record an order rejected because an inventory item ran short.

    Args:
        inventory_id: The inventory item that could not cover the order
    """
    inventory_shortfall_counter.add(1, {"inventory_id": inventory_id})


def record_transaction_retry() -> None:
    """Record a placement attempt retried after a transaction conflict."""
    transaction_retry_counter.add(1)


def record_batch_processed(order_count: int, accepted: int) -> None:
    """Record a processed batch.

    Args:
        order_count: Orders submitted in the batch
        accepted: Orders committed
    """
    batch_size_histogram.record(order_count, {"all_accepted": accepted == order_count})
