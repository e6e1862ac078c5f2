"""Environment-driven construction of the DynamoDB resource and services."""

import logging
import os
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.config import Config

from cafe_order_service.repositories.inventory_repository import InventoryRepository
from cafe_order_service.repositories.menu_repository import MenuRepository
from cafe_order_service.repositories.order_repository import OrderRepository
from cafe_order_service.services.batch_service import BatchOrderService
from cafe_order_service.services.catalog_service import CatalogService
from cafe_order_service.services.inventory_service import InventoryService
from cafe_order_service.services.order_service import OrderService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every service the API needs, sharing one DynamoDB resource."""

    inventory_service: InventoryService
    catalog_service: CatalogService
    order_service: OrderService
    batch_service: BatchOrderService


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Connect and read timeouts come from DYNAMODB_TIMEOUT_SECONDS. botocore's
    own retries are limited to throttling and transient errors; transaction
    conflicts are retried by the order service.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")
    timeout = float(os.getenv("DYNAMODB_TIMEOUT_SECONDS", "5"))
    config = Config(
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"max_attempts": 3, "mode": "standard"},
    )

    if endpoint_url:
        # Local DynamoDB - use environment variables or defaults for credentials
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            config=config,
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # Production - boto3 will use default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region, config=config)


def build_services(dynamodb_resource: Any) -> Services:
    """Create repositories and services from environment variables.

    Args:
        dynamodb_resource: Boto3 DynamoDB resource shared by all repositories

    Returns:
        Services ready to be handed to create_app
    """
    inventory_table = os.getenv("DYNAMODB_INVENTORY_TABLE", "cafe-inventory")
    menu_table = os.getenv("DYNAMODB_MENU_TABLE", "cafe-menu-items")
    orders_table = os.getenv("DYNAMODB_ORDERS_TABLE", "cafe-orders")
    order_items_table = os.getenv("DYNAMODB_ORDER_ITEMS_TABLE", "cafe-order-items")

    inventory_repository = InventoryRepository(
        dynamodb_resource=dynamodb_resource, table_name=inventory_table
    )
    menu_repository = MenuRepository(dynamodb_resource=dynamodb_resource, table_name=menu_table)
    order_repository = OrderRepository(
        dynamodb_resource=dynamodb_resource,
        orders_table_name=orders_table,
        order_items_table_name=order_items_table,
    )

    logger.info(
        f"Repositories configured - inventory: {inventory_table}, menu: {menu_table}, "
        f"orders: {orders_table}, order items: {order_items_table}"
    )

    inventory_service = InventoryService(inventory_repository=inventory_repository)
    catalog_service = CatalogService(
        menu_repository=menu_repository, inventory_repository=inventory_repository
    )
    order_service = OrderService(
        order_repository=order_repository,
        catalog_service=catalog_service,
        inventory_service=inventory_service,
        max_attempts=int(os.getenv("ORDER_TRANSACTION_ATTEMPTS", "3")),
        retry_delay_seconds=float(os.getenv("ORDER_RETRY_DELAY_SECONDS", "0.05")),
        timeout_seconds=float(os.getenv("ORDER_TIMEOUT_SECONDS", "10")),
    )
    batch_service = BatchOrderService(
        order_service=order_service,
        order_repository=order_repository,
        catalog_service=catalog_service,
        inventory_service=inventory_service,
        max_concurrency=int(os.getenv("BATCH_MAX_CONCURRENCY", "1")),
    )

    logger.info("Services initialized")

    return Services(
        inventory_service=inventory_service,
        catalog_service=catalog_service,
        order_service=order_service,
        batch_service=batch_service,
    )
