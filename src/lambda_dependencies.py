"""Cached dependency factory for the Lambda handler.

Dependencies are created once per Lambda container and reused across warm
invocations.
"""

import logging
import os
from typing import Any

from fastapi import FastAPI

from cafe_order_service.dependencies import Services, build_services
from cafe_order_service.dependencies import get_dynamodb_resource as create_dynamodb_resource
from cafe_order_service.handlers.api_handler import create_app
from cafe_order_service.observability import configure_logging, setup_observability

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_services: Services | None = None
_fastapi_app: FastAPI | None = None


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource."""
    global _dynamodb_resource

    if _dynamodb_resource is None:
        _dynamodb_resource = create_dynamodb_resource()
    return _dynamodb_resource


def get_services() -> Services:
    """Create or retrieve cached services.

    Returns:
        Services sharing the cached DynamoDB resource
    """
    global _services

    if _services is None:
        _services = build_services(get_dynamodb_resource())
    return _services


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    services = get_services()
    _fastapi_app = create_app(
        inventory_service=services.inventory_service,
        catalog_service=services.catalog_service,
        order_service=services.order_service,
        batch_service=services.batch_service,
    )
    setup_observability(_fastapi_app)

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize Lambda environment with logging.

    Should be called once during Lambda cold start.
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Lambda environment initialized")
