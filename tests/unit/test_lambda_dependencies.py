"""Unit tests for Lambda dependency factory."""

from collections.abc import Iterator
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi import FastAPI

import src.lambda_dependencies as deps
from cafe_order_service.dependencies import Services
from src.lambda_dependencies import (
    get_dynamodb_resource,
    get_fastapi_app,
    get_services,
    initialize_lambda_environment,
)


@pytest.fixture(autouse=True)
def clear_caches() -> Iterator[None]:
    """Reset module-level caches around each test."""
    deps._dynamodb_resource = None
    deps._services = None
    deps._fastapi_app = None
    yield
    deps._dynamodb_resource = None
    deps._services = None
    deps._fastapi_app = None


@pytest.mark.unit
class TestGetDynamoDBResource:
    """Tests for get_dynamodb_resource function."""

    @patch("src.lambda_dependencies.create_dynamodb_resource")
    def test_caches_resource_for_reuse(self, mock_create: Mock) -> None:
        """Test that DynamoDB resource is cached and reused across calls."""
        mock_create.return_value = MagicMock()

        first = get_dynamodb_resource()
        second = get_dynamodb_resource()

        assert first is second
        mock_create.assert_called_once()


@pytest.mark.unit
class TestGetServices:
    """Tests for get_services function."""

    @patch("src.lambda_dependencies.build_services")
    @patch("src.lambda_dependencies.create_dynamodb_resource")
    def test_builds_services_once(self, mock_create: Mock, mock_build: Mock) -> None:
        """Test that services are built once from the cached resource."""
        mock_dynamodb = MagicMock()
        mock_create.return_value = mock_dynamodb
        mock_build.return_value = MagicMock(spec=Services)

        first = get_services()
        second = get_services()

        assert first is second
        mock_build.assert_called_once_with(mock_dynamodb)


@pytest.mark.unit
class TestGetFastAPIApp:
    """Tests for get_fastapi_app function."""

    @patch("src.lambda_dependencies.setup_observability")
    @patch("src.lambda_dependencies.create_app")
    @patch("src.lambda_dependencies.get_services")
    def test_creates_and_caches_app(
        self, mock_get_services: Mock, mock_create_app: Mock, mock_setup_observability: Mock
    ) -> None:
        """Test that the app is wired once and instrumented."""
        services = MagicMock(spec=Services)
        mock_get_services.return_value = services
        mock_app = MagicMock(spec=FastAPI)
        mock_create_app.return_value = mock_app

        first = get_fastapi_app()
        second = get_fastapi_app()

        assert first is second is mock_app
        mock_create_app.assert_called_once_with(
            inventory_service=services.inventory_service,
            catalog_service=services.catalog_service,
            order_service=services.order_service,
            batch_service=services.batch_service,
        )
        mock_setup_observability.assert_called_once_with(mock_app)


@pytest.mark.unit
class TestInitializeLambdaEnvironment:
    """Tests for initialize_lambda_environment function."""

    @patch.dict("os.environ", {"LOG_LEVEL": "WARNING"}, clear=True)
    @patch("src.lambda_dependencies.configure_logging")
    def test_configures_logging(self, mock_configure_logging: Mock) -> None:
        """Test that logging is configured from LOG_LEVEL."""
        initialize_lambda_environment()

        mock_configure_logging.assert_called_once_with("WARNING")
