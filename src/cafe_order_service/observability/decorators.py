"""OpenTelemetry tracing decorators."""

import asyncio
import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from opentelemetry import trace
from opentelemetry.trace import Span

# Type variable for generic function signatures
F = TypeVar("F", bound=Callable[..., Any])


def _record_outcome(span: Span, result: Any) -> None:
    """Mark the span successful, honouring result objects that carry their own outcome.

    Operations such as order placement report failures as values instead of
    raising, so a result with success=False marks the span as failed too.
    """
    success = getattr(result, "success", True)
    span.set_attribute("success", bool(success))

    error = getattr(result, "error", None)
    code = getattr(error, "code", None)
    if code is not None:
        span.set_attribute("error.code", str(getattr(code, "value", code)))

    stage = getattr(result, "stage", None)
    if stage is not None:
        span.set_attribute("order.stage", str(getattr(stage, "value", stage)))


@contextmanager
def _span(tracer: trace.Tracer, name: str, service_name: str, func_name: str | None) -> Iterator[Span]:
    with tracer.start_as_current_span(name) as span:
        span.set_attribute("service.name", service_name)
        if func_name:
            span.set_attribute("function.name", func_name)

        try:
            yield span
        except Exception as e:
            span.set_attribute("success", False)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            raise


def traced(span_name: str | None = None, service_name: str = "order-svc") -> Callable[[F], F]:
    """Decorator to add OpenTelemetry tracing to a function.

    Creates a new span for the decorated function with automatic error tracking.
    Async functions are supported.

    Args:
        span_name: Name for the span (defaults to function name if not provided)
        service_name: Service name for span attributes

    Returns:
        Decorated function with tracing

    Example:
        @traced("place_order", service_name="order-svc")
        async def place_order(self, request: OrderRequest) -> OrderResult:
            ...
    """

    def decorator(func: F) -> F:
        name = span_name or func.__name__
        # Record the function name only when it differs from the span name
        func_name = func.__name__ if span_name else None
        tracer = trace.get_tracer(service_name)

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _span(tracer, name, service_name, func_name) as span:
                result = await func(*args, **kwargs)
                _record_outcome(span, result)
                return result

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _span(tracer, name, service_name, func_name) as span:
                result = func(*args, **kwargs)
                _record_outcome(span, result)
                return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator
