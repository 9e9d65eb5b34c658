from asyncio import iscoroutinefunction
from enum import Enum
from functools import wraps
from os import environ

from opentelemetry import metrics, trace
from opentelemetry.metrics._internal.instrument import Counter, Gauge
from opentelemetry.semconv.attributes import service_attributes
from opentelemetry.trace.span import INVALID_SPAN
from opentelemetry.util.types import Attributes, AttributeValue
from structlog.contextvars import bind_contextvars, get_contextvars

MODULE_NAME = "memo"
VERSION = environ.get("VERSION", "0.0.0-unknown")


class SpanAttributeEnum(str, Enum):
    """
    OpenTelemetry attributes.

    These attributes are used to track a reconciliation pass in the logs and metrics.
    """

    LIST_ID = "list.id"
    """Technical list identifier."""
    LIST_REMINDERS = "list.reminders"
    """Count of reminders in the list."""
    TRIGGER_ID = "trigger.id"
    """Notification identifier submitted to the gateway."""

    def attribute(
        self,
        value: AttributeValue,
    ) -> None:
        """
        Set an attribute on the current span.
        """
        # Enrich logging
        bind_contextvars(**{self.value: value})

        # Enrich span
        span = trace.get_current_span()
        if span == INVALID_SPAN:
            return
        span.set_attribute(self.value, value)


class SpanMeterEnum(str, Enum):
    NOTIFICATION_CANCELED = "notification.canceled"
    """Pending triggers canceled before a reschedule."""
    NOTIFICATION_PENDING = "notification.pending"
    """Estimated pending triggers after a reconciliation pass."""
    NOTIFICATION_SCHEDULED = "notification.scheduled"
    """Triggers accepted by the gateway."""
    NOTIFICATION_SKIPPED = "notification.skipped"
    """Triggers not submitted, either failed or above the capacity."""

    def counter(
        self,
        unit: str,
    ) -> Counter:
        """
        Create a counter metric to track a span counter.
        """
        return meter.create_counter(
            description=self.__doc__ or "",
            name=self.value,
            unit=unit,
        )

    def gauge(
        self,
        unit: str,
    ) -> Gauge:
        """
        Create a gauge metric to track a span counter.
        """
        return meter.create_gauge(
            description=self.__doc__ or "",
            name=self.value,
            unit=unit,
        )


# Attributes
_default_attributes = {
    service_attributes.SERVICE_NAME: MODULE_NAME,
    service_attributes.SERVICE_VERSION: VERSION,
}

# Create a tracer and meter that will be used across the application, exporters are configured by the host
tracer = trace.get_tracer(
    attributes=_default_attributes,
    instrumenting_module_name=MODULE_NAME,
)
meter = metrics.get_meter(
    name=MODULE_NAME,
)

# Init metrics
notification_canceled = SpanMeterEnum.NOTIFICATION_CANCELED.counter("triggers")
notification_pending = SpanMeterEnum.NOTIFICATION_PENDING.gauge("triggers")
notification_scheduled = SpanMeterEnum.NOTIFICATION_SCHEDULED.counter("triggers")
notification_skipped = SpanMeterEnum.NOTIFICATION_SKIPPED.counter("triggers")


def gauge_set(
    metric: Gauge,
    value: float | int,
):
    """
    Set a gauge metric value with context attributes.
    """
    metric.set(
        amount=value,
        attributes={
            # First, set default attributes
            **_default_attributes,
            # Then, set context attributes, they can override default attributes
            **get_contextvars(),
        },
    )


def counter_add(
    metric: Counter,
    value: float | int,
):
    """
    Add a counter metric value with context attributes.
    """
    metric.add(
        amount=value,
        attributes={
            **_default_attributes,
            **get_contextvars(),
        },
    )


def start_as_current_span(
    name: str,
    attributes: Attributes = None,
):
    """
    Decorator to start an OTEL span for the function and set it as the current.
    """

    def _wrapper(func):
        @wraps(func)
        def _inner(*args, **kwargs):
            with tracer.start_as_current_span(
                attributes=attributes,
                name=name,
            ):
                return func(*args, **kwargs)

        @wraps(func)
        async def _async_inner(*args, **kwargs):
            with tracer.start_as_current_span(
                attributes=attributes,
                name=name,
            ):
                return await func(*args, **kwargs)

        return _async_inner if iscoroutinefunction(func) else _inner

    return _wrapper

