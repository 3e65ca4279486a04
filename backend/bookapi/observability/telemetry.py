"""
BookAPI Backend - Telemetry Facade
===================================

What:  Bundles the metrics sink and the tracer behind calls that never raise.
Who:   Used by TelemetryMiddleware and InstrumentedBookGateway; exposed on
       app.state.telemetry for the /metrics endpoint.

Failure policy:
    Metrics are fire-and-forget. `count()` and `timing()` log a sink failure
    and return; a broken or unreachable sink cannot fail or block a request.
"""

import logging
from typing import Any, Optional

from bookapi.config import Settings
from bookapi.observability.metrics import InMemoryMetrics
from bookapi.observability.tracing import LoggingSpanExporter, Tracer

logger = logging.getLogger(__name__)


class Telemetry:
    def __init__(self, metrics: Optional[Any] = None, tracer: Optional[Tracer] = None):
        self.metrics = metrics if metrics is not None else InMemoryMetrics()
        self.tracer = tracer if tracer is not None else Tracer()

    def count(self, name: str, value: int = 1, **tags: Any) -> None:
        try:
            self.metrics.increment(name, value, **tags)
        except Exception:
            logger.warning("Metrics sink failed to record counter %s", name, exc_info=True)

    def timing(self, name: str, elapsed_ms: float, **tags: Any) -> None:
        try:
            self.metrics.observe(name, elapsed_ms, **tags)
        except Exception:
            logger.warning("Metrics sink failed to record timer %s", name, exc_info=True)

    def span(self, name: str, attributes: Optional[dict] = None, **kwargs: Any):
        return self.tracer.start_span(name, attributes=attributes, **kwargs)


def build_telemetry(app_settings: Settings) -> Telemetry:
    """Default telemetry for a running service: in-memory metrics, logged spans."""
    tracer = Tracer(
        service_name=app_settings.service_name,
        exporters=[LoggingSpanExporter()],
        resource={
            "service.version": app_settings.service_version,
            "deployment.environment": app_settings.environment,
        },
    )
    return Telemetry(metrics=InMemoryMetrics(), tracer=tracer)
