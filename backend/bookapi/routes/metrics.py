"""
BookAPI Backend - Metrics Route
================================

GET /metrics returns the in-process metrics snapshot:

    {
        "counters":   {"http.requests{operation=create,outcome=success}": 3, ...},
        "latency_ms": {"db.call_ms{operation=create,outcome=success}":
                          {"count": 3, "sum_ms": 3.6, "max_ms": 2.0}, ...}
    }

Disabled (404) unless ENABLE_METRICS_ENDPOINT is set and telemetry is on.
"""

from typing import Any, Dict

from fastapi import APIRouter, Request

from bookapi.exceptions import NotFoundError

router = APIRouter(tags=["Metrics"])


@router.get("/metrics", summary="In-process metrics snapshot")
async def metrics_snapshot(request: Request) -> Dict[str, Any]:
    app_settings = request.app.state.settings
    telemetry = getattr(request.app.state, "telemetry", None)
    if not app_settings.enable_metrics_endpoint or telemetry is None:
        raise NotFoundError(resource="endpoint", resource_id="/metrics")
    return telemetry.metrics.snapshot()
