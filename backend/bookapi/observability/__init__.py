"""
BookAPI Backend - Observability Package
========================================

What:  Tracing and metrics hooks layered around the router and the gateway.

Modules:
    - metrics.py:    InMemoryMetrics (counters + latency aggregates)
    - tracing.py:    Tracer / Span / exporters
    - telemetry.py:  Telemetry facade whose recording calls never raise
    - gateway.py:    InstrumentedBookGateway decorator

The request-level hook is bookapi.middleware.telemetry.TelemetryMiddleware.
Route handlers and BookGateway contain no instrumentation of their own.
"""
