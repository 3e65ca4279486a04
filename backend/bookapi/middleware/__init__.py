# Middleware package init
"""
BookAPI Backend - Middleware Package
=====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Telemetry] → [Logging] → [Deadline] → Route Handler

    1. Request ID: correlation ID for log lines, spans and the response header
    2. Telemetry: request span plus http.requests / http.request_ms (optional)
    3. Logging: one access-log line with status and duration
    4. Deadline: cancels the handler and answers 504 after REQUEST_TIMEOUT

    Telemetry sits outside the deadline so a timed-out request is still
    counted with outcome=timeout.
"""
