"""
BookAPI Backend - Application Package Initializer
==================================================

HTTP service exposing CRUD over a single `books` table.

    ┌─────────────────────────────────────┐
    │   Middleware (ID, telemetry, logs)  │
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     BookGateway (+ instrumentation) │  ← SQL, row decoding
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy table + Pydantic
    ├─────────────────────────────────────┤
    │      Async engine (connection pool) │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
