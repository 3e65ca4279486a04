"""
BookAPI Backend - Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── test_settings: Settings pointing at a fresh SQLite file in tmp_path
    ├── engine: AsyncEngine with the books table created
    ├── gateway: BookGateway over that engine
    ├── metrics / span_exporter / telemetry: in-memory observability sinks
    ├── app: FastAPI app with the gateway and telemetry injected
    ├── test_client: HTTPX AsyncClient for API endpoint testing
    └── mock_gateway: AsyncMock standing in for BookGateway

The app is driven through ASGITransport, which does not run the lifespan;
that is why the gateway is injected instead of built at startup.
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from bookapi.config import Settings  # noqa: E402
from bookapi.database import Base, create_engine_from_settings  # noqa: E402
from bookapi.main import create_app  # noqa: E402
from bookapi.observability.metrics import InMemoryMetrics  # noqa: E402
from bookapi.observability.telemetry import Telemetry  # noqa: E402
from bookapi.observability.tracing import InMemorySpanExporter, Tracer  # noqa: E402
from bookapi.services.book_gateway import BookGateway  # noqa: E402


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings for one test: its own SQLite file, metrics endpoint on."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'books.db'}",
        log_level="WARNING",
        request_timeout=5.0,
        telemetry_enabled=True,
        enable_metrics_endpoint=True,
        environment="test",
    )


@pytest_asyncio.fixture
async def engine(test_settings):
    """
    Async engine with the schema created.

    A file database (not :memory:) so concurrent requests on separate pooled
    connections see the same data.
    """
    engine = create_engine_from_settings(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def gateway(engine) -> BookGateway:
    return BookGateway(engine)


@pytest.fixture
def metrics() -> InMemoryMetrics:
    return InMemoryMetrics()


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    return InMemorySpanExporter()


@pytest.fixture
def telemetry(metrics, span_exporter) -> Telemetry:
    return Telemetry(metrics=metrics, tracer=Tracer(exporters=[span_exporter]))


@pytest.fixture
def app(test_settings, gateway, telemetry):
    return create_app(test_settings, gateway=gateway, telemetry=telemetry)


@pytest_asyncio.fixture
async def test_client(app) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/healthz")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_gateway():
    """AsyncMock with the BookGateway surface, for failure-path tests."""
    gateway = AsyncMock(spec=BookGateway)
    gateway.list_books.return_value = []
    gateway.get_book.return_value = []
    gateway.update_book.return_value = 1
    gateway.delete_book.return_value = 1
    gateway.ping.return_value = True
    return gateway


@pytest.fixture
def sample_book():
    return {
        "title": "The Go Programming Language",
        "author": "Alan A. A. Donovan",
        "summary": "A comprehensive guide to Go programming",
    }
