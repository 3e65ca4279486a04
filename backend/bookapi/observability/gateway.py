"""
BookAPI Backend - Instrumented Gateway Decorator
=================================================

What:  Wraps a BookGateway with one span, one counter and one timer per
       database call.
How:   Same public methods as BookGateway; each delegates to the wrapped
       gateway inside `telemetry.span(...)` and records the outcome.

Span names and attributes:
    db.query.get_all_books   db.operation=SELECT  books.count
    db.query.get_book_by_id  db.operation=SELECT  book.id, books.count
    db.insert.book           db.operation=INSERT  book.id (assigned)
    db.update.book           db.operation=UPDATE  book.id, db.rows_affected
    db.delete.book           db.operation=DELETE  book.id, db.rows_affected

Metrics:
    db.calls{operation,outcome}    counter
    db.call_ms{operation,outcome}  latency
    outcome ∈ success | query_failed | decode_failed | cancelled | error
"""

import asyncio
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Any, AsyncIterator, Dict, List, Optional

from bookapi.exceptions import DatabaseError
from bookapi.observability.telemetry import Telemetry
from bookapi.schemas.book import BookPayload, BookResponse
from bookapi.services.book_store import BookStore


class InstrumentedBookGateway(BookStore):
    def __init__(self, inner: BookStore, telemetry: Telemetry):
        self._inner = inner
        self._telemetry = telemetry

    @property
    def inner(self) -> BookStore:
        return self._inner

    async def list_books(self) -> List[BookResponse]:
        async with self._call("get_all", "db.query.get_all_books", "SELECT") as span:
            books = await self._inner.list_books()
            span.set_attribute("books.count", len(books))
            return books

    async def get_book(self, book_id: int) -> List[BookResponse]:
        async with self._call(
            "get_by_id", "db.query.get_book_by_id", "SELECT", {"book.id": book_id}
        ) as span:
            books = await self._inner.get_book(book_id)
            span.set_attribute("books.count", len(books))
            return books

    async def create_book(self, payload: BookPayload) -> BookResponse:
        async with self._call(
            "create",
            "db.insert.book",
            "INSERT",
            {"book.summary.length": len(payload.summary or "")},
        ) as span:
            book = await self._inner.create_book(payload)
            span.set_attribute("book.id", book.id)
            return book

    async def update_book(self, book_id: int, payload: BookPayload) -> int:
        async with self._call("update", "db.update.book", "UPDATE", {"book.id": book_id}) as span:
            affected = await self._inner.update_book(book_id, payload)
            span.set_attribute("db.rows_affected", affected)
            return affected

    async def delete_book(self, book_id: int) -> int:
        async with self._call("delete", "db.delete.book", "DELETE", {"book.id": book_id}) as span:
            affected = await self._inner.delete_book(book_id)
            span.set_attribute("db.rows_affected", affected)
            return affected

    async def ping(self) -> bool:
        return await self._inner.ping()

    async def close(self) -> None:
        await self._inner.close()

    @asynccontextmanager
    async def _call(
        self,
        operation: str,
        span_name: str,
        db_operation: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Any]:
        span_attributes = {"db.operation": db_operation, "db.table": "books", "operation": operation}
        span_attributes.update(attributes or {})

        start = perf_counter()
        outcome = "error"
        try:
            with self._telemetry.span(span_name, span_attributes) as span:
                yield span
            outcome = "success"
        except asyncio.CancelledError:
            outcome = "cancelled"
            raise
        except DatabaseError as exc:
            outcome = getattr(exc, "reason", "query_failed")
            raise
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0
            self._telemetry.count("db.calls", operation=operation, outcome=outcome)
            self._telemetry.timing("db.call_ms", elapsed_ms, operation=operation, outcome=outcome)
