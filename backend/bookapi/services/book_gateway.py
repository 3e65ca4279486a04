"""
BookAPI Backend - Book Persistence Gateway
===========================================

What:  The only component that talks to the database.
How:   Holds the shared AsyncEngine (and so the connection pool) and issues
       exactly one parameterized statement per operation, each in its own
       short transaction:

           list_books()              SELECT id, title, author, summary FROM books
           get_book(id)              ... WHERE id = :id
           create_book(payload)      INSERT ... RETURNING id
           update_book(id, payload)  UPDATE books SET ... WHERE id = :id
           delete_book(id)           DELETE FROM books WHERE id = :id

Who:   Constructed once at startup (lifespan) or by tests, stored on
       app.state and injected into route handlers.

Error Handling:
    Driver/SQL failures   → QueryExecutionError
    Row mapping failures  → RowDecodeError
    Both are DatabaseError subclasses and become an opaque 500 for clients.
    Nothing is retried; the caller retries at the HTTP level if it wants to.

Cancellation:
    Every await below runs in the request's task. Cancelling that task
    (deadline middleware, server shutdown) raises CancelledError inside the
    driver call, which aborts the statement and returns the connection.
"""

import logging
from typing import Any, List, Optional, Sequence

from sqlalchemy import delete, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from bookapi.exceptions import QueryExecutionError, RowDecodeError
from bookapi.models.book import Book
from bookapi.schemas.book import BookPayload, BookResponse
from bookapi.services.book_store import BookStore

logger = logging.getLogger(__name__)

_BOOK_COLUMNS = (Book.id, Book.title, Book.author, Book.summary)


def encode_summary(summary: Optional[str]) -> Optional[bytes]:
    """API text → column bytes (UTF-8)."""
    if summary is None:
        return None
    return summary.encode("utf-8")


def decode_summary(raw: Any) -> Optional[str]:
    """
    Column value → API text.

    Drivers hand BYTEA back as bytes (asyncpg) or memoryview; anything that
    is not valid UTF-8 raises UnicodeDecodeError.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    if isinstance(raw, memoryview):
        raw = raw.tobytes()
    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError(f"unexpected summary type {type(raw).__name__}")
    return bytes(raw).decode("utf-8")


class BookGateway(BookStore):
    """
    CRUD statements over the `books` table.

    Thread/Task Safety:
        The gateway keeps no per-request state. Concurrent requests share the
        engine's pool; each operation checks out a connection, runs one
        statement and returns it.
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_books(self) -> List[BookResponse]:
        """
        Return every row in the order the database produces them.

        An empty table yields an empty list, never None.
        """
        rows = await self._fetch_all(select(*_BOOK_COLUMNS), operation="get_all")
        return self._decode_rows(rows, operation="get_all")

    async def get_book(self, book_id: int) -> List[BookResponse]:
        """
        Return the rows matching `book_id` (zero or one).

        A miss is an empty list; the HTTP layer decides what that means.
        """
        stmt = select(*_BOOK_COLUMNS).where(Book.id == book_id)
        rows = await self._fetch_all(stmt, operation="get_by_id", book_id=book_id)
        return self._decode_rows(rows, operation="get_by_id")

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_book(self, payload: BookPayload) -> BookResponse:
        """
        Insert a new row and return it with the database-assigned id.

        The id comes from INSERT ... RETURNING, not from a driver-level
        "last insert id" call.
        """
        stmt = (
            insert(Book)
            .values(
                title=payload.title,
                author=payload.author,
                summary=encode_summary(payload.summary),
            )
            .returning(Book.id)
        )
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
                new_id = result.scalar_one()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Insert into books failed: %s", str(e))
            raise QueryExecutionError(
                message="Could not create the book. Please try again.",
                context={"operation": "create", "error_type": type(e).__name__},
            ) from e

        logger.info("Book %d created", new_id)
        return BookResponse(
            id=new_id,
            title=payload.title,
            author=payload.author,
            summary=payload.summary,
        )

    async def update_book(self, book_id: int, payload: BookPayload) -> int:
        """
        Replace title, author and summary of `book_id`.

        Returns:
            Affected-row count (0 means no such book).
        """
        stmt = (
            update(Book)
            .where(Book.id == book_id)
            .values(
                title=payload.title,
                author=payload.author,
                summary=encode_summary(payload.summary),
            )
        )
        affected = await self._execute(stmt, operation="update", book_id=book_id)
        logger.info("Book %d update affected %d row(s)", book_id, affected)
        return affected

    async def delete_book(self, book_id: int) -> int:
        """
        Delete `book_id`.

        Returns:
            Affected-row count (0 means no such book).
        """
        stmt = delete(Book).where(Book.id == book_id)
        affected = await self._execute(stmt, operation="delete", book_id=book_id)
        logger.info("Book %d delete affected %d row(s)", book_id, affected)
        return affected

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def ping(self) -> bool:
        """SELECT 1 against the pool. Used for startup diagnostics only."""
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def close(self) -> None:
        """Close every pooled connection."""
        await self._engine.dispose()

    # ── Internals ─────────────────────────────────────────────────────────

    async def _fetch_all(
        self, stmt, operation: str, book_id: Optional[int] = None
    ) -> Sequence[Any]:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(stmt)
                return result.all()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Query %s failed (book_id=%s): %s", operation, book_id, str(e))
            raise QueryExecutionError(
                message="Could not retrieve books. Please try again.",
                context={
                    "operation": operation,
                    "book_id": book_id,
                    "error_type": type(e).__name__,
                },
            ) from e

    async def _execute(self, stmt, operation: str, book_id: int) -> int:
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
                return result.rowcount
        except (SQLAlchemyError, OSError) as e:
            logger.error("Statement %s failed (book_id=%s): %s", operation, book_id, str(e))
            raise QueryExecutionError(
                message=f"Could not {operation} the book. Please try again.",
                context={
                    "operation": operation,
                    "book_id": book_id,
                    "error_type": type(e).__name__,
                },
            ) from e

    @staticmethod
    def _decode_rows(rows: Sequence[Any], operation: str) -> List[BookResponse]:
        books: List[BookResponse] = []
        for row in rows:
            try:
                books.append(
                    BookResponse(
                        id=row.id,
                        title=row.title,
                        author=row.author,
                        summary=decode_summary(row.summary),
                    )
                )
            except (UnicodeDecodeError, TypeError, ValueError) as e:
                # pydantic's ValidationError is a ValueError subclass
                logger.error(
                    "Could not decode book row %s during %s: %s",
                    getattr(row, "id", "?"),
                    operation,
                    str(e),
                )
                raise RowDecodeError(
                    message="Could not read the stored books. Please try again.",
                    context={
                        "operation": operation,
                        "book_id": getattr(row, "id", None),
                        "error_type": type(e).__name__,
                    },
                ) from e
        return books
