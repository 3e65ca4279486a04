"""
BookAPI Backend - Book Gateway Tests
=====================================

What:  BookGateway against a real (SQLite) database.

What we test:
    ✅ Create returns the database-assigned id, get/list read it back
    ✅ Empty table and lookup misses give empty lists
    ✅ Update/delete report affected rows (0 for missing ids)
    ✅ Summary text round-trips as UTF-8 bytes; null stays null
    ✅ Undecodable stored bytes raise RowDecodeError
    ✅ Driver failures raise QueryExecutionError
    ✅ Concurrent creates get distinct ids
"""

import asyncio

import pytest
from sqlalchemy import insert, select

from bookapi.database import Base
from bookapi.exceptions import QueryExecutionError, RowDecodeError
from bookapi.models.book import Book
from bookapi.schemas.book import BookPayload
from bookapi.services.book_gateway import decode_summary, encode_summary


def _payload(title="Clean Code", author="Robert C. Martin", summary=None):
    return BookPayload(title=title, author=author, summary=summary)


class TestSummaryCodec:
    def test_encode_none(self):
        assert encode_summary(None) is None

    def test_encode_utf8(self):
        assert encode_summary("café") == "café".encode("utf-8")

    def test_decode_memoryview(self):
        assert decode_summary(memoryview(b"hello")) == "hello"

    def test_decode_invalid_utf8(self):
        with pytest.raises(UnicodeDecodeError):
            decode_summary(b"\xff\xfe\xfa")

    def test_decode_unexpected_type(self):
        with pytest.raises(TypeError):
            decode_summary(42)


class TestBookGatewayReads:
    @pytest.mark.asyncio
    async def test_list_empty_table(self, gateway):
        assert await gateway.list_books() == []

    @pytest.mark.asyncio
    async def test_get_missing_book_is_empty_list(self, gateway):
        assert await gateway.get_book(999) == []

    @pytest.mark.asyncio
    async def test_create_then_get(self, gateway):
        created = await gateway.create_book(_payload(summary="A handbook"))

        assert created.id > 0
        books = await gateway.get_book(created.id)
        assert len(books) == 1
        assert books[0].id == created.id
        assert books[0].title == "Clean Code"
        assert books[0].author == "Robert C. Martin"
        assert books[0].summary == "A handbook"

    @pytest.mark.asyncio
    async def test_summary_stored_as_utf8_bytes(self, gateway, engine):
        created = await gateway.create_book(_payload(summary="naïve résumé"))

        async with engine.connect() as conn:
            raw = (
                await conn.execute(select(Book.summary).where(Book.id == created.id))
            ).scalar_one()
        assert bytes(raw) == "naïve résumé".encode("utf-8")

    @pytest.mark.asyncio
    async def test_null_summary_round_trip(self, gateway):
        created = await gateway.create_book(_payload(summary=None))

        books = await gateway.get_book(created.id)
        assert books[0].summary is None

    @pytest.mark.asyncio
    async def test_list_returns_every_row(self, gateway):
        for i in range(3):
            await gateway.create_book(_payload(title=f"Book {i}"))

        books = await gateway.list_books()
        assert sorted(b.title for b in books) == ["Book 0", "Book 1", "Book 2"]

    @pytest.mark.asyncio
    async def test_ids_are_distinct_and_increasing(self, gateway):
        first = await gateway.create_book(_payload(title="First"))
        second = await gateway.create_book(_payload(title="Second"))
        assert second.id > first.id


class TestBookGatewayWrites:
    @pytest.mark.asyncio
    async def test_update_existing(self, gateway):
        created = await gateway.create_book(_payload())

        affected = await gateway.update_book(
            created.id, _payload(title="Clean Code 2e", summary="Revised")
        )

        assert affected == 1
        book = (await gateway.get_book(created.id))[0]
        assert book.title == "Clean Code 2e"
        assert book.summary == "Revised"

    @pytest.mark.asyncio
    async def test_update_missing_affects_nothing(self, gateway):
        assert await gateway.update_book(424242, _payload()) == 0

    @pytest.mark.asyncio
    async def test_update_can_clear_summary(self, gateway):
        created = await gateway.create_book(_payload(summary="something"))

        await gateway.update_book(created.id, _payload(summary=None))

        assert (await gateway.get_book(created.id))[0].summary is None

    @pytest.mark.asyncio
    async def test_delete_existing(self, gateway):
        created = await gateway.create_book(_payload())

        assert await gateway.delete_book(created.id) == 1
        assert await gateway.get_book(created.id) == []

    @pytest.mark.asyncio
    async def test_delete_missing_affects_nothing(self, gateway):
        assert await gateway.delete_book(424242) == 0

    @pytest.mark.asyncio
    async def test_concurrent_creates_get_distinct_ids(self, gateway):
        results = await asyncio.gather(
            *(gateway.create_book(_payload(title=f"Book {i}")) for i in range(10))
        )

        ids = [book.id for book in results]
        assert len(set(ids)) == 10
        assert len(await gateway.list_books()) == 10


class TestBookGatewayErrors:
    @pytest.mark.asyncio
    async def test_undecodable_summary_raises_row_decode_error(self, gateway, engine):
        async with engine.begin() as conn:
            await conn.execute(
                insert(Book).values(title="Broken", author="Nobody", summary=b"\xff\xfe\xfa")
            )

        with pytest.raises(RowDecodeError) as exc_info:
            await gateway.list_books()
        assert exc_info.value.reason == "decode_failed"

    @pytest.mark.asyncio
    async def test_missing_table_raises_query_execution_error(self, gateway, engine):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(QueryExecutionError) as exc_info:
            await gateway.list_books()
        assert exc_info.value.context["operation"] == "get_all"

    @pytest.mark.asyncio
    async def test_write_failure_raises_query_execution_error(self, gateway, engine):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(QueryExecutionError):
            await gateway.create_book(_payload())
        with pytest.raises(QueryExecutionError):
            await gateway.delete_book(1)

    @pytest.mark.asyncio
    async def test_ping(self, gateway):
        assert await gateway.ping() is True
