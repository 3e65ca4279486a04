"""
BookAPI Backend - Abstract Book Store Interface
================================================

What:  The contract route handlers and the lifespan rely on.
How:   BookGateway implements it against the database;
       InstrumentedBookGateway implements it by delegating to another store
       inside spans and timers. Handlers only ever see a BookStore.
"""

from abc import ABC, abstractmethod
from typing import List

from bookapi.schemas.book import BookPayload, BookResponse


class BookStore(ABC):
    """
    Contract:
        - get_book() returns an empty list on a miss, never None
        - update_book()/delete_book() return the affected-row count
        - persistence failures surface as DatabaseError subclasses
    """

    @abstractmethod
    async def list_books(self) -> List[BookResponse]:
        ...

    @abstractmethod
    async def get_book(self, book_id: int) -> List[BookResponse]:
        ...

    @abstractmethod
    async def create_book(self, payload: BookPayload) -> BookResponse:
        ...

    @abstractmethod
    async def update_book(self, book_id: int, payload: BookPayload) -> int:
        ...

    @abstractmethod
    async def delete_book(self, book_id: int) -> int:
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """True when the backing store answers a trivial query."""
        ...

    @abstractmethod
    async def close(self) -> None:
        ...
