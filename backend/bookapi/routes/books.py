"""
BookAPI Backend - Books Route Handlers
=======================================

What:  CRUD over the books collection at the single path /books.
How:   The HTTP method selects the operation; the book id (where needed) is
       the `id` query parameter, never a path segment.

    GET    /books         → 200 [Book, ...]   (also for an empty ?id=)
    GET    /books?id=N    → 200 [Book] or 200 [] when N does not exist
    POST   /books         → 201 Book (id assigned by the database)
    PUT    /books?id=N    → 200 empty body, 404 if N does not exist
    DELETE /books?id=N    → 204 empty body, 404 if N does not exist
    other methods         → 405 with an Allow header

A lookup miss on GET answers an empty list rather than 404; clients of the
service depend on that shape.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from bookapi.dependencies import get_book_gateway, get_book_id
from bookapi.exceptions import NotFoundError, ValidationError
from bookapi.schemas.book import BookPayload, BookResponse, ErrorResponse
from bookapi.services.book_store import BookStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Books"])


def _require_id(book_id: Optional[int]) -> int:
    if book_id is None:
        raise ValidationError("Missing book ID", field="id")
    return book_id


@router.get(
    "/books",
    response_model=List[BookResponse],
    responses={
        400: {"description": "Non-integer id", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List all books, or the book with the given id",
)
async def get_books(
    book_id: Optional[int] = Depends(get_book_id),
    gateway: BookStore = Depends(get_book_gateway),
) -> List[BookResponse]:
    if book_id is None:
        return await gateway.list_books()
    return await gateway.get_book(book_id)


@router.post(
    "/books",
    status_code=201,
    response_model=BookResponse,
    responses={
        400: {"description": "Malformed body", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Create a book",
)
async def create_book(
    payload: BookPayload,
    gateway: BookStore = Depends(get_book_gateway),
) -> BookResponse:
    """
    Insert a new book.

    Any `id` in the body is ignored; the response carries the id the
    database assigned.
    """
    book = await gateway.create_book(payload)
    logger.info("Created book id=%d", book.id)
    return book


@router.put(
    "/books",
    responses={
        200: {"description": "Book updated (empty body)"},
        400: {"description": "Missing/non-integer id or malformed body", "model": ErrorResponse},
        404: {"description": "No book with that id", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Replace title, author and summary of a book",
)
async def update_book(
    payload: BookPayload,
    book_id: Optional[int] = Depends(get_book_id),
    gateway: BookStore = Depends(get_book_gateway),
) -> Response:
    book_id = _require_id(book_id)
    affected = await gateway.update_book(book_id, payload)
    if affected == 0:
        raise NotFoundError(resource="book", resource_id=book_id)
    return Response(status_code=200)


@router.delete(
    "/books",
    status_code=204,
    responses={
        400: {"description": "Missing or non-integer id", "model": ErrorResponse},
        404: {"description": "No book with that id", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Delete a book",
)
async def delete_book(
    book_id: Optional[int] = Depends(get_book_id),
    gateway: BookStore = Depends(get_book_gateway),
) -> Response:
    book_id = _require_id(book_id)
    affected = await gateway.delete_book(book_id)
    if affected == 0:
        raise NotFoundError(resource="book", resource_id=book_id)
    return Response(status_code=204)
