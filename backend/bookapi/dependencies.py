"""FastAPI dependency providers."""

import re
from typing import Optional

from fastapi import Query, Request

from bookapi.exceptions import ValidationError
from bookapi.services.book_store import BookStore

_INTEGER_RE = re.compile(r"-?[0-9]+")


def get_book_gateway(request: Request) -> BookStore:
    """Gateway created by the lifespan (or injected by create_app)."""
    return request.app.state.gateway


def get_book_id(
    raw_id: Optional[str] = Query(
        default=None,
        alias="id",
        description="Book identifier; an empty value is treated as absent",
    ),
) -> Optional[int]:
    """
    The `id` query parameter as an int.

    `?id=` (empty) means the same as no `id` at all. Anything else that is not
    a plain base-10 integer is a 400.
    """
    if raw_id is None or raw_id.strip() == "":
        return None
    value = raw_id.strip()
    if not _INTEGER_RE.fullmatch(value):
        raise ValidationError("Book ID must be an integer", field="id")
    return int(value)
