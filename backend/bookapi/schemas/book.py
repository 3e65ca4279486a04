"""
BookAPI Backend - Pydantic Request/Response Schemas
====================================================

What:  Pydantic models defining the JSON contract of the /books endpoints.
How:   FastAPI validates request bodies against BookPayload and serializes
       handler results through BookResponse.

Summary transport:
    `summary` is plain UTF-8 text (or null) on the wire. The database column
    is binary; conversion happens in the gateway, never here.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class BookPayload(BaseModel):
    """
    What:  Body of POST /books and PUT /books.
    Who:   Decoded by FastAPI; passed unchanged to the gateway.

    Unknown keys (including a client-supplied `id`) are ignored, so the id
    of a new book always comes from the database.
    """
    title: str = Field(description="Book title")
    author: str = Field(description="Book author")
    summary: Optional[str] = Field(
        default=None,
        description="Free-form summary text (stored as UTF-8 bytes)",
    )

    @field_validator("title", "author", "summary")
    @classmethod
    def must_be_utf8_encodable(cls, v: Optional[str]) -> Optional[str]:
        """Rejects text with lone surrogates (e.g. a bare "\\ud800" JSON escape)."""
        if v is not None:
            try:
                v.encode("utf-8")
            except UnicodeEncodeError:
                raise ValueError("must be valid UTF-8 text") from None
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class BookResponse(BaseModel):
    """
    What:  A persisted book.
    Who:   Returned by GET /books (as array items) and POST /books.
    """
    id: int = Field(description="Database-assigned identifier")
    title: str = Field(description="Book title")
    author: str = Field(description="Book author")
    summary: Optional[str] = Field(default=None, description="Summary text")

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "book with ID '42' was not found",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
