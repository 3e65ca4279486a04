"""
BookAPI Backend - Book SQLAlchemy Model
========================================

What:  ORM model representing the `books` table.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for
       migrations and the gateway builds its statements from it.

Table Design:
    - id: SERIAL primary key, assigned by the database on INSERT
    - title / author: VARCHAR(255) NOT NULL
    - summary: BYTEA, nullable. The API speaks UTF-8 text; the gateway
      encodes on write and decodes on read.
"""

from typing import Optional

from sqlalchemy import Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from bookapi.database import Base


class Book(Base):
    """
    A single book row.

    Lifecycle:
        1. Inserted by POST /books (id comes back via RETURNING)
        2. Replaced wholesale by PUT /books?id=...
        3. Hard-deleted by DELETE /books?id=...
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    author: Mapped[str] = mapped_column(String(255), nullable=False)

    # Raw bytes; NULL when the client sent no summary
    summary: Mapped[Optional[bytes]] = mapped_column(
        LargeBinary,
        nullable=True,
        default=None,
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title='{self.title}', author='{self.author}')>"
