"""Seed sample books

Revision ID: 002
Revises: 001
Create Date: 2026-10-16 00:00:01.000000+00:00

What:  Inserts two sample rows so a fresh deployment has data to list.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SAMPLE_BOOKS = [
    {
        "title": "The Go Programming Language",
        "author": "Alan A. A. Donovan",
        "summary": "A comprehensive guide to Go programming".encode("utf-8"),
    },
    {
        "title": "Clean Code",
        "author": "Robert C. Martin",
        "summary": "A handbook of agile software craftsmanship".encode("utf-8"),
    },
]

books_table = sa.table(
    "books",
    sa.column("title", sa.String),
    sa.column("author", sa.String),
    sa.column("summary", sa.LargeBinary),
)


def upgrade() -> None:
    op.bulk_insert(books_table, SAMPLE_BOOKS)


def downgrade() -> None:
    for book in SAMPLE_BOOKS:
        op.execute(
            books_table.delete().where(
                sa.and_(
                    books_table.c.title == book["title"],
                    books_table.c.author == book["author"],
                )
            )
        )
