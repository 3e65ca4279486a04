"""Create books table

Revision ID: 001
Revises: None
Create Date: 2026-10-16 00:00:00.000000+00:00

What:  Creates the `books` table.
How:   Serial integer key; title and author capped at 255 characters;
       summary stored as raw bytes (BYTEA on PostgreSQL), nullable.

Rollback: downgrade() drops the table entirely (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "books",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
        # UTF-8 encoded summary text; NULL when the client sent none
        sa.Column("summary", sa.LargeBinary(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_books"),
    )


def downgrade() -> None:
    op.drop_table("books")
