"""
Dear Diary Backend — User SQLAlchemy Model
============================================

What:  ORM model for the `users` table.
Who:   UserRepository (create, lookup, password update) and Alembic.

Table Design:
    - UUID primary key generated in Python, so SQLite and PostgreSQL agree
    - username: unique, compared exactly (case-sensitive), stored trimmed
    - password_hash: bcrypt output; never serialized by any schema
    - Rows are never deleted
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from deardiary.database import Base
from deardiary.dates import utcnow


class User(Base):
    """An account. Created at registration; only the password hash ever changes."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Unique login name, exact match",
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the SHA-256 pre-hashed password",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}')>"
