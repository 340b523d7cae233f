"""
Dear Diary Backend — Diary Entry SQLAlchemy Model
===================================================

What:  ORM model for the `diary_entries` table.
Who:   EntryRepository for every CRUD and list query; Alembic for migrations.

Table Design:
    - owner_id: FK to users.id, immutable; every query filters on it
    - title/content: stored trimmed (limits enforced in deardiary.validation)
    - entry_date: calendar date chosen by the user (DATE, no time part)
    - created_at: set once at insert
    - updated_at: equal to created_at at insert, moved strictly forward on
      every update by the diary service

    Index on (owner_id, entry_date):
        The list query is "this owner's entries, newest entry_date first".
"""

import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from deardiary.database import Base


class DiaryEntry(Base):
    """
    One dated journal entry.

    Query Patterns:
        - List page: WHERE owner_id = :me [AND (title ILIKE :q OR content ILIKE :q)]
          ORDER BY entry_date DESC, created_at DESC, id DESC LIMIT :n OFFSET :k
        - Single entry: WHERE id = :id AND owner_id = :me
    """

    __tablename__ = "diary_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    # No Python defaults: the service stamps both columns with the same
    # instant so a fresh entry has created_at == updated_at exactly.
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_diary_entries_owner_entry_date", "owner_id", "entry_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<DiaryEntry(id={self.id}, owner_id={self.owner_id}, "
            f"entry_date='{self.entry_date}')>"
        )
