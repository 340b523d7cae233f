"""
Dear Diary Backend — Entry Repository
=======================================

What:  Persistence of diary entries, every query scoped to one owner.
Who:   DiaryService.

Ownership:
    `owner_id == :owner` is part of the WHERE clause of every read, update
    and delete. A row belonging to someone else is never loaded into memory,
    so there is no post-fetch filter that could be forgotten.

Search:
    Case-insensitive substring match on title OR content. `%`, `_` and the
    escape character itself are escaped, so user text is matched literally.

Ordering:
    entry_date DESC, created_at DESC, id DESC. The trailing keys make the order
    total, so OFFSET pagination never repeats or skips rows between pages.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.exceptions import DatabaseError
from deardiary.models.diary import DiaryEntry

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def escape_like(text: str) -> str:
    return (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


class EntryRepository:
    """Stateless access to the `diary_entries` table."""

    async def create(
        self,
        db: AsyncSession,
        owner_id: UUID,
        title: str,
        content: str,
        entry_date: date,
        now: datetime,
    ) -> DiaryEntry:
        entry = DiaryEntry(
            owner_id=owner_id,
            title=title,
            content=content,
            entry_date=entry_date,
            created_at=now,
            updated_at=now,
        )
        db.add(entry)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating entry: %s", type(e).__name__)
            raise DatabaseError(
                message="Could not save the diary entry. Please try again.",
                context={"operation": "create_entry"},
            ) from e
        return entry

    async def get(self, db: AsyncSession, owner_id: UUID, entry_id: UUID) -> Optional[DiaryEntry]:
        """Returns the entry only if `owner_id` owns it."""
        try:
            result = await db.execute(
                select(DiaryEntry).where(
                    DiaryEntry.id == entry_id,
                    DiaryEntry.owner_id == owner_id,
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching entry %s: %s", entry_id, type(e).__name__)
            raise DatabaseError(
                message="Could not retrieve the diary entry. Please try again.",
                context={"entry_id": str(entry_id)},
            ) from e

    async def save(self, db: AsyncSession, entry: DiaryEntry) -> DiaryEntry:
        """Flushes pending changes on an entry loaded through `get`."""
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating entry %s: %s", entry.id, type(e).__name__)
            raise DatabaseError(
                message="Could not update the diary entry. Please try again.",
                context={"entry_id": str(entry.id)},
            ) from e
        return entry

    async def delete(self, db: AsyncSession, owner_id: UUID, entry_id: UUID) -> bool:
        """Deletes the entry if `owner_id` owns it. Returns False when nothing matched."""
        try:
            result = await db.execute(
                delete(DiaryEntry).where(
                    DiaryEntry.id == entry_id,
                    DiaryEntry.owner_id == owner_id,
                )
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting entry %s: %s", entry_id, type(e).__name__)
            raise DatabaseError(
                message="Could not delete the diary entry. Please try again.",
                context={"entry_id": str(entry_id)},
            ) from e
        return result.rowcount > 0

    async def list_page(
        self,
        db: AsyncSession,
        owner_id: UUID,
        offset: int,
        limit: int,
        search: Optional[str] = None,
    ) -> Tuple[List[DiaryEntry], int]:
        """
        One page of the owner's entries plus the total matching count.

        Args:
            db: Async database session
            owner_id: Whose entries to list
            offset: Rows to skip ((page - 1) * limit)
            limit: Maximum rows to return
            search: Already-trimmed search text; None or "" means no filter

        Returns:
            (entries for this page, total across all pages)
        """
        conditions = [DiaryEntry.owner_id == owner_id]
        if search:
            pattern = f"%{escape_like(search)}%"
            conditions.append(
                or_(
                    DiaryEntry.title.ilike(pattern, escape=LIKE_ESCAPE),
                    DiaryEntry.content.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )

        try:
            count_result = await db.execute(
                select(func.count(DiaryEntry.id)).where(*conditions)
            )
            total = count_result.scalar() or 0
            # Nothing past the last row; huge pages never reach OFFSET.
            if offset >= total:
                return [], total

            result = await db.execute(
                select(DiaryEntry)
                .where(*conditions)
                .order_by(
                    DiaryEntry.entry_date.desc(),
                    DiaryEntry.created_at.desc(),
                    DiaryEntry.id.desc(),
                )
                .offset(offset)
                .limit(limit)
            )
            entries = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error("Database error listing entries: %s", type(e).__name__, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve diary entries. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        return entries, total


entry_repository = EntryRepository()
