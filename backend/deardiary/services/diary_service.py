"""
Dear Diary Backend — Diary Service
====================================

What:  Entry CRUD and the paged, searchable list for one authenticated user.
How:   Validates input with deardiary.validation, then delegates to the owner-
       scoped EntryRepository. Every method takes the caller's User; there is
       no way to address another user's rows through this class.
Who:   Diary routes (after `get_current_user` has resolved the session).

Operation Flow (PUT /api/diaries/{id}):
    ┌────────────┐    ┌─────────────┐    ┌───────────┐    ┌──────────┐
    │ identifier │───▶│  ownership  │───▶│ validate  │───▶│  flush   │
    │  → UUID    │    │ (WHERE own) │    │  fields   │    │          │
    └────────────┘    └─────────────┘    └───────────┘    └──────────┘

    The ownership lookup runs before body validation, so an id the caller
    does not own is a 404 even when the body is also invalid.

Pagination Policy:
    page  < 1           → treated as 1
    page  > totalPages  → echoed, empty list (no row query is run)
    limit absent        → default page size (20)
    limit outside 1..max→ ValidationError
"""

import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.dates import as_utc, utcnow
from deardiary.exceptions import NotFoundError
from deardiary.models.diary import DiaryEntry
from deardiary.models.user import User
from deardiary.repositories.entries import EntryRepository, entry_repository
from deardiary.schemas.diary import DiaryEntryResponse, DiaryListResponse, PaginationResponse
from deardiary.validation import (
    normalize_page,
    validate_entry_fields,
    validate_identifier,
    validate_page_size,
)

logger = logging.getLogger(__name__)

ENTRY_RESOURCE = "diary entry"


def _parse_entry_id(entry_id: str) -> Optional[uuid.UUID]:
    """
    Safe-charset check first (400 on failure), then UUID parsing. A safe
    string that is not a UUID cannot name an entry, so it maps to None (404).
    """
    validate_identifier(entry_id)
    try:
        return uuid.UUID(entry_id)
    except ValueError:
        return None


def _next_updated_at(previous: datetime) -> datetime:
    """`now`, or one microsecond past `previous` if the clock has not moved."""
    now = utcnow()
    previous = as_utc(previous)
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


class DiaryService:
    """
    Owner-scoped entry operations.

    Args:
        default_page_size: limit used when the client sends none
        max_page_size: largest limit a client may request
        entries: Entry repository
    """

    def __init__(
        self,
        default_page_size: int = 20,
        max_page_size: int = 100,
        entries: EntryRepository = entry_repository,
    ):
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.entries = entries

    async def _get_owned(self, db: AsyncSession, user: User, entry_id: str) -> DiaryEntry:
        parsed = _parse_entry_id(entry_id)
        entry = None
        if parsed is not None:
            entry = await self.entries.get(db, user.id, parsed)
        if entry is None:
            raise NotFoundError(resource=ENTRY_RESOURCE, resource_id=entry_id)
        return entry

    async def list_entries(
        self,
        db: AsyncSession,
        user: User,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
    ) -> DiaryListResponse:
        """
        One page of the caller's entries, newest entry_date first.

        Returns:
            DiaryListResponse with the page's entries and the pagination descriptor

        Raises:
            ValidationError: limit outside 1..max_page_size
        """
        page = normalize_page(page)
        limit = validate_page_size(limit, self.default_page_size, self.max_page_size)
        term = (search or "").strip() or None

        rows, total = await self.entries.list_page(
            db,
            owner_id=user.id,
            offset=(page - 1) * limit,
            limit=limit,
            search=term,
        )
        total_pages = math.ceil(total / limit) if total else 0

        logger.debug(
            "Listed entries for %s: page=%d limit=%d total=%d search=%s",
            user.id, page, limit, total, term is not None,
        )
        return DiaryListResponse(
            diaries=[DiaryEntryResponse.model_validate(row) for row in rows],
            pagination=PaginationResponse(
                page=page, limit=limit, total=total, total_pages=total_pages
            ),
        )

    async def get_entry(self, db: AsyncSession, user: User, entry_id: str) -> DiaryEntryResponse:
        """
        Raises:
            ValidationError: identifier outside the safe character set
            NotFoundError: absent, or owned by someone else
        """
        entry = await self._get_owned(db, user, entry_id)
        return DiaryEntryResponse.model_validate(entry)

    async def create_entry(
        self,
        db: AsyncSession,
        user: User,
        title: Optional[str],
        content: Optional[str],
        entry_date: Optional[str],
    ) -> DiaryEntryResponse:
        title, content, day = validate_entry_fields(title, content, entry_date)
        entry = await self.entries.create(
            db,
            owner_id=user.id,
            title=title,
            content=content,
            entry_date=day,
            now=utcnow(),
        )
        logger.info("Entry %s created by %s", entry.id, user.id)
        return DiaryEntryResponse.model_validate(entry)

    async def update_entry(
        self,
        db: AsyncSession,
        user: User,
        entry_id: str,
        title: Optional[str],
        content: Optional[str],
        entry_date: Optional[str],
    ) -> DiaryEntryResponse:
        """
        Replaces title, content and entry date. Last write wins.

        Raises:
            ValidationError: bad identifier or bad fields
            NotFoundError: absent, or owned by someone else (checked first)
        """
        entry = await self._get_owned(db, user, entry_id)
        title, content, day = validate_entry_fields(title, content, entry_date)

        entry.title = title
        entry.content = content
        entry.entry_date = day
        entry.updated_at = _next_updated_at(entry.updated_at)
        await self.entries.save(db, entry)

        logger.info("Entry %s updated by %s", entry.id, user.id)
        return DiaryEntryResponse.model_validate(entry)

    async def delete_entry(self, db: AsyncSession, user: User, entry_id: str) -> None:
        parsed = _parse_entry_id(entry_id)
        deleted = parsed is not None and await self.entries.delete(db, user.id, parsed)
        if not deleted:
            raise NotFoundError(resource=ENTRY_RESOURCE, resource_id=entry_id)
        logger.info("Entry %s deleted by %s", entry_id, user.id)
