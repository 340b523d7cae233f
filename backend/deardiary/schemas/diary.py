"""
Dear Diary Backend — Diary Entry Schemas
==========================================

What:  Pydantic models for the /api/diaries request bodies and responses.
How:   Python attributes are snake_case; the wire is camelCase through
       aliases. Responses are emitted with `by_alias` (FastAPI's default for
       response_model), and request bodies accept either spelling.

Request bodies are deliberately loose (every field optional, plain strings):
the real rules live in deardiary.validation so a bad body produces the same
field-scoped 400 as the client-side check, not a framework 422.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from deardiary.dates import format_timestamp


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class DiaryEntryRequest(CamelModel):
    """Body of POST /api/diaries and PUT /api/diaries/{id}."""

    title: Optional[str] = None
    content: Optional[str] = None
    entry_date: Optional[str] = Field(default=None, description="yyyy-MM-dd")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class DiaryEntryResponse(CamelModel):
    """
    One entry as returned by every entry endpoint.

    Timestamps are UTC with microseconds and a trailing Z; entryDate is a
    bare yyyy-MM-dd.
    """

    id: uuid.UUID
    user_id: uuid.UUID = Field(validation_alias="owner_id", serialization_alias="userId")
    title: str
    content: str
    entry_date: date
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    @field_serializer("entry_date")
    def serialize_entry_date(self, value: date) -> str:
        return value.isoformat()


class PaginationResponse(CamelModel):
    """
    totalPages = ceil(total / limit), 0 when there are no matches.
    `page` is echoed as requested (after lower-bound normalization), even past
    the last page.
    """

    page: int
    limit: int
    total: int
    total_pages: int


class DiaryListResponse(CamelModel):
    diaries: List[DiaryEntryResponse]
    pagination: PaginationResponse
