"""
Dear Diary Client — Response Models
=====================================

Pydantic models for what the API returns, read from camelCase JSON.
Timestamps go through `parse_timestamp`, which accepts ISO-8601 with or
without fractional seconds and a bare yyyy-MM-dd.
"""

import uuid
from datetime import date, datetime
from typing import List

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from deardiary.dates import parse_timestamp


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AccountInfo(_WireModel):
    id: uuid.UUID
    username: str


class Entry(_WireModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    content: str
    entry_date: date
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def parse_wire_timestamp(cls, value):
        if isinstance(value, str):
            return parse_timestamp(value)
        return value


class Pagination(_WireModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.page > 1


class EntryPage(BaseModel):
    entries: List[Entry]
    pagination: Pagination
