"""
Dear Diary Backend — Diary Route Handlers
===========================================

What:  CRUD and the paged list under /api/diaries.
How:   Every handler depends on `get_current_user`, so a request without a
       valid session is answered 401 before DiaryService (and the entries
       table) is reached. Handlers only translate HTTP to service calls.

Query parameters of the list endpoint are parsed as plain integers; the
page/limit policy (lower bound for page, range check for limit) lives in
DiaryService so the route and the service cannot disagree.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.database import get_db_session
from deardiary.dependencies import get_current_user, get_diary_service
from deardiary.models.user import User
from deardiary.schemas.common import ErrorResponse, MessageResponse
from deardiary.schemas.diary import DiaryEntryRequest, DiaryEntryResponse, DiaryListResponse
from deardiary.services.diary_service import DiaryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/diaries", tags=["Diaries"])

_AUTH_ERRORS = {401: {"description": "No valid session", "model": ErrorResponse}}
_ENTRY_ERRORS = {
    **_AUTH_ERRORS,
    400: {"description": "Invalid identifier or fields", "model": ErrorResponse},
    404: {"description": "Diary entry not found", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=DiaryListResponse,
    responses={**_AUTH_ERRORS, 400: {"description": "Invalid limit", "model": ErrorResponse}},
    summary="List the caller's entries",
)
async def list_entries(
    page: Optional[int] = Query(default=None, description="1-based page; values below 1 read as 1"),
    limit: Optional[int] = Query(default=None, description="Page size, 1-100 (default 20)"),
    search: Optional[str] = Query(default=None, description="Substring of title or content"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    diaries: DiaryService = Depends(get_diary_service),
) -> DiaryListResponse:
    """
    Example:
        GET /api/diaries?page=2&limit=10&search=walk

        {"diaries": [...], "pagination": {"page": 2, "limit": 10, "total": 14, "totalPages": 2}}
    """
    return await diaries.list_entries(db, user, page=page, limit=limit, search=search)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=DiaryEntryResponse,
    responses={**_AUTH_ERRORS, 400: {"description": "Field validation failed", "model": ErrorResponse}},
    summary="Create an entry",
)
async def create_entry(
    body: DiaryEntryRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    diaries: DiaryService = Depends(get_diary_service),
) -> DiaryEntryResponse:
    return await diaries.create_entry(db, user, body.title, body.content, body.entry_date)


@router.get(
    "/{entry_id}",
    response_model=DiaryEntryResponse,
    responses=_ENTRY_ERRORS,
    summary="Get one entry",
)
async def get_entry(
    entry_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    diaries: DiaryService = Depends(get_diary_service),
) -> DiaryEntryResponse:
    return await diaries.get_entry(db, user, entry_id)


@router.put(
    "/{entry_id}",
    response_model=DiaryEntryResponse,
    responses=_ENTRY_ERRORS,
    summary="Replace an entry's title, content and date",
)
async def update_entry(
    entry_id: str,
    body: DiaryEntryRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    diaries: DiaryService = Depends(get_diary_service),
) -> DiaryEntryResponse:
    return await diaries.update_entry(
        db, user, entry_id, body.title, body.content, body.entry_date
    )


@router.delete(
    "/{entry_id}",
    response_model=MessageResponse,
    responses=_ENTRY_ERRORS,
    summary="Delete an entry permanently",
)
async def delete_entry(
    entry_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    diaries: DiaryService = Depends(get_diary_service),
) -> MessageResponse:
    await diaries.delete_entry(db, user, entry_id)
    return MessageResponse(message="Diary entry deleted")
