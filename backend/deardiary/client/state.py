"""
Dear Diary Client — Session and List State
============================================

What:  The stateful layer a UI binds to: whether the user is logged in, the
       current page of entries, the search text.
How:   Wraps DiaryAPI calls in `_operation(kind)`, which
         - refuses a second call of the same kind while one is in flight
           (OperationInProgressError, nothing sent; the first call carries on)
         - turns any UnauthorizedError into local logout: the flag drops and
           the credential store is cleared, then the error propagates

Auth state is optimistic: a stored token means `is_authenticated` is True at
construction, with no round trip. The first request that comes back 401
corrects it.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, List, Optional, Set, Union

from deardiary.client.api import DiaryAPI
from deardiary.client.models import AccountInfo, Entry, Pagination
from deardiary.exceptions import OperationInProgressError, UnauthorizedError

logger = logging.getLogger(__name__)


class DiaryClient:
    """
    Attributes:
        is_authenticated: True once logged in, or when a token was stored
        current_user: Set by `login` and `refresh_user`
        entries: The entries of the current page
        pagination: Descriptor of the current page (None before the first fetch)
        page: Page to fetch next time the list is reloaded
        search_text: Active search, "" for none
    """

    def __init__(self, api: DiaryAPI):
        self.api = api
        self.is_authenticated = api.has_stored_session()
        self.current_user: Optional[AccountInfo] = None
        self.entries: List[Entry] = []
        self.pagination: Optional[Pagination] = None
        self.page = 1
        self.search_text = ""
        self._in_flight: Set[str] = set()

    def is_busy(self, kind: Optional[str] = None) -> bool:
        if kind is None:
            return bool(self._in_flight)
        return kind in self._in_flight

    @asynccontextmanager
    async def _operation(self, kind: str) -> AsyncIterator[None]:
        if kind in self._in_flight:
            logger.warning("Operation blocked: %s already in progress", kind)
            raise OperationInProgressError(kind)
        self._in_flight.add(kind)
        try:
            yield
        except UnauthorizedError:
            self._drop_session()
            raise
        finally:
            self._in_flight.discard(kind)

    def _drop_session(self) -> None:
        logger.info("Session no longer valid; clearing local credentials")
        self.api.clear_session()
        self.is_authenticated = False
        self.current_user = None
        self.entries = []
        self.pagination = None
        self.page = 1

    # ── Auth ──────────────────────────────────────────────────────────────

    async def login(self, username: str, password: str) -> AccountInfo:
        async with self._operation("login"):
            user = await self.api.login(username, password)
        self.is_authenticated = True
        self.current_user = user
        return user

    async def register(self, username: str, password: str, confirm_password: str) -> None:
        """Creates the account; `login` is still required afterwards."""
        async with self._operation("register"):
            await self.api.register(username, password, confirm_password)

    async def logout(self) -> None:
        async with self._operation("logout"):
            try:
                await self.api.logout()
            finally:
                self._drop_session()

    async def refresh_user(self) -> AccountInfo:
        async with self._operation("session"):
            self.current_user = await self.api.current_user()
        return self.current_user

    async def change_password(
        self, current_password: str, new_password: str, confirm_password: str
    ) -> None:
        async with self._operation("change_password"):
            await self.api.change_password(current_password, new_password, confirm_password)

    # ── List ──────────────────────────────────────────────────────────────

    async def _fetch(self, page: int) -> None:
        result = await self.api.list_entries(page=page, search=self.search_text)
        # A delete can leave the current page past the end; step back to the last one.
        if not result.entries and page > 1 and 0 < result.pagination.total_pages < page:
            result = await self.api.list_entries(
                page=result.pagination.total_pages, search=self.search_text
            )
        self.entries = result.entries
        self.pagination = result.pagination
        self.page = result.pagination.page
        logger.debug("Fetched %d entries (page %d)", len(result.entries), self.page)

    async def load_entries(self, page: Optional[int] = None) -> List[Entry]:
        async with self._operation("fetch"):
            await self._fetch(page if page is not None else self.page)
        return self.entries

    async def search(self, text: str) -> List[Entry]:
        self.search_text = text.strip()
        return await self.load_entries(page=1)

    async def clear_search(self) -> List[Entry]:
        return await self.search("")

    async def next_page(self) -> List[Entry]:
        if self.pagination is None or not self.pagination.has_next_page:
            return self.entries
        return await self.load_entries(page=self.page + 1)

    async def previous_page(self) -> List[Entry]:
        if self.pagination is None or not self.pagination.has_previous_page:
            return self.entries
        return await self.load_entries(page=self.page - 1)

    # ── Mutations (each re-fetches the current page) ──────────────────────

    async def create_entry(
        self, title: str, content: str, entry_date: Union[date, str]
    ) -> Entry:
        async with self._operation("create"):
            entry = await self.api.create_entry(title, content, entry_date)
            await self._fetch(self.page)
        return entry

    async def update_entry(
        self, entry_id: str, title: str, content: str, entry_date: Union[date, str]
    ) -> Entry:
        async with self._operation("update"):
            entry = await self.api.update_entry(entry_id, title, content, entry_date)
            await self._fetch(self.page)
        return entry

    async def delete_entry(self, entry_id: str) -> None:
        async with self._operation("delete"):
            await self.api.delete_entry(entry_id)
            await self._fetch(self.page)
