"""
Dear Diary Client — Async API Client and Session State
========================================================

What:  The consumer side of the Dear Diary HTTP API.
How:   Two layers:

    DiaryAPI     httpx transport: one method per endpoint, client-side
                 validation, status → exception mapping, session token
                 kept in a CredentialStore
    DiaryClient  stateful layer: optimistic auth flag, one-in-flight guard
                 per operation kind, current page/search, re-fetch after
                 every mutation

Example:
    store = MemoryCredentialStore()
    async with DiaryAPI("http://localhost:8000", store) as api:
        client = DiaryClient(api)
        await client.login("alice", "secret1")
        await client.create_entry("Day 1", "hello", "2024-01-01")
        print(client.pagination.total)
"""

from deardiary.client.api import DiaryAPI
from deardiary.client.credentials import SESSION_TOKEN_KEY, CredentialStore, MemoryCredentialStore
from deardiary.client.models import AccountInfo, Entry, EntryPage, Pagination
from deardiary.client.state import DiaryClient

__all__ = [
    "AccountInfo",
    "CredentialStore",
    "DiaryAPI",
    "DiaryClient",
    "Entry",
    "EntryPage",
    "MemoryCredentialStore",
    "Pagination",
    "SESSION_TOKEN_KEY",
]
