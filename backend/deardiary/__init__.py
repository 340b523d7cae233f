"""
Dear Diary Backend — Application Package Initializer
=====================================================

What: Marks the `deardiary` directory as a Python package.
Who:  Imported by uvicorn (deardiary.main:app), Alembic, pytest and the client library.

Architecture Note:
    The backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, cookies, status codes
    ├─────────────────────────────────────┤
    │   Services (Auth, Diary, Security)  │  ← Validation, ownership, pagination
    ├─────────────────────────────────────┤
    │            Repositories             │  ← Owner-scoped SQL queries
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The `deardiary.client` subpackage is the consumer side of the same HTTP
    contract: an httpx-based API client plus the local auth state that decides
    when a user has to log in again.
"""

__version__ = "1.0.0"
