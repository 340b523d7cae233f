"""
Dear Diary Backend — FastAPI Dependencies
===========================================

What:  Providers for the service objects and the authenticated user.
How:   Services are built once from settings and handed to routes through
       Depends(); tests swap them with `app.dependency_overrides`.
       `get_current_user` reads the session cookie and resolves it through
       AuthService, so a protected route never runs without a valid session.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.config import settings
from deardiary.database import get_db_session
from deardiary.models.user import User
from deardiary.services.auth_service import AuthService
from deardiary.services.diary_service import DiaryService
from deardiary.services.security import PasswordHasher


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.bcrypt_rounds)


def get_auth_service(hasher: PasswordHasher = Depends(get_password_hasher)) -> AuthService:
    return AuthService(hasher=hasher, session_ttl_seconds=settings.session_ttl_seconds)


def get_diary_service() -> DiaryService:
    return DiaryService(
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """
    Resolves the session cookie to a User.

    Raises:
        UnauthorizedError: no cookie, or the session is unknown or expired (→ 401)
    """
    return await auth.validate_session(db, token)
