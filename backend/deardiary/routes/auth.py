"""
Dear Diary Backend — Auth Route Handlers
==========================================

What:  POST /api/auth/register, /login, /logout, /change-password and
       GET /api/auth/session.
How:   Thin handlers: parse the body, call AuthService, and manage the
       session cookie. Errors are raised as exceptions and formatted by the
       global handlers in main.py.

Cookie:
    name      settings.session_cookie_name (deardiary_session)
    flags     HttpOnly, SameSite=Lax, Secure when configured
    max_age   the session TTL; the server-side expiry is authoritative
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.config import settings
from deardiary.database import get_db_session
from deardiary.dependencies import get_auth_service, get_current_user, get_session_token
from deardiary.models.user import User
from deardiary.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from deardiary.schemas.common import ErrorResponse, MessageResponse
from deardiary.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
    )


def _clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
    )


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
    responses={
        400: {"description": "Field validation failed", "model": ErrorResponse},
        409: {"description": "Username already taken", "model": ErrorResponse},
    },
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Registers a user. The client logs in separately afterwards."""
    await auth.register(db, body.username, body.password, body.confirm_password)
    return MessageResponse(message="User created successfully")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={401: {"description": "Invalid username or password", "model": ErrorResponse}},
    summary="Log in and receive a session cookie",
)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    issued = await auth.login(db, body.username, body.password)
    _set_session_cookie(response, issued.token)
    return LoginResponse(user=UserResponse.model_validate(issued.user))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="End the current session",
)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Idempotent: succeeds with or without a live session."""
    await auth.logout(db, token)
    _clear_session_cookie(response)
    return MessageResponse(message="Logged out")


@router.post(
    "/change-password",
    response_model=MessageResponse,
    responses={
        400: {"description": "Field validation failed or wrong current password", "model": ErrorResponse},
        401: {"description": "No valid session", "model": ErrorResponse},
    },
    summary="Change the current user's password",
)
async def change_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.change_password(
        db, user, body.current_password, body.new_password, body.confirm_password
    )
    return MessageResponse(message="Password updated successfully")


@router.get(
    "/session",
    response_model=UserResponse,
    responses={401: {"description": "No valid session", "model": ErrorResponse}},
    summary="The user behind the current session",
)
async def current_session(user: User = Depends(get_current_user)) -> UserResponse:
    return UserResponse.model_validate(user)
