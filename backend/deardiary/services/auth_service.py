"""
Dear Diary Backend — Auth Service
===================================

What:  Registration, login, logout, password change and per-request session
       validation.
How:   Composes the password hasher with the user and session repositories.
       Stateless apart from its injected collaborators; each call receives
       the request's AsyncSession.
Who:   Auth routes, and `get_current_user` for every protected route.

Session Lifecycle:
    login    → new random token; its SHA-256 digest stored with an expiry;
               the raw token goes back to the route, which sets the cookie
    request  → cookie token digested and looked up; unknown or expired → 401
    logout   → row deleted; repeating it is harmless

    Sessions are independent: logging in again does not end older sessions,
    and a password change leaves existing sessions valid.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.dates import as_utc, utcnow
from deardiary.exceptions import AuthenticationError, ConflictError, UnauthorizedError, ValidationError
from deardiary.models.user import User
from deardiary.repositories.sessions import SessionRepository, session_repository
from deardiary.repositories.users import USERNAME_TAKEN, UserRepository, user_repository
from deardiary.services.security import PasswordHasher, generate_session_token, hash_session_token
from deardiary.validation import validate_password_change, validate_registration

logger = logging.getLogger(__name__)

# token_urlsafe(32) yields 43 characters; anything far off that shape is
# rejected before touching the database.
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,128}$")


@dataclass
class IssuedSession:
    token: str
    user: User
    expires_at: datetime


class AuthService:
    """
    Account and session operations.

    Args:
        hasher: Password hasher (bcrypt)
        session_ttl_seconds: Lifetime of a new session
        users: User repository
        sessions: Session repository
    """

    def __init__(
        self,
        hasher: PasswordHasher,
        session_ttl_seconds: int,
        users: UserRepository = user_repository,
        sessions: SessionRepository = session_repository,
    ):
        self.hasher = hasher
        self.session_ttl = timedelta(seconds=session_ttl_seconds)
        self.users = users
        self.sessions = sessions

    async def register(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> User:
        """
        Creates an account. Does not log the new user in.

        Raises:
            ValidationError: username/password rules or mismatched confirmation
            ConflictError: username already taken
        """
        trimmed = validate_registration(username, password, confirm_password)

        if await self.users.get_by_username(db, trimmed) is not None:
            raise ConflictError(USERNAME_TAKEN, field="username")

        password_hash = await self.hasher.hash(password)
        user = await self.users.create(db, trimmed, password_hash)
        logger.info("User registered: %s", user.id)
        return user

    async def login(
        self,
        db: AsyncSession,
        username: Optional[str],
        password: Optional[str],
    ) -> IssuedSession:
        """
        Verifies credentials and opens a new session.

        Raises:
            AuthenticationError: unknown user or wrong password (same message)
        """
        trimmed = (username or "").strip()
        if not trimmed or not password:
            raise AuthenticationError()

        user = await self.users.get_by_username(db, trimmed)
        if user is None:
            await self.hasher.verify_dummy(password)
            logger.info("Login failed: unknown username")
            raise AuthenticationError()

        if not await self.hasher.verify(password, user.password_hash):
            logger.info("Login failed for user %s: wrong password", user.id)
            raise AuthenticationError()

        now = utcnow()
        await self.sessions.delete_expired(db, user.id, now)

        token = generate_session_token()
        expires_at = now + self.session_ttl
        await self.sessions.create(db, user.id, hash_session_token(token), expires_at)
        logger.info("User %s logged in", user.id)
        return IssuedSession(token=token, user=user, expires_at=expires_at)

    async def validate_session(self, db: AsyncSession, token: Optional[str]) -> User:
        """
        Resolves a session token to its user.

        Raises:
            UnauthorizedError: token missing, malformed, unknown or expired
        """
        if not token or not _TOKEN_PATTERN.fullmatch(token):
            raise UnauthorizedError()

        token_hash = hash_session_token(token)
        found = await self.sessions.get_with_user(db, token_hash)
        if found is None:
            raise UnauthorizedError()

        session, user = found
        if as_utc(session.expires_at) <= utcnow():
            # The row itself is purged at this user's next login.
            logger.info("Expired session rejected for user %s", user.id)
            raise UnauthorizedError("Session expired. Please log in again.")
        return user

    async def logout(self, db: AsyncSession, token: Optional[str]) -> None:
        """Ends the session if there is one. Always succeeds."""
        if not token or not _TOKEN_PATTERN.fullmatch(token):
            return
        if await self.sessions.delete(db, hash_session_token(token)):
            logger.info("Session ended")

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: Optional[str],
        new_password: Optional[str],
        confirm_password: Optional[str],
    ) -> None:
        """
        Replaces the password hash after verifying the current password.

        Raises:
            ValidationError: rule violations, or `currentPassword` is wrong
        """
        validate_password_change(current_password, new_password, confirm_password)

        if not await self.hasher.verify(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="currentPassword")

        password_hash = await self.hasher.hash(new_password)
        await self.users.update_password(db, user, password_hash)
        logger.info("Password changed for user %s", user.id)
