"""
Dear Diary Backend — Session Repository
=========================================

What:  Storage of login sessions keyed by the SHA-256 digest of the token.
Who:   AuthService (login, logout, per-request validation).
"""

import logging
from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.exceptions import DatabaseError
from deardiary.models.session import UserSession
from deardiary.models.user import User

logger = logging.getLogger(__name__)


class SessionRepository:
    """Stateless access to the `sessions` table."""

    async def create(
        self,
        db: AsyncSession,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
    ) -> UserSession:
        session = UserSession(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
        db.add(session)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating session: %s", type(e).__name__)
            raise DatabaseError(context={"operation": "create_session"}) from e
        return session

    async def get_with_user(
        self, db: AsyncSession, token_hash: str
    ) -> Optional[Tuple[UserSession, User]]:
        """Returns the session and its user, or None for an unknown digest."""
        try:
            result = await db.execute(
                select(UserSession, User)
                .join(User, User.id == UserSession.user_id)
                .where(UserSession.token_hash == token_hash)
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error loading session: %s", type(e).__name__)
            raise DatabaseError(context={"operation": "get_session"}) from e
        if row is None:
            return None
        return row[0], row[1]

    async def delete(self, db: AsyncSession, token_hash: str) -> bool:
        """Deletes one session. Returns False when nothing matched."""
        try:
            result = await db.execute(
                delete(UserSession).where(UserSession.token_hash == token_hash)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting session: %s", type(e).__name__)
            raise DatabaseError(context={"operation": "delete_session"}) from e
        return result.rowcount > 0

    async def delete_expired(self, db: AsyncSession, user_id: UUID, now: datetime) -> int:
        """Purges a user's expired sessions; run at login so the table stays small."""
        try:
            result = await db.execute(
                delete(UserSession).where(
                    UserSession.user_id == user_id,
                    UserSession.expires_at <= now,
                )
            )
        except SQLAlchemyError as e:
            logger.error("Database error purging sessions: %s", type(e).__name__)
            raise DatabaseError(context={"operation": "delete_expired_sessions"}) from e
        return result.rowcount or 0


session_repository = SessionRepository()
