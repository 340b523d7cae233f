"""
Dear Diary Backend — User Repository
======================================

What:  Persistence of user accounts.
Who:   AuthService.

Username uniqueness is enforced twice: AuthService checks first so the common
case gets a clean ConflictError, and the unique index catches the race where
two registrations for the same name arrive together.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deardiary.exceptions import ConflictError, DatabaseError
from deardiary.models.user import User

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "Username already taken"


class UserRepository:
    """Stateless access to the `users` table."""

    async def get_by_username(self, db: AsyncSession, username: str) -> Optional[User]:
        try:
            result = await db.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error looking up user: %s", type(e).__name__)
            raise DatabaseError(context={"operation": "get_by_username"}) from e

    async def create(self, db: AsyncSession, username: str, password_hash: str) -> User:
        """
        Inserts a user and flushes so the unique index is checked now.

        Raises:
            ConflictError: the username is already taken
            DatabaseError: any other database failure
        """
        user = User(username=username, password_hash=password_hash)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Registration rejected by unique index (username taken)")
            raise ConflictError(USERNAME_TAKEN, field="username") from e
        except SQLAlchemyError as e:
            logger.error("Database error creating user: %s", type(e).__name__)
            raise DatabaseError(context={"operation": "create_user"}) from e
        return user

    async def update_password(self, db: AsyncSession, user: User, password_hash: str) -> None:
        user.password_hash = password_hash
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating password for %s: %s", user.id, type(e).__name__)
            raise DatabaseError(context={"operation": "update_password"}) from e


user_repository = UserRepository()
