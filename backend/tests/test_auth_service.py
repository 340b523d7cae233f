"""
Dear Diary — Auth Service Tests
=================================

What:  AuthService against a real SQLite database.

What we test:
    ✅ Registration creates exactly one user; duplicates are a ConflictError
    ✅ Validation happens before any row is written
    ✅ Login success/failure; unknown user still costs a hash verification
    ✅ Session validation: missing, malformed, unknown, expired tokens
    ✅ Logout is idempotent
    ✅ Password change: wrong current password is field-scoped; other sessions survive
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from deardiary.dates import utcnow
from deardiary.exceptions import (
    AuthenticationError,
    ConflictError,
    UnauthorizedError,
    ValidationError,
)
from deardiary.models.session import UserSession
from deardiary.models.user import User
from deardiary.repositories.users import user_repository
from deardiary.services.auth_service import AuthService
from deardiary.services.security import hash_session_token


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar()


@pytest.fixture
def service(hasher):
    return AuthService(hasher=hasher, session_ttl_seconds=3600)


@pytest_asyncio.fixture
async def alice(service, db_session):
    return await service.register(db_session, "alice", "secret1", "secret1")


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_creates_one_user(self, service, db_session):
        user = await service.register(db_session, "  alice ", "secret1", "secret1")
        assert user.username == "alice"
        assert user.password_hash != "secret1"
        assert await _count(db_session, User) == 1

    @pytest.mark.asyncio
    async def test_duplicate_username_is_conflict(self, service, db_session):
        await service.register(db_session, "alice", "secret1", "secret1")
        with pytest.raises(ConflictError) as exc_info:
            await service.register(db_session, "alice", "other12", "other12")
        assert exc_info.value.errors == {"username": "Username already taken"}
        assert await _count(db_session, User) == 1

    @pytest.mark.asyncio
    async def test_unique_index_backs_up_the_lookup(self, db_session):
        await user_repository.create(db_session, "alice", "not-a-real-hash")
        with pytest.raises(ConflictError) as exc_info:
            await user_repository.create(db_session, "alice", "not-a-real-hash")
        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_usernames_are_case_sensitive(self, service, db_session):
        await service.register(db_session, "alice", "secret1", "secret1")
        await service.register(db_session, "Alice", "secret1", "secret1")
        assert await _count(db_session, User) == 2

    @pytest.mark.asyncio
    async def test_invalid_input_writes_nothing(self, service, db_session):
        with pytest.raises(ValidationError):
            await service.register(db_session, "alice", "abcde", "abcde")
        assert await _count(db_session, User) == 0

    @pytest.mark.asyncio
    async def test_register_does_not_log_in(self, service, db_session):
        await service.register(db_session, "alice", "secret1", "secret1")
        assert await _count(db_session, UserSession) == 0


class TestLoginAndSessions:

    @pytest.mark.asyncio
    async def test_login_issues_session(self, service, alice, db_session):
        issued = await service.login(db_session, "alice", "secret1")
        assert issued.user.id == alice.id
        row = (await db_session.execute(select(UserSession))).scalar_one()
        # Only the digest is stored
        assert row.token_hash == hash_session_token(issued.token)
        assert row.token_hash != issued.token

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_user_look_the_same(self, service, alice, db_session):
        with pytest.raises(AuthenticationError) as wrong:
            await service.login(db_session, "alice", "wrong-password")
        with pytest.raises(AuthenticationError) as unknown:
            await service.login(db_session, "nobody", "secret1")
        assert wrong.value.message == unknown.value.message == "Invalid username or password"

    @pytest.mark.asyncio
    async def test_unknown_user_still_verifies_a_hash(self, service, alice, db_session):
        service.hasher.verify_dummy = AsyncMock()
        with pytest.raises(AuthenticationError):
            await service.login(db_session, "nobody", "secret1")
        service.hasher.verify_dummy.assert_awaited_once_with("secret1")

    @pytest.mark.asyncio
    async def test_each_login_gets_its_own_session(self, service, alice, db_session):
        first = await service.login(db_session, "alice", "secret1")
        second = await service.login(db_session, "alice", "secret1")
        assert first.token != second.token
        assert (await service.validate_session(db_session, first.token)).id == alice.id
        assert (await service.validate_session(db_session, second.token)).id == alice.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", [None, "", "short", "has spaces in it and more", "x" * 500])
    async def test_missing_or_malformed_token_is_unauthorized(self, service, alice, db_session, token):
        with pytest.raises(UnauthorizedError):
            await service.validate_session(db_session, token)

    @pytest.mark.asyncio
    async def test_unknown_token_is_unauthorized(self, service, alice, db_session):
        with pytest.raises(UnauthorizedError):
            await service.validate_session(db_session, "A" * 43)

    @pytest.mark.asyncio
    async def test_expired_session_is_unauthorized(self, service, alice, db_session):
        issued = await service.login(db_session, "alice", "secret1")
        row = (await db_session.execute(select(UserSession))).scalar_one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        await db_session.flush()
        with pytest.raises(UnauthorizedError, match="expired"):
            await service.validate_session(db_session, issued.token)

    @pytest.mark.asyncio
    async def test_expired_sessions_purged_at_next_login(self, service, alice, db_session):
        await service.login(db_session, "alice", "secret1")
        row = (await db_session.execute(select(UserSession))).scalar_one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        await db_session.flush()
        await service.login(db_session, "alice", "secret1")
        assert await _count(db_session, UserSession) == 1

    @pytest.mark.asyncio
    async def test_logout_invalidates_and_is_idempotent(self, service, alice, db_session):
        issued = await service.login(db_session, "alice", "secret1")
        await service.logout(db_session, issued.token)
        with pytest.raises(UnauthorizedError):
            await service.validate_session(db_session, issued.token)
        await service.logout(db_session, issued.token)
        await service.logout(db_session, None)


class TestChangePassword:

    @pytest.mark.asyncio
    async def test_change_password(self, service, alice, db_session):
        await service.change_password(db_session, alice, "secret1", "newpass1", "newpass1")
        await service.login(db_session, "alice", "newpass1")
        with pytest.raises(AuthenticationError):
            await service.login(db_session, "alice", "secret1")

    @pytest.mark.asyncio
    async def test_wrong_current_password_is_field_error(self, service, alice, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await service.change_password(db_session, alice, "wrong-one", "newpass1", "newpass1")
        assert exc_info.value.errors == {"currentPassword": "Current password is incorrect"}

    @pytest.mark.asyncio
    async def test_rules_checked_before_current_password(self, service, alice, db_session):
        service.hasher.verify = AsyncMock()
        with pytest.raises(ValidationError) as exc_info:
            await service.change_password(db_session, alice, "secret1", "abc", "abc")
        assert "newPassword" in exc_info.value.errors
        service.hasher.verify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_sessions_survive_password_change(self, service, alice, db_session):
        issued = await service.login(db_session, "alice", "secret1")
        await service.change_password(db_session, alice, "secret1", "newpass1", "newpass1")
        user = await service.validate_session(db_session, issued.token)
        assert user.id == alice.id
