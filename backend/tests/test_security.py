"""
Dear Diary — Password Hasher and Token Helper Tests
=====================================================
"""

import pytest

from deardiary.services.security import (
    PasswordHasher,
    generate_session_token,
    hash_session_token,
)


class TestPasswordHasher:

    def setup_method(self):
        self.hasher = PasswordHasher(rounds=4)

    @pytest.mark.asyncio
    async def test_hash_then_verify(self):
        stored = await self.hasher.hash("secret1")
        assert stored.startswith("$2")
        assert "secret1" not in stored
        assert await self.hasher.verify("secret1", stored) is True
        assert await self.hasher.verify("secret2", stored) is False

    @pytest.mark.asyncio
    async def test_same_password_hashes_differently(self):
        first = await self.hasher.hash("secret1")
        second = await self.hasher.hash("secret1")
        assert first != second

    def test_long_passwords_are_not_truncated(self):
        # bcrypt alone ignores everything past 72 bytes
        base = "x" * 80
        stored = self.hasher.hash_sync(base + "a")
        assert self.hasher.verify_sync(base + "a", stored) is True
        assert self.hasher.verify_sync(base + "b", stored) is False

    def test_cost_factor_is_applied(self):
        assert self.hasher.hash_sync("secret1").startswith("$2b$04$")

    def test_malformed_hash_does_not_verify(self):
        assert self.hasher.verify_sync("secret1", "not-a-bcrypt-hash") is False

    @pytest.mark.asyncio
    async def test_verify_dummy_returns_nothing(self):
        assert await self.hasher.verify_dummy("anything") is None


class TestSessionTokens:

    def test_tokens_are_random_and_url_safe(self):
        tokens = {generate_session_token() for _ in range(50)}
        assert len(tokens) == 50
        for token in tokens:
            assert len(token) >= 43
            assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

    def test_token_digest_is_stable_sha256_hex(self):
        digest = hash_session_token("abc")
        assert digest == hash_session_token("abc")
        assert len(digest) == 64
        assert digest != "abc"
