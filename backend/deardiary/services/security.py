"""
Dear Diary Backend — Password Hashing and Session Tokens
==========================================================

What:  bcrypt password hashing plus the helpers that mint and digest
       session tokens.
How:   Passwords are pre-hashed with SHA-256 and base64-encoded (44 ASCII
       bytes, no NUL bytes) before bcrypt, which lifts bcrypt's 72-byte input
       limit. Hashing and verification are CPU-bound, so the async wrappers
       run them in a worker thread and the event loop keeps serving
       other requests.
Who:   AuthService; tests construct a PasswordHasher with a low cost factor.
"""

import asyncio
import base64
import hashlib
import secrets

import bcrypt

SESSION_TOKEN_BYTES = 32


def _pre_hash_password(password: str) -> bytes:
    digest = hashlib.sha256(password.encode("utf-8")).digest()
    return base64.b64encode(digest)


class PasswordHasher:
    """
    One-way adaptive password hash with verify.

    Args:
        rounds: bcrypt cost factor (log2 of the work). 12 in production.
    """

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        # Verified against when the username does not exist, so an unknown
        # user costs the same bcrypt work as a wrong password.
        self._dummy_hash = self.hash_sync(secrets.token_urlsafe(16))

    def hash_sync(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_pre_hash_password(password), salt).decode("utf-8")

    def verify_sync(self, password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(_pre_hash_password(password), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash
            return False

    async def hash(self, password: str) -> str:
        return await asyncio.to_thread(self.hash_sync, password)

    async def verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.verify_sync, password, password_hash)

    async def verify_dummy(self, password: str) -> None:
        """Burns one verification's worth of time; the result is always discarded."""
        await asyncio.to_thread(self.verify_sync, password, self._dummy_hash)


def generate_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)


def hash_session_token(token: str) -> str:
    """SHA-256 hex digest; the only form of a session token that is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
