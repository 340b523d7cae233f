"""
Dear Diary Client — Credential Store
======================================

The session token is the only secret the client keeps. Where it lives (an OS
keychain, an encrypted file) is the embedding application's business; the
client only needs get / set / delete / clear by key.
"""

from typing import Dict, Optional, Protocol

SESSION_TOKEN_KEY = "session_token"


class CredentialStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryCredentialStore:
    """Process-local store. Used by tests and short-lived scripts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def clear(self) -> None:
        self._values.clear()
