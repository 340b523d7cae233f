"""
Dear Diary Client — HTTP Transport
====================================

What:  Async client for every Dear Diary endpoint, built on httpx.
How:   - Inputs are checked with deardiary.validation before anything is sent,
         and entry identifiers must be in the safe character set before they
         are placed in a URL path.
       - The session token lives in a CredentialStore, not in the httpx
         cookie jar. Each request carries it as the session cookie; the
         login response's Set-Cookie is read once and saved to the store.
       - Every call has two time limits: a per-phase httpx timeout (connect,
         read, write, pool) and an overall deadline. Exceeding either raises
         RequestTimeoutError; any other transport failure raises NetworkError.
       - Error responses are mapped onto the same exception classes the server
         raises (ValidationError, UnauthorizedError, NotFoundError, ...).
       - No call is retried automatically.

Logging:
    Method, path, status and duration only. The module logger carries a
    RedactingFilter as a second line of defence for the session cookie.
"""

import asyncio
import logging
import time
from datetime import date
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError as SchemaError

from deardiary.client.credentials import SESSION_TOKEN_KEY, CredentialStore
from deardiary.client.models import AccountInfo, Entry, EntryPage, Pagination
from deardiary.exceptions import (
    AuthenticationError,
    ConflictError,
    NetworkError,
    NotFoundError,
    RateLimitExceededError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)
from deardiary.redaction import RedactingFilter
from deardiary.validation import (
    validate_entry_fields,
    validate_identifier,
    validate_login,
    validate_password_change,
    validate_registration,
)

logger = logging.getLogger(__name__)
logger.addFilter(RedactingFilter())

DEFAULT_COOKIE_NAME = "deardiary_session"
DEFAULT_TIMEOUT = 30.0
DEFAULT_RESOURCE_TIMEOUT = 60.0
DEFAULT_PAGE_SIZE = 20


def _entry_date_text(entry_date: Union[date, str, None]) -> Optional[str]:
    if isinstance(entry_date, date):
        return entry_date.isoformat()
    return entry_date


class DiaryAPI:
    """
    One method per endpoint.

    Args:
        base_url: Server root, e.g. "https://diary.example.com"
        credentials: Where the session token is kept between runs
        cookie_name: Name of the server's session cookie
        timeout: Per-phase httpx timeout in seconds
        resource_timeout: Overall deadline for one call in seconds
        page_size: `limit` sent with list requests
        transport: Optional httpx transport (tests pass MockTransport or ASGITransport)
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialStore,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        timeout: float = DEFAULT_TIMEOUT,
        resource_timeout: float = DEFAULT_RESOURCE_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.cookie_name = cookie_name
        self.resource_timeout = resource_timeout
        self.page_size = page_size
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "DiaryAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ── Session token ─────────────────────────────────────────────────────

    def has_stored_session(self) -> bool:
        return bool(self.credentials.get(SESSION_TOKEN_KEY))

    def clear_session(self) -> None:
        """Forgets the local session token. Does not contact the server."""
        self.credentials.clear()

    # ── Request plumbing ──────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {}
        token = self.credentials.get(SESSION_TOKEN_KEY)
        if token:
            headers["Cookie"] = f"{self.cookie_name}={token}"

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._http.request(method, path, json=json, params=params, headers=headers),
                timeout=self.resource_timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.warning("%s %s timed out", method, path)
            raise RequestTimeoutError(context={"method": method, "path": path}) from e
        except httpx.TransportError as e:
            logger.warning("%s %s failed: %s", method, path, type(e).__name__)
            raise NetworkError(context={"method": method, "path": path}) from e
        finally:
            # The store is the only source of the session cookie.
            self._http.cookies.clear()

        logger.debug(
            "%s %s -> %d (%.1fms)",
            method, path, response.status_code, (time.perf_counter() - start) * 1000,
        )
        if response.status_code >= 400:
            self._raise_for_status(response)
        return response

    @staticmethod
    def _error_payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {}
        return payload if isinstance(payload, dict) else {}

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        payload = self._error_payload(response)
        message = payload.get("message") or ""
        errors = payload.get("errors") or {}

        if status == 400:
            raise ValidationError(message or "Validation failed", errors=errors)
        if status == 401:
            if payload.get("error") == "authentication_failed":
                raise AuthenticationError(message or "Invalid username or password")
            raise UnauthorizedError(message or "Authentication required")
        if status == 404:
            raise NotFoundError(resource="diary entry")
        if status == 409:
            field = next(iter(errors), None)
            raise ConflictError(message or "Resource already exists", field=field)
        if status == 429:
            retry_after = response.headers.get("Retry-After", "60")
            raise RateLimitExceededError(retry_after=int(retry_after) if retry_after.isdigit() else 60)
        raise ServerError(status_code=status, context={"error": payload.get("error")})

    @staticmethod
    def _decode(model, data: Any):
        try:
            return model.model_validate(data)
        except SchemaError as e:
            logger.error("Unexpected response shape for %s", model.__name__)
            raise ServerError("Unexpected response from the server") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ServerError(
                "Unexpected response from the server", status_code=response.status_code
            ) from e

    # ── Auth ──────────────────────────────────────────────────────────────

    async def register(self, username: str, password: str, confirm_password: str) -> None:
        """Creates an account. The caller logs in separately."""
        trimmed = validate_registration(username, password, confirm_password)
        await self._request(
            "POST",
            "/api/auth/register",
            json={"username": trimmed, "password": password, "confirmPassword": confirm_password},
        )

    async def login(self, username: str, password: str) -> AccountInfo:
        """
        Logs in and saves the session token to the credential store.

        Raises:
            ValidationError: username or password empty (nothing is sent)
            AuthenticationError: credentials rejected
        """
        trimmed = validate_login(username, password)
        response = await self._request(
            "POST", "/api/auth/login", json={"username": trimmed, "password": password}
        )
        token = response.cookies.get(self.cookie_name)
        if not token:
            raise ServerError("Login succeeded but no session cookie was returned")
        self.credentials.set(SESSION_TOKEN_KEY, token)
        body = self._json(response)
        return self._decode(AccountInfo, body.get("user") if isinstance(body, dict) else None)

    async def logout(self) -> None:
        """Ends the server session if reachable; the local token is always cleared."""
        try:
            await self._request("POST", "/api/auth/logout")
        finally:
            self.clear_session()

    async def current_user(self) -> AccountInfo:
        response = await self._request("GET", "/api/auth/session")
        return self._decode(AccountInfo, self._json(response))

    async def change_password(
        self, current_password: str, new_password: str, confirm_password: str
    ) -> None:
        validate_password_change(current_password, new_password, confirm_password)
        await self._request(
            "POST",
            "/api/auth/change-password",
            json={
                "currentPassword": current_password,
                "newPassword": new_password,
                "confirmPassword": confirm_password,
            },
        )

    # ── Diary entries ─────────────────────────────────────────────────────

    async def list_entries(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        search: Optional[str] = None,
    ) -> EntryPage:
        params: Dict[str, Any] = {
            "page": page,
            "limit": self.page_size if limit is None else limit,
        }
        term = (search or "").strip()
        if term:
            params["search"] = term
        response = await self._request("GET", "/api/diaries", params=params)
        body = self._json(response)
        if not isinstance(body, dict):
            raise ServerError("Unexpected response from the server")
        return EntryPage(
            entries=[self._decode(Entry, item) for item in body.get("diaries") or []],
            pagination=self._decode(Pagination, body.get("pagination")),
        )

    async def get_entry(self, entry_id: str) -> Entry:
        validate_identifier(entry_id)
        response = await self._request("GET", f"/api/diaries/{entry_id}")
        return self._decode(Entry, self._json(response))

    async def create_entry(
        self, title: str, content: str, entry_date: Union[date, str]
    ) -> Entry:
        title, content, day = validate_entry_fields(title, content, _entry_date_text(entry_date))
        response = await self._request(
            "POST",
            "/api/diaries",
            json={"title": title, "content": content, "entryDate": day.isoformat()},
        )
        return self._decode(Entry, self._json(response))

    async def update_entry(
        self, entry_id: str, title: str, content: str, entry_date: Union[date, str]
    ) -> Entry:
        validate_identifier(entry_id)
        title, content, day = validate_entry_fields(title, content, _entry_date_text(entry_date))
        response = await self._request(
            "PUT",
            f"/api/diaries/{entry_id}",
            json={"title": title, "content": content, "entryDate": day.isoformat()},
        )
        return self._decode(Entry, self._json(response))

    async def delete_entry(self, entry_id: str) -> None:
        validate_identifier(entry_id)
        await self._request("DELETE", f"/api/diaries/{entry_id}")
