"""
Dear Diary — Client Tests
===========================

What:  DiaryAPI (transport + error mapping) and DiaryClient (state layer).
How:   httpx.MockTransport for transport-level behavior; the real app over
       ASGITransport for end-to-end flows.

What we test:
    ✅ Timeouts and transport failures surface as RequestTimeoutError / NetworkError
    ✅ HTTP error statuses map onto the server's exception classes
    ✅ The session token is kept in the credential store, never the httpx jar
    ✅ Client-side validation sends nothing
    ✅ One in-flight operation per kind
    ✅ A 401 anywhere logs the client out locally
    ✅ Full register → login → CRUD → logout flow against the real app
"""

import asyncio
import json
import uuid

import httpx
import pytest
import pytest_asyncio

from deardiary.client import (
    SESSION_TOKEN_KEY,
    DiaryAPI,
    DiaryClient,
    MemoryCredentialStore,
)
from deardiary.exceptions import (
    AuthenticationError,
    ConflictError,
    NetworkError,
    NotFoundError,
    OperationInProgressError,
    RateLimitExceededError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
    ValidationError,
)

BASE_URL = "http://testserver"
TOKEN = "t" * 43
USER = {"id": str(uuid.uuid4()), "username": "alice"}


def _empty_page(page=1):
    return {
        "diaries": [],
        "pagination": {"page": page, "limit": 20, "total": 0, "totalPages": 0},
    }


def _make_api(handler, store=None, **kwargs) -> DiaryAPI:
    return DiaryAPI(
        BASE_URL,
        store if store is not None else MemoryCredentialStore(),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


# ══════════════════════════════════════════════════════════════════════════
# Transport
# ══════════════════════════════════════════════════════════════════════════


class TestTransportErrors:

    @pytest.mark.asyncio
    async def test_httpx_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with _make_api(handler) as api:
            with pytest.raises(RequestTimeoutError):
                await api.list_entries()

    @pytest.mark.asyncio
    async def test_overall_deadline(self):
        async def handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=_empty_page())

        async with _make_api(handler, resource_timeout=0.05) as api:
            with pytest.raises(RequestTimeoutError):
                await api.list_entries()

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _make_api(handler) as api:
            with pytest.raises(NetworkError) as exc_info:
                await api.list_entries()
        assert not isinstance(exc_info.value, RequestTimeoutError)


class TestStatusMapping:

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,body,expected",
        [
            (400, {"error": "validation_error", "message": "Bad", "errors": {"title": "Title is required"}}, ValidationError),
            (401, {"error": "authentication_failed", "message": "Invalid username or password"}, AuthenticationError),
            (401, {"error": "unauthorized", "message": "Authentication required"}, UnauthorizedError),
            (404, {"error": "not_found", "message": "Diary entry not found"}, NotFoundError),
            (409, {"error": "conflict", "message": "Username already taken", "errors": {"username": "Username already taken"}}, ConflictError),
            (500, {"error": "server_error", "message": "oops"}, ServerError),
            (502, None, ServerError),
        ],
    )
    async def test_error_statuses(self, status, body, expected):
        def handler(request):
            if body is None:
                return httpx.Response(status, text="<html>Bad Gateway</html>")
            return httpx.Response(status, json=body)

        async with _make_api(handler) as api:
            with pytest.raises(expected):
                await api.get_entry(str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_validation_errors_keep_fields(self):
        def handler(request):
            return httpx.Response(
                400, json={"error": "validation_error", "message": "Bad", "errors": {"limit": "Limit must be between 1 and 100"}}
            )

        async with _make_api(handler) as api:
            with pytest.raises(ValidationError) as exc_info:
                await api.list_entries()
        assert exc_info.value.errors == {"limit": "Limit must be between 1 and 100"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit,sent", [(None, "20"), (5, "5")])
    async def test_limit_defaults_to_page_size(self, limit, sent):
        seen = []

        def handler(request):
            seen.append(request.url.params["limit"])
            return httpx.Response(200, json=_empty_page())

        async with _make_api(handler) as api:
            await api.list_entries(limit=limit)
        assert seen == [sent]

    @pytest.mark.asyncio
    async def test_zero_limit_reaches_the_server(self):
        seen = []

        def handler(request):
            seen.append(request.url.params["limit"])
            message = "Limit must be between 1 and 100"
            return httpx.Response(
                400, json={"error": "validation_error", "message": message, "errors": {"limit": message}}
            )

        async with _make_api(handler) as api:
            with pytest.raises(ValidationError) as exc_info:
                await api.list_entries(limit=0)
        assert seen == ["0"]
        assert "limit" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_rate_limit_reads_retry_after(self):
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "30"}, json={"error": "rate_limit_exceeded"})

        async with _make_api(handler) as api:
            with pytest.raises(RateLimitExceededError) as exc_info:
                await api.list_entries()
        assert exc_info.value.retry_after == 30

    @pytest.mark.asyncio
    async def test_unexpected_body_shape_is_server_error(self):
        def handler(request):
            return httpx.Response(200, json={"diaries": "nope"})

        async with _make_api(handler) as api:
            with pytest.raises(ServerError):
                await api.list_entries()


class TestCredentials:

    @pytest.mark.asyncio
    async def test_login_stores_token_and_sends_it(self):
        seen_cookies = []

        def handler(request):
            seen_cookies.append(request.headers.get("Cookie"))
            if request.url.path == "/api/auth/login":
                return httpx.Response(
                    200,
                    json={"message": "Logged in", "user": USER},
                    headers={"Set-Cookie": f"deardiary_session={TOKEN}; HttpOnly; Path=/"},
                )
            return httpx.Response(200, json=USER)

        store = MemoryCredentialStore()
        async with _make_api(handler, store) as api:
            user = await api.login("alice", "secret1")
            assert user.username == "alice"
            assert store.get(SESSION_TOKEN_KEY) == TOKEN
            # The httpx jar never holds the token
            assert len(api._http.cookies) == 0

            await api.current_user()

        assert seen_cookies == [None, f"deardiary_session={TOKEN}"]

    @pytest.mark.asyncio
    async def test_login_without_cookie_is_server_error(self):
        def handler(request):
            return httpx.Response(200, json={"message": "Logged in", "user": USER})

        store = MemoryCredentialStore()
        async with _make_api(handler, store) as api:
            with pytest.raises(ServerError):
                await api.login("alice", "secret1")
        assert store.get(SESSION_TOKEN_KEY) is None

    @pytest.mark.asyncio
    async def test_logout_clears_store_even_when_offline(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        store = MemoryCredentialStore({SESSION_TOKEN_KEY: TOKEN})
        async with _make_api(handler, store) as api:
            with pytest.raises(NetworkError):
                await api.logout()
        assert store.get(SESSION_TOKEN_KEY) is None


class TestClientSideValidation:

    def setup_method(self):
        self.calls = 0

    def _handler(self, request):
        self.calls += 1
        return httpx.Response(500)

    @pytest.mark.asyncio
    async def test_nothing_is_sent(self):
        async with _make_api(self._handler) as api:
            with pytest.raises(ValidationError):
                await api.create_entry("", "content", "2024-01-01")
            with pytest.raises(ValidationError):
                await api.register("alice", "abc", "abc")
            with pytest.raises(ValidationError):
                await api.login("", "secret1")
            with pytest.raises(ValidationError):
                await api.get_entry("../../admin")
            with pytest.raises(ValidationError):
                await api.change_password("secret1", "newpass1", "different")
        assert self.calls == 0


# ══════════════════════════════════════════════════════════════════════════
# State layer
# ══════════════════════════════════════════════════════════════════════════


class TestDiaryClientState:

    @pytest.mark.asyncio
    async def test_optimistic_auth_from_stored_token(self):
        async with _make_api(lambda r: httpx.Response(200, json=_empty_page())) as api:
            assert DiaryClient(api).is_authenticated is False
        store = MemoryCredentialStore({SESSION_TOKEN_KEY: TOKEN})
        async with _make_api(lambda r: httpx.Response(200, json=_empty_page()), store) as api:
            assert DiaryClient(api).is_authenticated is True

    @pytest.mark.asyncio
    async def test_unauthorized_logs_out_locally(self):
        def handler(request):
            return httpx.Response(401, json={"error": "unauthorized", "message": "Session expired. Please log in again."})

        store = MemoryCredentialStore({SESSION_TOKEN_KEY: TOKEN})
        async with _make_api(handler, store) as api:
            client = DiaryClient(api)
            with pytest.raises(UnauthorizedError):
                await client.load_entries()
            assert client.is_authenticated is False
            assert store.get(SESSION_TOKEN_KEY) is None
            assert client.is_busy() is False

    @pytest.mark.asyncio
    async def test_same_kind_is_refused_while_in_flight(self):
        release = asyncio.Event()
        requests = []

        async def handler(request):
            requests.append(request.url.path)
            await release.wait()
            return httpx.Response(200, json=_empty_page())

        store = MemoryCredentialStore({SESSION_TOKEN_KEY: TOKEN})
        async with _make_api(handler, store) as api:
            client = DiaryClient(api)
            first = asyncio.create_task(client.load_entries())
            while not requests:
                await asyncio.sleep(0)
            assert client.is_busy("fetch")

            with pytest.raises(OperationInProgressError) as exc_info:
                await client.load_entries()
            assert exc_info.value.operation == "fetch"

            release.set()
            assert await first == []

        assert len(requests) == 1
        assert client.is_busy() is False

    @pytest.mark.asyncio
    async def test_search_trims_and_restarts_at_first_page(self):
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return httpx.Response(200, json=_empty_page())

        store = MemoryCredentialStore({SESSION_TOKEN_KEY: TOKEN})
        async with _make_api(handler, store) as api:
            client = DiaryClient(api)
            client.page = 3
            await client.search("  walk ")
            await client.clear_search()

        assert seen[0] == {"page": "1", "limit": "20", "search": "walk"}
        assert "search" not in seen[1]
        assert client.search_text == ""

    @pytest.mark.asyncio
    async def test_paging_stops_at_the_ends(self):
        def handler(request):
            page = int(request.url.params["page"])
            body = {
                "diaries": [],
                "pagination": {"page": page, "limit": 20, "total": 30, "totalPages": 2},
            }
            return httpx.Response(200, content=json.dumps(body), headers={"Content-Type": "application/json"})

        store = MemoryCredentialStore({SESSION_TOKEN_KEY: TOKEN})
        async with _make_api(handler, store) as api:
            client = DiaryClient(api)
            await client.load_entries()
            await client.previous_page()
            assert client.page == 1
            await client.next_page()
            assert client.page == 2
            await client.next_page()
            assert client.page == 2


# ══════════════════════════════════════════════════════════════════════════
# End to end against the real app
# ══════════════════════════════════════════════════════════════════════════


@pytest_asyncio.fixture
async def live_api(app):
    api = DiaryAPI(
        BASE_URL,
        MemoryCredentialStore(),
        transport=httpx.ASGITransport(app=app),
        page_size=2,
    )
    yield api
    await api.aclose()


class TestEndToEnd:

    @pytest.mark.asyncio
    async def test_full_flow(self, live_api):
        client = DiaryClient(live_api)
        await client.register("alice", "secret1", "secret1")
        assert client.is_authenticated is False

        user = await client.login("alice", "secret1")
        assert user.username == "alice"
        assert client.is_authenticated is True
        assert (await client.refresh_user()).id == user.id

        created = await client.create_entry("First", "Hello diary", "2024-06-01")
        assert created.created_at == created.updated_at
        assert created.created_at.tzinfo is not None
        assert [e.id for e in client.entries] == [created.id]

        updated = await client.update_entry(str(created.id), "First!", "Hello again", "2024-06-01")
        assert updated.updated_at > created.updated_at
        assert client.entries[0].title == "First!"

        await client.logout()
        assert client.is_authenticated is False
        assert client.entries == []
        assert live_api.has_stored_session() is False

    @pytest.mark.asyncio
    async def test_duplicate_registration_is_conflict(self, live_api):
        await live_api.register("alice", "secret1", "secret1")
        with pytest.raises(ConflictError) as exc_info:
            await live_api.register("alice", "secret1", "secret1")
        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_wrong_password(self, live_api):
        await live_api.register("alice", "secret1", "secret1")
        with pytest.raises(AuthenticationError):
            await live_api.login("alice", "wrong-one")
        assert live_api.has_stored_session() is False

    @pytest.mark.asyncio
    async def test_delete_on_last_page_steps_back(self, live_api):
        client = DiaryClient(live_api)
        await client.register("alice", "secret1", "secret1")
        await client.login("alice", "secret1")
        for day in (1, 2, 3):
            await client.create_entry(f"Entry {day}", "x", f"2024-06-0{day}")

        await client.load_entries(page=2)
        assert client.pagination.total_pages == 2
        assert [e.title for e in client.entries] == ["Entry 1"]

        await client.delete_entry(str(client.entries[0].id))
        assert client.page == 1
        assert [e.title for e in client.entries] == ["Entry 3", "Entry 2"]
        assert client.pagination.total == 2

    @pytest.mark.asyncio
    async def test_server_side_logout_is_noticed(self, live_api, make_client):
        client = DiaryClient(live_api)
        await client.register("alice", "secret1", "secret1")
        await client.login("alice", "secret1")

        # End the session behind the client's back
        other = await make_client()
        other.cookies.set("deardiary_session", live_api.credentials.get(SESSION_TOKEN_KEY))
        assert (await other.post("/api/auth/logout")).status_code == 200

        with pytest.raises(UnauthorizedError):
            await client.load_entries()
        assert client.is_authenticated is False
