"""
Dear Diary — Middleware Tests
===============================

What we test:
    ✅ X-Request-ID: client value echoed when safe, replaced when not
    ✅ Rate limiting: 429 with Retry-After once the window is full
    ✅ Auth attempts have their own, smaller bucket
    ✅ /health is never rate limited
    ✅ Clients that go quiet are forgotten after a window
    ✅ Access log: status-based level, no query strings
"""

import logging
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from deardiary import database
from deardiary.middleware import rate_limit
from deardiary.middleware.rate_limit import RateLimitMiddleware
from deardiary.middleware.request_id import RequestIDMiddleware


class TestRequestID:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/api/auth/session")
        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_safe_client_value_is_echoed(self, test_client):
        response = await test_client.get("/api/auth/session", headers={"X-Request-ID": "trace-abc_123"})
        assert response.headers["X-Request-ID"] == "trace-abc_123"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("supplied", ["has space", "x" * 65, "evilé", "<script>"])
    async def test_unsafe_client_value_is_replaced(self, test_client, supplied):
        response = await test_client.get(
            "/api/auth/session", headers={"X-Request-ID": supplied.encode("utf-8")}
        )
        assert response.headers["X-Request-ID"] != supplied
        assert len(response.headers["X-Request-ID"]) == 8


def _limited_app(max_requests=3, auth_max_requests=2) -> FastAPI:
    app = FastAPI()

    @app.get("/api/diaries")
    async def diaries():
        return {"ok": True}

    @app.post("/api/auth/login")
    async def login():
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=max_requests,
        auth_max_requests=auth_max_requests,
        window_seconds=60,
    )
    return app


class TestRateLimit:

    def setup_method(self):
        self.app = _limited_app()

    async def _client(self) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=self.app), base_url="http://testserver")

    @pytest.mark.asyncio
    async def test_general_bucket(self):
        async with await self._client() as client:
            for _ in range(3):
                assert (await client.get("/api/diaries")).status_code == 200
            response = await client.get("/api/diaries")

        assert response.status_code == 429
        assert 1 <= int(response.headers["Retry-After"]) <= 61
        body = response.json()
        assert body["error"] == "rate_limit_exceeded"
        assert body["details"]["retry_after"] == int(response.headers["Retry-After"])

    @pytest.mark.asyncio
    async def test_auth_bucket_is_separate(self):
        async with await self._client() as client:
            for _ in range(2):
                assert (await client.post("/api/auth/login")).status_code == 200
            assert (await client.post("/api/auth/login")).status_code == 429
            # General traffic still has its own allowance
            assert (await client.get("/api/diaries")).status_code == 200

    @pytest.mark.asyncio
    async def test_health_is_excluded(self):
        async with await self._client() as client:
            for _ in range(10):
                assert (await client.get("/health")).status_code == 200

    @pytest.mark.asyncio
    async def test_idle_clients_are_swept(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: clock[0]))
        inner = FastAPI()

        @inner.get("/api/diaries")
        async def diaries():
            return {"ok": True}

        limiter = RateLimitMiddleware(inner, max_requests=3, auth_max_requests=2, window_seconds=60)

        async def hit(ip):
            transport = ASGITransport(app=limiter, client=(ip, 12345))
            async with AsyncClient(transport=transport, base_url="http://testserver") as client:
                return await client.get("/api/diaries")

        for n in range(5):
            assert (await hit(f"10.0.0.{n}")).status_code == 200
        assert len(limiter._requests) == 5

        clock[0] += 61
        assert (await hit("10.0.1.1")).status_code == 200
        assert list(limiter._requests) == [("general", "10.0.1.1")]


class TestAccessLog:

    @pytest.mark.asyncio
    async def test_query_string_is_not_logged(self, test_client, caplog):
        with caplog.at_level(logging.INFO, logger="deardiary.access"):
            response = await test_client.get("/api/diaries", params={"search": "my-secret-crush"})

        assert response.status_code == 401
        records = [r for r in caplog.records if r.name == "deardiary.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].path == "/api/diaries"
        assert "my-secret-crush" not in caplog.text

    @pytest.mark.asyncio
    async def test_health_is_not_logged(self, test_client, db_engine, monkeypatch, caplog):
        monkeypatch.setattr(database, "engine", db_engine)
        with caplog.at_level(logging.INFO, logger="deardiary.access"):
            await test_client.get("/health")
        assert not [r for r in caplog.records if r.name == "deardiary.access"]
