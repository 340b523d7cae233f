# Middleware package init
"""
Dear Diary Backend — Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject abusive clients (password guessing included)
       before any database or bcrypt work happens
    2. Request ID: correlation ID for every log line of the request
    3. Logging: one access line with status and duration
    4. GZip / CORS: Starlette built-ins; CORS allows credentials so the
       session cookie crosses origins

    Responses travel the chain in reverse, so the request ID header and the
    access log both see the final status.
"""
