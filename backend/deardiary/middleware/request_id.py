"""
Dear Diary Backend — Request ID Middleware
============================================

What:  Assigns each request an ID, exposes it to loggers and error handlers
       through a ContextVar, and returns it in the X-Request-ID header.
How:   A client-supplied X-Request-ID is reused when it is short and made of
       safe characters; otherwise a fresh 8-character ID is generated. The
       restriction keeps arbitrary client text out of log lines.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def new_request_id() -> str:
    return str(uuid.uuid4())[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Reuse a safe client X-Request-ID, or generate one
        2. Store it in `request_id_var` and on `request.state`
        3. Echo it in the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if _SAFE_REQUEST_ID.fullmatch(supplied) else new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
