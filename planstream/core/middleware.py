"""HTTP middleware shared by every route."""
from __future__ import annotations

from typing import Callable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from planstream.core.context import bound_request_id

REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(supplied: Optional[str]) -> str:
    """Reuse a caller's id when it is short and printable; mint a fresh one otherwise."""
    candidate = (supplied or "").strip()
    if candidate and len(candidate) <= MAX_REQUEST_ID_LENGTH and candidate.isprintable():
        return candidate
    return uuid4().hex


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id that handlers, log lines, traces and the client all see."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Response]) -> Response:  # type: ignore[override]
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        with bound_request_id(request_id):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
