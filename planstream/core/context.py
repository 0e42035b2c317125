"""Request id carried from the HTTP layer into log records and Opik traces."""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

request_id_ctx_var: ContextVar[str | None] = ContextVar("planstream_request_id", default=None)


def get_request_id() -> str | None:
    return request_id_ctx_var.get()


@contextmanager
def bound_request_id(request_id: str) -> Iterator[str]:
    """Make ``request_id`` current for the block, restoring the previous id afterwards."""
    token = request_id_ctx_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_ctx_var.reset(token)
