"""Correlation ID propagation for log lines emitted while serving a request."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

MAX_REQUEST_ID_LENGTH = 128


def get_request_id() -> str | None:
    """Return the correlation ID bound to the current context, if any."""

    return _request_id_var.get()


def new_request_id() -> str:
    return str(uuid4())


def sanitize_request_id(candidate: str | None) -> str | None:
    """Accept a caller-supplied ID only if it is short and single-line."""
    if not candidate:
        return None
    candidate = candidate.strip()
    if not candidate or len(candidate) > MAX_REQUEST_ID_LENGTH:
        return None
    if "\n" in candidate or "\r" in candidate:
        return None
    return candidate


@contextmanager
def request_id_context(request_id: str | None):
    """Bind ``request_id`` for the duration of the block."""

    token = _request_id_var.set(request_id)
    try:
        yield
    finally:
        _request_id_var.reset(token)
