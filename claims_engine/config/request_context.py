"""Correlation ids that tie engine log lines to the request that caused them."""
import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

CORRELATION_HEADER = "X-Correlation-ID"

# Caller-supplied ids are echoed into logs and response headers
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")

_correlation_id: ContextVar[Optional[str]] = ContextVar("claims_engine_correlation_id", default=None)


def new_correlation_id() -> str:
    return uuid.uuid4().hex


def accepted_correlation_id(candidate: Optional[str]) -> str:
    """Return ``candidate`` if it is a usable id, otherwise a freshly generated one."""
    if candidate and _ACCEPTED_ID.fullmatch(candidate):
        return candidate
    return new_correlation_id()


@contextmanager
def correlation_scope(candidate: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of the block and yield it."""
    correlation_id = accepted_correlation_id(candidate)
    token = _correlation_id.set(correlation_id)
    try:
        yield correlation_id
    finally:
        _correlation_id.reset(token)


def get_correlation_id() -> Optional[str]:
    """Correlation id bound to the current context, or None outside a scope."""
    return _correlation_id.get()
