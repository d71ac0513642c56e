"""Correlation IDs for log records.

HTTP requests carry a request ID (taken from ``X-Request-ID`` or generated).
Background sync runs bind a run ID under the same context variable so that
every log line emitted during a run can be grouped.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

MAX_INBOUND_ID_LENGTH = 128


def generate_request_id(prefix: Optional[str] = None) -> str:
    """Generate a new correlation ID, optionally prefixed (e.g. ``sync-``)."""
    value = uuid.uuid4().hex if prefix else str(uuid.uuid4())
    return f"{prefix}-{value[:12]}" if prefix else value


def get_request_id() -> str:
    return request_id_var.get() or "no-request-id"


def accept_inbound_request_id(header_value: Optional[str]) -> str:
    """Reuse a caller-supplied ID when it is sane, otherwise generate one.

    Args:
        header_value: Raw ``X-Request-ID`` header value (may be None)

    Returns:
        str: Correlation ID to use for this request
    """
    if header_value:
        candidate = header_value.strip()
        if candidate and len(candidate) <= MAX_INBOUND_ID_LENGTH and candidate.isprintable():
            return candidate
    return generate_request_id()


@contextmanager
def bound_request_id(request_id: Optional[str] = None, prefix: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block and restore the previous one.

    Example:
        with bound_request_id(prefix="sync") as run_id:
            await job.run()
    """
    value = request_id or generate_request_id(prefix)
    token = request_id_var.set(value)
    try:
        yield value
    finally:
        request_id_var.reset(token)
