"""Per-request correlation id.

Every HTTP request runs inside ``request_scope``. Log lines emitted
anywhere beneath it (services, authorization decisions, notifications)
pick the id up through ``current_request_id``; outside a request they
carry ``NO_REQUEST_ID``.

A client may supply its own id in ``X-Request-ID``. It is echoed back only
if it is short and made of safe characters; anything else is replaced by
a fresh id so untrusted header text never reaches the logs verbatim.
"""

import re
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "no-request-id"
MAX_REQUEST_ID_LENGTH = 128

_SAFE_REQUEST_ID = re.compile(r"[A-Za-z0-9._:\-]+")

_current: ContextVar[Optional[str]] = ContextVar("thesisflow_request_id", default=None)


def new_request_id() -> str:
    return uuid.uuid4().hex


def resolve_request_id(incoming: Optional[str]) -> str:
    """Return the client's id if acceptable, otherwise a new one."""
    if incoming:
        candidate = incoming.strip()
        if len(candidate) <= MAX_REQUEST_ID_LENGTH and _SAFE_REQUEST_ID.fullmatch(candidate):
            return candidate
    return new_request_id()


def current_request_id() -> str:
    return _current.get() or NO_REQUEST_ID


@contextmanager
def request_scope(request_id: str) -> Iterator[str]:
    """Bind ``request_id`` for the duration of the block.

    The previous value is restored on exit, so ids never leak from one
    request into whatever the worker handles next.
    """
    token = _current.set(request_id)
    try:
        yield request_id
    finally:
        _current.reset(token)
