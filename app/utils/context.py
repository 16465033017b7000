from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

# Correlates log lines of one HTTP request or one scheduled job run
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_context.get()


def set_request_id(request_id: str) -> None:
    request_id_context.set(request_id)


@contextmanager
def request_id_scope(request_id: str) -> Iterator[str]:
    """Bind `request_id` for the duration of a job run, then restore the previous one."""
    token = request_id_context.set(request_id)
    try:
        yield request_id
    finally:
        request_id_context.reset(token)
