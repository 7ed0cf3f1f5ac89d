from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

_db_time_ms: ContextVar[float | None] = ContextVar("pharmops_db_time_ms", default=None)


def start_db_timer() -> Token:
    return _db_time_ms.set(0.0)


def stop_db_timer(token: Token) -> None:
    _db_time_ms.reset(token)


def add_db_time(delta_ms: float) -> None:
    current = _db_time_ms.get()
    if current is None:
        return
    _db_time_ms.set(current + delta_ms)


def get_db_time_ms() -> float | None:
    return _db_time_ms.get()


@contextmanager
def db_timer() -> Iterator[None]:
    """Accumulate statement time for work done outside a request (ops sweeps)."""
    token = start_db_timer()
    try:
        yield
    finally:
        stop_db_timer(token)
