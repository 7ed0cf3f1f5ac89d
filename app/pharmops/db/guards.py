from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from app.pharmops.core.exceptions import StoreConnectivityError

# lock waits and statement timeouts surface as OperationalError as well
CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


@contextmanager
def store_operation(operation: str) -> Iterator[None]:
    try:
        yield
    except CONNECTIVITY_ERRORS as exc:
        raise StoreConnectivityError(operation, exc) from exc
