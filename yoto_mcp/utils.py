"""Shared HTTP helpers."""

from contextlib import contextmanager
from typing import Iterator, Optional

import httpx


@contextmanager
def http_session(
    http_client: Optional[httpx.Client], timeout: float
) -> Iterator[httpx.Client]:
    """
    Yield the injected client, or a short-lived one closed on exit.

    An injected client is never closed here; its owner manages it.
    """
    if http_client is not None:
        yield http_client
        return

    with httpx.Client(timeout=timeout) as client:
        yield client
