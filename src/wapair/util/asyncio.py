from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Coroutine
from typing import Any, TypeVar

from ..exceptions import SessionTimeoutError

T = TypeVar("T")

log = logging.getLogger(__name__)

# Strong references so fire-and-forget tasks are not garbage collected mid-flight.
_background: set[asyncio.Task[Any]] = set()


async def race(operation: Awaitable[T], timeout_s: float, *, message: str | None = None) -> T:
    """
    Await `operation`, failing with `SessionTimeoutError` once `timeout_s` elapses.

    The operation is cancelled on timeout, which lets it run its own teardown.
    """

    try:
        return await asyncio.wait_for(operation, timeout=timeout_s)
    except TimeoutError as e:
        raise SessionTimeoutError(message or f"timed out after {timeout_s:g} seconds") from e


def log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    # Installed as the loop exception handler: stray task failures are logged, never fatal.
    exc = context.get("exception")
    log.error("unhandled error in event loop: %s", context.get("message"), exc_info=exc)


def ensure_task(coro: Coroutine[Any, Any, T], *, name: str | None = None) -> asyncio.Task[T]:
    t: asyncio.Task[T] = asyncio.create_task(coro, name=name)
    _background.add(t)
    t.add_done_callback(_background.discard)
    return t
