from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, Generic, Protocol, TypeVar

T = TypeVar("T")

Listener = Callable[..., Awaitable[None]] | Callable[..., None]


class Emitter(Protocol):
    def on(self, event: str, listener: Listener) -> None: ...

    def off(self, event: str, listener: Listener) -> None: ...


class Pending:
    """Sentinel a decider returns to keep waiting for the next emission."""


PENDING = Pending()


class OneShot(Generic[T]):
    """
    Turn a multi-shot event into a single settlement.

    `decide(*args)` is called for each emission of `event` and either returns
    `PENDING` (keep listening), returns a value (resolve), or raises (reject).
    The listener is attached on construction and detached on the first
    settlement, on `cancel()`, or when the awaiting task is cancelled.

    The listener is registered *synchronously* so an emission that happens
    between construction and the first `await` is not lost.
    """

    def __init__(self, emitter: Emitter, event: str, decide: Callable[..., T | Pending]) -> None:
        self._emitter = emitter
        self._event = event
        self._decide = decide
        self._future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._attached = True
        emitter.on(event, self._listener)

    @property
    def settled(self) -> bool:
        return self._future.done()

    def _listener(self, *args: Any) -> None:
        if self._future.done():
            return
        try:
            value = self._decide(*args)
        except Exception as e:
            self._future.set_exception(e)
            self.detach()
            return
        if isinstance(value, Pending):
            return
        self._future.set_result(value)
        self.detach()

    def detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        self._emitter.off(self._event, self._listener)

    def cancel(self) -> None:
        self.detach()
        if not self._future.done():
            self._future.cancel()

    async def wait(self) -> T:
        try:
            return await self._future
        finally:
            self.detach()
