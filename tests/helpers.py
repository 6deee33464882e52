from __future__ import annotations

import asyncio
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from pyaileys.socket import ConnectionUpdate

from wapair.config import ServerConfig


class ClosedByServer(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"stream closed with status {status_code}")
        self.status_code = status_code


class FakeClient:
    """
    Stand-in for a protocol client.

    `script(client)` runs inside `connect()` and decides which
    `connection.update` events the client emits.
    """

    def __init__(
        self,
        *,
        script: Callable[[FakeClient], Awaitable[None]] | None = None,
        pairing_code: str | Exception = "ABCD1234",
    ) -> None:
        self._listeners: dict[str, list[Any]] = defaultdict(list)
        self._script = script
        self._pairing_code = pairing_code
        self.connected = False
        self.disconnected = False
        self.pairing_requests: list[str] = []

    def on(self, event: str, listener: Any) -> None:
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Any) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners[event])

    async def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners[event]):
            res = listener(*args)
            if asyncio.iscoroutine(res):
                await res

    async def update(self, **kwargs: Any) -> None:
        await self.emit("connection.update", ConnectionUpdate(**kwargs))

    async def connect(self) -> None:
        self.connected = True
        await self.update(connection="connecting")
        if self._script is not None:
            await self._script(self)

    async def disconnect(self) -> None:
        if self.disconnected:
            return
        self.disconnected = True
        await self.update(connection="close")

    async def request_pairing_code(self, phone_number: str) -> str:
        self.pairing_requests.append(phone_number)
        if isinstance(self._pairing_code, Exception):
            raise self._pairing_code
        return self._pairing_code


async def opens(client: FakeClient) -> None:
    await client.update(connection="open")


async def stalls(client: FakeClient) -> None:
    return None


def closes_with(status_code: int) -> Callable[[FakeClient], Awaitable[None]]:
    async def _script(client: FakeClient) -> None:
        await client.update(connection="close", last_disconnect=ClosedByServer(status_code))

    return _script


def shows_qr(payload: str = "ref,noise,ident,adv") -> Callable[[FakeClient], Awaitable[None]]:
    async def _script(client: FakeClient) -> None:
        await client.update(qr=payload)

    return _script


class ClientFactory:
    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.created: list[FakeClient] = []

    def __call__(self, auth: Any, config: ServerConfig) -> FakeClient:
        client = FakeClient(**self.kwargs)
        self.created.append(client)
        return client

    @property
    def last(self) -> FakeClient:
        return self.created[-1]


def fake_render(payload: str) -> str:
    return "data:image/svg+xml;base64,RkFLRQ=="
