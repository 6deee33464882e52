from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from pyaileys import WhatsAppClient
from pyaileys.auth import AuthenticationState, MultiFileAuthState
from pyaileys.client import ClientConfig
from pyaileys.socket import DEF_CB_PREFIX, ConnectionUpdate
from pyaileys.socket_config import SocketConfig
from pyaileys.util.events import AsyncEventEmitter
from pyaileys.wabinary.types import BinaryNode

from .config import ServerConfig
from .exceptions import PairingRequestError, StreamClosedError
from .util.events import Listener


class ProtocolClient(Protocol):
    """The slice of a WhatsApp client the session coordinator drives."""

    def on(self, event: str, listener: Listener) -> None: ...

    def off(self, event: str, listener: Listener) -> None: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def request_pairing_code(self, phone_number: str) -> str: ...


ClientFactory = Callable[[MultiFileAuthState, ServerConfig], ProtocolClient]


class LinkClient:
    """
    Adapter over `pyaileys.WhatsAppClient`.

    pyaileys exposes `on()` on the client but `off()` only on the socket's
    event emitter, so both are surfaced here under one object.

    pyaileys' own close event carries no reason: the code arrives earlier on
    the `stream:error` node (401 logout, 515 restart). The adapter remembers
    that code and re-emits the next close with a `StreamClosedError` attached
    as `last_disconnect`.
    """

    def __init__(self, client: WhatsAppClient) -> None:
        self._client = client
        self._updates = AsyncEventEmitter()
        self._stream_code: int | None = None
        client.on(f"{DEF_CB_PREFIX}stream:error", self._on_stream_error)
        client.on("connection.update", self._forward_update)

    @property
    def raw(self) -> WhatsAppClient:
        return self._client

    def on(self, event: str, listener: Listener) -> None:
        if event == "connection.update":
            self._updates.on(event, listener)
        else:
            self._client.on(event, listener)

    def off(self, event: str, listener: Listener) -> None:
        if event == "connection.update":
            self._updates.off(event, listener)
        else:
            self._client.socket.events.off(event, listener)

    def _on_stream_error(self, node: BinaryNode) -> None:
        code = node.attrs.get("code")
        self._stream_code = int(code) if code and code.isdigit() else None

    async def _forward_update(self, update: ConnectionUpdate) -> None:
        if update.connection == "close":
            code, self._stream_code = self._stream_code, None
            if code is not None and update.last_disconnect is None:
                update = ConnectionUpdate(
                    connection="close",
                    qr=update.qr,
                    is_new_login=update.is_new_login,
                    last_disconnect=StreamClosedError(code),
                )
        await self._updates.emit("connection.update", update)

    async def connect(self) -> None:
        await self._client.connect()

    async def disconnect(self) -> None:
        await self._client.disconnect()

    async def request_pairing_code(self, phone_number: str) -> str:
        request = getattr(self._client, "request_pairing_code", None)
        if request is None:
            raise PairingRequestError("installed pyaileys client does not support pairing codes")
        return str(await request(phone_number))


def make_client(auth: MultiFileAuthState, config: ServerConfig) -> LinkClient:
    """Default `ClientFactory`: a pyaileys client bound to `auth`'s folder."""

    state = AuthenticationState(creds=auth.creds, keys=auth.keys)
    socket = SocketConfig(browser=config.browser)
    return LinkClient(WhatsAppClient(auth=state, config=ClientConfig(socket=socket)))


def disconnect_reason(update: Any) -> int | None:
    """
    Best-effort reason code for a `connection.update` close event.

    Looks for a `status_code` or numeric `code` on `update.last_disconnect`.
    """

    err = getattr(update, "last_disconnect", None)
    if err is None:
        return None
    for attr in ("status_code", "code"):
        value = getattr(err, attr, None)
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None
