from __future__ import annotations

import pytest
from pyaileys import WhatsAppClient
from pyaileys.socket import ConnectionUpdate
from pyaileys.wabinary.types import BinaryNode

from wapair.client import LinkClient, disconnect_reason, make_client
from wapair.config import ServerConfig
from wapair.constants import QR_SESSION_ID
from wapair.coordinator import SessionCoordinator
from wapair.credentials import CredentialStore
from wapair.exceptions import PairingRequestError
from wapair.registry import SessionPhase
from tests.helpers import fake_render


def _stream_error(code: str) -> BinaryNode:
    return BinaryNode(tag="stream:error", attrs={"code": code})


async def _link_client(tmp_path) -> LinkClient:
    auth = await CredentialStore(tmp_path).load("123")
    return make_client(auth, ServerConfig(sessions_dir=tmp_path, static_dir=None))


@pytest.mark.asyncio
async def test_make_client_wraps_pyaileys(tmp_path) -> None:
    config = ServerConfig(sessions_dir=tmp_path, static_dir=None, browser=("Ubuntu", "Firefox"))
    auth = await CredentialStore(tmp_path).load("123")

    client = make_client(auth, config)

    assert isinstance(client, LinkClient)
    assert isinstance(client.raw, WhatsAppClient)
    assert client.raw.socket.config.browser == ("Ubuntu", "Firefox")
    assert client.raw.socket.auth.creds is auth.creds


@pytest.mark.asyncio
async def test_link_client_on_off(tmp_path) -> None:
    client = await _link_client(tmp_path)
    seen: list[ConnectionUpdate] = []

    def listener(update: ConnectionUpdate) -> None:
        seen.append(update)

    client.on("connection.update", listener)
    await client.raw.socket.events.emit("connection.update", ConnectionUpdate(connection="open"))
    client.off("connection.update", listener)
    await client.raw.socket.events.emit("connection.update", ConnectionUpdate(connection="close"))

    assert [u.connection for u in seen] == ["open"]


@pytest.mark.asyncio
async def test_stream_error_code_is_attached_to_next_close(tmp_path) -> None:
    client = await _link_client(tmp_path)
    seen: list[ConnectionUpdate] = []
    client.on("connection.update", seen.append)
    events = client.raw.socket.events

    await events.emit("cb:stream:error", _stream_error("401"))
    await events.emit("connection.update", ConnectionUpdate(connection="close"))
    await events.emit("connection.update", ConnectionUpdate(connection="close"))

    assert [disconnect_reason(u) for u in seen] == [401, None]


@pytest.mark.asyncio
async def test_pairing_code_unsupported_by_installed_client(tmp_path, monkeypatch) -> None:
    monkeypatch.delattr(WhatsAppClient, "request_pairing_code", raising=False)
    client = await _link_client(tmp_path)

    with pytest.raises(PairingRequestError, match="does not support pairing codes"):
        await client.request_pairing_code("628123")


@pytest.mark.asyncio
async def test_pairing_code_delegates_when_available(tmp_path, monkeypatch) -> None:
    async def request_pairing_code(self, phone_number: str) -> str:
        return f"CODE{phone_number}"

    monkeypatch.setattr(
        WhatsAppClient, "request_pairing_code", request_pairing_code, raising=False
    )
    client = await _link_client(tmp_path)

    assert await client.request_pairing_code("42") == "CODE42"


class _StreamError(Exception):
    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


def test_disconnect_reason() -> None:
    assert disconnect_reason(ConnectionUpdate(connection="close")) is None
    assert disconnect_reason(ConnectionUpdate(last_disconnect=_StreamError("401"))) == 401
    assert disconnect_reason(ConnectionUpdate(last_disconnect=RuntimeError("eof"))) is None


@pytest.fixture
def linked(monkeypatch, config):
    """
    A coordinator driving real pyaileys-backed `LinkClient`s.

    Only the network edges are replaced: `connect()` emits `first_update`
    and `disconnect()` emits the bare close pyaileys' `WASocket.close()` sends.
    """

    disconnected: list[LinkClient] = []

    def _make(first_update: ConnectionUpdate):
        async def connect(self: LinkClient) -> None:
            await self.raw.socket.events.emit("connection.update", first_update)

        async def disconnect(self: LinkClient) -> None:
            disconnected.append(self)
            await self.raw.socket.events.emit(
                "connection.update", ConnectionUpdate(connection="close")
            )

        async def request_pairing_code(self, phone_number: str) -> str:
            return "ABCD1234"

        monkeypatch.setattr(LinkClient, "connect", connect)
        monkeypatch.setattr(LinkClient, "disconnect", disconnect)
        monkeypatch.setattr(
            WhatsAppClient, "request_pairing_code", request_pairing_code, raising=False
        )
        clients: list[LinkClient] = []

        def factory(auth, cfg: ServerConfig) -> LinkClient:
            client = make_client(auth, cfg)
            clients.append(client)
            return client

        coordinator = SessionCoordinator(config, client_factory=factory, render_qr=fake_render)
        return coordinator, clients, disconnected

    return _make


@pytest.mark.asyncio
async def test_logout_stream_error_removes_credentials(linked) -> None:
    coordinator, clients, _disconnected = linked(ConnectionUpdate(connection="open"))
    assert await coordinator.pair("6281234") == "ABCD-1234"
    events = clients[0].raw.socket.events
    await events.emit("creds.update", clients[0].raw.socket.auth.creds)
    assert coordinator.credentials.exists("6281234")

    await events.emit("cb:stream:error", _stream_error("401"))
    await events.emit("connection.update", ConnectionUpdate(connection="close"))

    assert "6281234" not in coordinator.registry
    assert not coordinator.credentials.path_for("6281234").exists()


@pytest.mark.asyncio
async def test_restart_after_scan_keeps_session_tracked(linked) -> None:
    coordinator, clients, disconnected = linked(ConnectionUpdate(qr="2@ref,noise,ident,adv"))
    await coordinator.qr()
    session = coordinator.registry.get(QR_SESSION_ID)
    assert session is not None and session.phase is SessionPhase.QR_ISSUED
    events = clients[0].raw.socket.events

    # pyaileys answers stream error 515 with restart(): close, then reconnect.
    await events.emit("cb:stream:error", _stream_error("515"))
    await events.emit("connection.update", ConnectionUpdate(connection="close"))
    assert coordinator.registry.get(QR_SESSION_ID) is session
    assert coordinator.credentials.path_for(QR_SESSION_ID).is_dir()

    await events.emit("connection.update", ConnectionUpdate(connection="open"))
    assert session.phase is SessionPhase.OPEN

    await coordinator.close_all()
    assert disconnected == [clients[0]]
    assert len(coordinator.registry) == 0
