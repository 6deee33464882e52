from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable
from typing import Any, TypeVar

from .client import ClientFactory, disconnect_reason, make_client
from .config import ServerConfig
from .constants import PAIRING_CODE_GROUP, QR_SESSION_ID, DisconnectReason
from .credentials import CredentialStore
from .exceptions import (
    ConnectionClosedError,
    InvalidInputError,
    PairingRequestError,
    RenderingError,
    WapairError,
)
from .qr import render_data_uri
from .registry import Session, SessionPhase, SessionRegistry
from .util.asyncio import ensure_task, race
from .util.events import PENDING, OneShot, Pending

T = TypeVar("T")

log = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"[^0-9]")


def session_id_from_number(number: str | None) -> str:
    if not number:
        raise InvalidInputError("phone number is required")
    session_id = _NON_DIGITS.sub("", number)
    if not session_id:
        raise InvalidInputError("phone number must contain digits")
    return session_id


def format_pairing_code(raw: str) -> str:
    """`"ABCD1234"` -> `"ABCD-1234"`; a short trailing group is kept as-is."""

    if not raw:
        return raw
    n = PAIRING_CODE_GROUP
    return "-".join(raw[i : i + n] for i in range(0, len(raw), n))


def _closed_error(update: Any) -> ConnectionClosedError:
    return ConnectionClosedError(
        status_code=disconnect_reason(update), cause=getattr(update, "last_disconnect", None)
    )


def _restarting(update: Any) -> bool:
    # The server asks for a restart after linking; pyaileys closes and reconnects the same client.
    return disconnect_reason(update) == DisconnectReason.RESTART_REQUIRED


def _until_open(update: Any) -> bool | Pending:
    if update.connection == "open":
        return True
    if update.connection == "close" and not _restarting(update):
        raise _closed_error(update)
    return PENDING


def _until_qr(update: Any) -> str | Pending:
    if update.qr:
        return str(update.qr)
    if update.connection == "close" and not _restarting(update):
        raise _closed_error(update)
    return PENDING


class SessionCoordinator:
    """
    Drives one protocol client per session until a single outcome is known.

    Each request reserves its identifier in the registry, connects a client,
    and races the awaited `connection.update` against a timeout. Success
    leaves the session registered (`open` or `qr-issued`); any failure removes
    it and disconnects the client before the error propagates.
    """

    def __init__(
        self,
        config: ServerConfig,
        *,
        registry: SessionRegistry | None = None,
        credentials: CredentialStore | None = None,
        client_factory: ClientFactory = make_client,
        render_qr: Callable[[str], str] = render_data_uri,
    ) -> None:
        self.config = config
        self.registry = registry or SessionRegistry()
        self.credentials = credentials or CredentialStore(config.sessions_dir)
        self._client_factory = client_factory
        self._render_qr = render_qr

    async def pair(self, number: str | None) -> str:
        session_id = session_id_from_number(number)
        session = self.registry.create(session_id)
        try:
            await self._start(session)
            await race(
                self._connect_until(session, _until_open),
                self.config.pair_timeout_s,
                message=(
                    "Timeout: failed to connect to WhatsApp within "
                    f"{self.config.pair_timeout_s:g} seconds."
                ),
            )
            if session.phase is SessionPhase.PENDING:
                session.phase = SessionPhase.OPEN
            raw = await self._request_pairing_code(session)
        except BaseException as e:
            log.error("[%s] pairing code request failed: %s", session_id, e)
            await self._abort(session)
            raise

        code = format_pairing_code(raw)
        log.info("[%s] pairing code issued", session_id)
        return code

    async def qr(self) -> str:
        session = self.registry.create(QR_SESSION_ID)
        try:
            await self._start(session)
            payload = await race(
                self._connect_until(session, _until_qr),
                self.config.qr_timeout_s,
                message=(
                    "Timeout: failed to get a QR code within "
                    f"{self.config.qr_timeout_s:g} seconds."
                ),
            )
            log.info("[%s] QR payload received, rendering", session.id)
            uri = await self._render(payload)
        except BaseException as e:
            log.error("[%s] QR request failed: %s", session.id, e)
            await self._abort(session)
            raise

        if session.phase is SessionPhase.PENDING:
            session.phase = SessionPhase.QR_ISSUED
        return uri

    async def close_all(self) -> None:
        for session_id in self.registry.ids():
            session = self.registry.remove(session_id)
            if session is not None:
                await self._disconnect(session)

    async def _start(self, session: Session) -> None:
        session.auth = await self.credentials.load(session.id)
        session.client = self._client_factory(session.auth, self.config)
        self._watch(session)

    def _watch(self, session: Session) -> None:
        assert session.client is not None

        async def on_connection_update(update: Any) -> None:
            if update.connection == "open":
                if session.phase is SessionPhase.CLOSED:
                    # Reconnected after the session was dropped; nothing tracks it any more.
                    log.warning("[%s] untracked client reopened, disconnecting", session.id)
                    ensure_task(self._disconnect(session), name=f"wapair.orphan.{session.id}")
                    return
                session.phase = SessionPhase.OPEN
                log.info("[%s] WhatsApp connection open", session.id)
            elif update.connection == "close":
                reason = disconnect_reason(update)
                if _restarting(update) and session.phase is not SessionPhase.CLOSED:
                    log.info("[%s] restart requested by server, keeping session", session.id)
                    return
                log.info("[%s] connection closed, reason: %s", session.id, reason)
                session.phase = SessionPhase.CLOSED
                self.registry.remove(session.id, session)
                if reason == DisconnectReason.LOGGED_OUT:
                    await self.credentials.delete(session.id)
                    log.info("[%s] session credentials removed after logout", session.id)

        async def on_creds_update(_creds: Any) -> None:
            await self.credentials.save(session.auth)

        async def on_message(ev: Any) -> None:
            log.debug("[%s] incoming message from %s", session.id, ev.get("chat_jid"))

        session.client.on("connection.update", on_connection_update)
        session.client.on("creds.update", on_creds_update)
        session.client.on("message.decrypted", on_message)

    async def _connect_until(self, session: Session, decide: Callable[[Any], T | Pending]) -> T:
        assert session.client is not None
        waiter: OneShot[T] = OneShot(session.client, "connection.update", decide)
        try:
            try:
                await session.client.connect()
            except Exception as e:
                if waiter.settled:
                    return await waiter.wait()
                if isinstance(e, WapairError):
                    raise
                raise ConnectionClosedError(cause=e) from e
            return await waiter.wait()
        finally:
            waiter.detach()

    async def _request_pairing_code(self, session: Session) -> str:
        assert session.client is not None
        try:
            return await session.client.request_pairing_code(session.id)
        except WapairError:
            raise
        except Exception as e:
            raise PairingRequestError(f"failed to request pairing code: {e}") from e

    async def _render(self, payload: str) -> str:
        try:
            return await asyncio.to_thread(self._render_qr, payload)
        except WapairError:
            raise
        except Exception as e:
            raise RenderingError(f"failed to render QR code: {e}") from e

    async def _abort(self, session: Session) -> None:
        self.registry.remove(session.id, session)
        session.phase = SessionPhase.CLOSED
        await self._disconnect(session)

    async def _disconnect(self, session: Session) -> None:
        if session.client is None:
            return
        try:
            await session.client.disconnect()
        except Exception:
            log.warning("[%s] error while disconnecting client", session.id, exc_info=True)
