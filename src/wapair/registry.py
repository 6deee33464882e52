from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from .exceptions import DuplicateSessionError

if TYPE_CHECKING:
    from .client import ProtocolClient


class SessionPhase(str, Enum):
    PENDING = "pending"
    OPEN = "open"
    QR_ISSUED = "qr-issued"
    CLOSED = "closed"


@dataclass(slots=True, eq=False)
class Session:
    id: str
    client: ProtocolClient | None = None
    auth: Any = None
    phase: SessionPhase = SessionPhase.PENDING


class SessionRegistry:
    """
    In-process map of session identifier -> active session.

    `create` checks and inserts without yielding to the event loop, so two
    interleaved requests for the same identifier cannot both get a session.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def create(self, session_id: str) -> Session:
        if session_id in self._sessions:
            raise DuplicateSessionError(session_id)
        session = Session(id=session_id)
        self._sessions[session_id] = session
        return session

    def has(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str, session: Session | None = None) -> Session | None:
        """
        Drop `session_id` if present. Idempotent.

        When `session` is given, only that exact object is removed; a newer
        session registered under the same identifier is left alone.
        """

        current = self._sessions.get(session_id)
        if current is None or (session is not None and current is not session):
            return None
        del self._sessions[session_id]
        return current

    def ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
