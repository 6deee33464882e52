"""
wapair: a small HTTP server for linking WhatsApp sessions.

A browser asks for a pairing code (`GET /pair?number=...`) or a QR image
(`GET /qr`); the protocol work itself is done by pyaileys.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import ServerConfig
from .coordinator import SessionCoordinator, format_pairing_code
from .exceptions import WapairError
from .registry import Session, SessionPhase, SessionRegistry

__all__ = [
    "ServerConfig",
    "Session",
    "SessionCoordinator",
    "SessionPhase",
    "SessionRegistry",
    "WapairError",
    "format_pairing_code",
]
