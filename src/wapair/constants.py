from __future__ import annotations

from enum import IntEnum

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_SESSIONS_DIR = "./sessions"
DEFAULT_STATIC_DIR = "./public"

DEFAULT_PAIR_TIMEOUT_S = 30.0
DEFAULT_QR_TIMEOUT_S = 60.0

# QR logins share one fixed identifier, so only one can be in flight process-wide.
QR_SESSION_ID = "qr-login-session"

# Pairing codes are displayed as hyphen-separated groups of this size.
PAIRING_CODE_GROUP = 4

DEFAULT_BROWSER = ("Ubuntu", "Chrome")

QR_INSTRUCTIONS = (
    "1. Open WhatsApp on your phone",
    "2. Tap Menu or Settings and select Linked devices",
    "3. Tap Link a device",
    "4. Scan this QR code",
)


class DisconnectReason(IntEnum):
    """Connection close reason codes (values mirror Baileys' DisconnectReason)."""

    CONNECTION_CLOSED = 428
    CONNECTION_LOST = 408
    CONNECTION_REPLACED = 440
    TIMED_OUT = 408
    LOGGED_OUT = 401
    BAD_SESSION = 500
    RESTART_REQUIRED = 515
    MULTIDEVICE_MISMATCH = 411
    FORBIDDEN = 403
    UNAVAILABLE_SERVICE = 503
