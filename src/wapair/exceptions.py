from __future__ import annotations


class WapairError(Exception):
    """Base error for the wapair server. `status` is the HTTP status it maps to."""

    status: int = 500


class InvalidInputError(WapairError):
    """A required request parameter is missing or empty."""

    status = 400


class DuplicateSessionError(WapairError):
    """A session for this identifier is already active or being set up."""

    status = 400

    def __init__(self, session_id: str, message: str | None = None) -> None:
        super().__init__(message or f"session {session_id!r} is already active or in progress")
        self.session_id = session_id


class ConnectionClosedError(WapairError):
    """
    The protocol client closed before the awaited phase was reached.

    `status_code` is the disconnect reason reported by the client, if any.
    """

    def __init__(
        self, *, status_code: int | None = None, cause: BaseException | None = None
    ) -> None:
        detail = f": {cause}" if cause else ""
        super().__init__(f"connection closed (reason={status_code}){detail}")
        self.status_code = status_code


class SessionTimeoutError(WapairError):
    """The awaited phase was not reached within the configured bound."""


class RenderingError(WapairError):
    """The QR payload could not be rendered to an image."""


class PairingRequestError(WapairError):
    """The protocol client failed to produce a pairing code."""


class StreamClosedError(WapairError):
    """The server ended the stream with a `stream:error` code before closing."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"stream error {status_code}")
        self.status_code = status_code
