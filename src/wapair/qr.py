from __future__ import annotations

import base64

import qrcode
from qrcode.image.svg import SvgImage

from .exceptions import RenderingError

DATA_URI_PREFIX = "data:image/svg+xml;base64,"


def render_data_uri(payload: str) -> str:
    """Render a QR payload to a scannable SVG image, returned as a data URI."""

    if not payload:
        raise RenderingError("empty QR payload")
    try:
        img = qrcode.make(payload, image_factory=SvgImage)
        svg = img.to_string()
    except Exception as e:
        raise RenderingError(f"failed to render QR code: {e}") from e
    return DATA_URI_PREFIX + base64.b64encode(svg).decode("ascii")
