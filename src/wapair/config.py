from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    DEFAULT_BROWSER,
    DEFAULT_HOST,
    DEFAULT_PAIR_TIMEOUT_S,
    DEFAULT_PORT,
    DEFAULT_QR_TIMEOUT_S,
    DEFAULT_SESSIONS_DIR,
    DEFAULT_STATIC_DIR,
)


@dataclass(slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    sessions_dir: Path = Path(DEFAULT_SESSIONS_DIR)
    static_dir: Path | None = Path(DEFAULT_STATIC_DIR)

    pair_timeout_s: float = DEFAULT_PAIR_TIMEOUT_S
    qr_timeout_s: float = DEFAULT_QR_TIMEOUT_S

    browser: tuple[str, str] = DEFAULT_BROWSER
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ServerConfig:
        """
        Build a config from environment variables, falling back to defaults.

        `PORT` and `HOST` are unprefixed so the server fits common PaaS conventions.
        """

        env = os.environ if env is None else env
        static = env.get("WAPAIR_STATIC_DIR", DEFAULT_STATIC_DIR)
        return cls(
            host=env.get("HOST", DEFAULT_HOST),
            port=int(env.get("PORT", DEFAULT_PORT)),
            sessions_dir=Path(env.get("WAPAIR_SESSIONS_DIR", DEFAULT_SESSIONS_DIR)),
            static_dir=Path(static) if static else None,
            pair_timeout_s=float(env.get("WAPAIR_PAIR_TIMEOUT", DEFAULT_PAIR_TIMEOUT_S)),
            qr_timeout_s=float(env.get("WAPAIR_QR_TIMEOUT", DEFAULT_QR_TIMEOUT_S)),
            log_level=env.get("WAPAIR_LOG_LEVEL", "INFO").upper(),
        )
