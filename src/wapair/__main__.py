from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import uvicorn

from .config import ServerConfig
from .log import configure_logging
from .server import create_app
from .util.asyncio import log_loop_exception

log = logging.getLogger(__name__)


def build_config(argv: list[str] | None = None) -> ServerConfig:
    config = ServerConfig.from_env()

    ap = argparse.ArgumentParser(prog="wapair-server")
    ap.add_argument("--host", default=config.host, help=f"bind address (default: {config.host})")
    ap.add_argument("--port", type=int, default=config.port, help=f"port (default: {config.port})")
    ap.add_argument("--sessions", default=str(config.sessions_dir), help="credentials root folder")
    ap.add_argument("--static", default=config.static_dir, help="front-end folder to serve at /")
    ap.add_argument("--pair-timeout", type=float, default=config.pair_timeout_s)
    ap.add_argument("--qr-timeout", type=float, default=config.qr_timeout_s)
    ap.add_argument("--log-level", default=config.log_level)
    args = ap.parse_args(argv)

    config.host = args.host
    config.port = args.port
    config.sessions_dir = Path(args.sessions).expanduser()
    config.static_dir = Path(args.static).expanduser() if args.static else None
    config.pair_timeout_s = args.pair_timeout
    config.qr_timeout_s = args.qr_timeout
    config.log_level = str(args.log_level).upper()
    return config


async def serve(config: ServerConfig) -> None:
    asyncio.get_running_loop().set_exception_handler(log_loop_exception)
    app = create_app(config)
    server = uvicorn.Server(
        uvicorn.Config(app, host=config.host, port=config.port, log_config=None)
    )
    log.info("wapair listening on http://%s:%d", config.host, config.port)
    if config.static_dir is not None and not config.static_dir.is_dir():
        log.warning("static folder %s not found; only the API is served", config.static_dir)
    await server.serve()


def main(argv: list[str] | None = None) -> None:
    config = build_config(argv)
    configure_logging(config.log_level)
    asyncio.run(serve(config))


if __name__ == "__main__":
    main()
