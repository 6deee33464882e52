from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .config import ServerConfig
from .constants import QR_INSTRUCTIONS
from .coordinator import SessionCoordinator
from .exceptions import WapairError

log = logging.getLogger(__name__)

router = APIRouter()


def get_coordinator(request: Request) -> SessionCoordinator:
    return request.app.state.coordinator


Coordinator = Annotated[SessionCoordinator, Depends(get_coordinator)]


def _error_response(exc: WapairError, summary: str) -> JSONResponse:
    if exc.status < 500:
        return JSONResponse({"error": str(exc)}, status_code=exc.status)
    return JSONResponse({"error": summary, "message": str(exc)}, status_code=exc.status)


@router.get("/pair")
async def pair(coordinator: Coordinator, number: str | None = Query(default=None)) -> JSONResponse:
    try:
        code = await coordinator.pair(number)
    except WapairError as e:
        return _error_response(e, "Failed to get pairing code. Try again later.")
    return JSONResponse({"code": code})


@router.get("/qr")
async def qr(coordinator: Coordinator) -> JSONResponse:
    try:
        uri = await coordinator.qr()
    except WapairError as e:
        return _error_response(e, "Failed to generate QR code.")
    return JSONResponse({"qr": uri, "instructions": list(QR_INSTRUCTIONS)})


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    log.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error", "message": str(exc)}, status_code=500)


def create_app(
    config: ServerConfig | None = None, *, coordinator: SessionCoordinator | None = None
) -> FastAPI:
    """
    Build the HTTP app around a `SessionCoordinator`.

    Static front-end files are served from `config.static_dir` when it exists;
    API routes take precedence over files with the same path.
    """

    config = config or ServerConfig.from_env()
    coordinator = coordinator or SessionCoordinator(config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await coordinator.close_all()

    app = FastAPI(title="wapair", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.coordinator = coordinator
    app.include_router(router)
    app.add_exception_handler(Exception, _unhandled_error)

    static_dir = config.static_dir
    if static_dir is not None and static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:

        @app.get("/")
        async def index() -> dict[str, object]:
            return {"name": "wapair", "version": __version__, "endpoints": ["/pair", "/qr"]}

    return app
