from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from tests.helpers import ClientFactory, fake_render
from wapair.config import ServerConfig
from wapair.coordinator import SessionCoordinator
from wapair.credentials import CredentialStore


@pytest.fixture
def config(tmp_path) -> ServerConfig:
    return ServerConfig(
        sessions_dir=tmp_path / "sessions",
        static_dir=None,
        pair_timeout_s=0.05,
        qr_timeout_s=0.05,
    )


@pytest.fixture
def make_coordinator(config):
    def _make(render_qr: Callable[[str], str] = fake_render, **client_kwargs: Any):
        factory = ClientFactory(**client_kwargs)
        coordinator = SessionCoordinator(
            config,
            credentials=CredentialStore(config.sessions_dir),
            client_factory=factory,
            render_qr=render_qr,
        )
        return coordinator, factory

    return _make
