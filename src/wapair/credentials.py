from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from pyaileys.auth import MultiFileAuthState

log = logging.getLogger(__name__)


def _fix_dirname(session_id: str) -> str:
    return session_id.replace("/", "__").replace(":", "-").replace("..", "_")


class CredentialStore:
    """
    One pyaileys multi-file auth folder per session identifier.

    - `<root>/<session_id>/creds.json` holds the credential bundle.
    - key material lives next to it as `{type}-{id}.json` files.

    Reading and writing the files is left to `MultiFileAuthState`; this class
    only decides where each session lives and removes folders on logout.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, session_id: str) -> Path:
        return self.root / _fix_dirname(session_id)

    def exists(self, session_id: str) -> bool:
        return (self.path_for(session_id) / "creds.json").exists()

    async def load(self, session_id: str) -> MultiFileAuthState:
        return await MultiFileAuthState.load(self.path_for(session_id))

    async def save(self, auth: MultiFileAuthState) -> None:
        await auth.save_creds()

    async def delete(self, session_id: str) -> None:
        path = self.path_for(session_id)
        await asyncio.to_thread(shutil.rmtree, path, ignore_errors=True)
        log.info("[%s] removed credentials at %s", session_id, path)
