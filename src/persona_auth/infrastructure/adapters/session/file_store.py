from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import aiofiles
import aiofiles.os

from persona_auth.application.ports.session_store_port import SessionStorePort, StoredSession
from persona_auth.application.session_keys import SessionKey, session_file_path
from persona_auth.config import settings
from persona_auth.domain.errors import CacheDecodeError
from persona_auth.domain.session_file import SessionFile, decode_session_file, encode_session_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    path: Path
    saved_at: datetime
    size: int


class JsonFileSessionStore(SessionStorePort):
    """One JSON file per (test, persona) under a cache directory.

    Writes land in a temporary sibling first and are renamed over the
    target, so readers see either the old file or the complete new one.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self._dir = Path(directory if directory is not None else settings.storage_state_dir)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: SessionKey) -> Path:
        return session_file_path(self._dir, key)

    async def load(self, key: SessionKey) -> StoredSession | None:
        path = self.path_for(key)
        try:
            stat = await aiofiles.os.stat(path)
            async with aiofiles.open(path, "r", encoding="utf-8") as fh:
                text = await fh.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CacheDecodeError(str(path), "invalid UTF-8") from e
        session_file = decode_session_file(text, source=str(path))
        return StoredSession(session_file, datetime.fromtimestamp(stat.st_mtime, UTC))

    async def save(self, key: SessionKey, session_file: SessionFile) -> None:
        path = self.path_for(key)
        text = encode_session_file(session_file)
        await aiofiles.os.makedirs(self._dir, exist_ok=True)
        tmp = path.with_name(f"{path.name}.{os.getpid()}.tmp")
        try:
            async with aiofiles.open(tmp, "w", encoding="utf-8") as fh:
                await fh.write(text)
            await aiofiles.os.replace(tmp, path)
        except BaseException:
            if await aiofiles.os.path.exists(tmp):
                await aiofiles.os.remove(tmp)
            raise
        logger.debug(f"[JsonFileSessionStore] wrote {path} ({len(text)} bytes)")

    # ---------- Maintenance ----------
    async def entries(self) -> list[CacheEntry]:
        """Cached session files, oldest first."""
        if not await aiofiles.os.path.isdir(self._dir):
            return []
        found: list[CacheEntry] = []
        for name in await aiofiles.os.listdir(self._dir):
            if not name.endswith(".json"):
                continue
            path = self._dir / name
            stat = await aiofiles.os.stat(path)
            found.append(CacheEntry(path, datetime.fromtimestamp(stat.st_mtime, UTC), stat.st_size))
        return sorted(found, key=lambda e: e.saved_at)

    async def delete(self, path: Path) -> None:
        await aiofiles.os.remove(path)
