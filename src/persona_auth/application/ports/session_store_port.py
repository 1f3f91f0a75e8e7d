from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from persona_auth.application.session_keys import SessionKey
from persona_auth.domain.session_file import SessionFile


@dataclass(frozen=True)
class StoredSession:
    session_file: SessionFile
    saved_at: datetime  # UTC


class SessionStorePort(Protocol):
    """Abstract persistence for persona session files."""

    async def load(self, key: SessionKey) -> StoredSession | None:
        """
        Returns:
            the stored session file and when it was written, or None on a miss.
        Raises:
            CacheDecodeError: the stored content is corrupt or partial.
        """
        ...

    async def save(self, key: SessionKey, session_file: SessionFile) -> None:
        """Persist the whole file, replacing any previous content."""
        ...
