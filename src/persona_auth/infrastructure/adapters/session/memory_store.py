from __future__ import annotations

from datetime import UTC, datetime

from persona_auth.application.ports.session_store_port import SessionStorePort, StoredSession
from persona_auth.application.session_keys import SessionKey
from persona_auth.domain.session_file import SessionFile, decode_session_file, encode_session_file


class InMemorySessionStore(SessionStorePort):
    """Simple in-memory store for development. Not persistent.

    Keeps the encoded text, so decoding behaves exactly as with files.
    """

    def __init__(self) -> None:
        self._files: dict[SessionKey, tuple[str, datetime]] = {}

    async def load(self, key: SessionKey) -> StoredSession | None:
        if key not in self._files:
            return None
        text, saved_at = self._files[key]
        return StoredSession(decode_session_file(text, source=key.file_name), saved_at)

    async def save(self, key: SessionKey, session_file: SessionFile) -> None:
        self._files[key] = (encode_session_file(session_file), datetime.now(UTC))
