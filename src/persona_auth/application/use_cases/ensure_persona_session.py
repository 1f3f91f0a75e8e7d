from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from persona_auth.application.ports.browser_port import BrowserContextPort, BrowserPort, PagePort
from persona_auth.application.ports.session_store_port import SessionStorePort, StoredSession
from persona_auth.application.session_keys import SessionKey
from persona_auth.application.use_cases.restore_storage_state import StorageStateRestorer
from persona_auth.domain.errors import (
    CacheDecodeError,
    DestroySessionError,
    SessionCreationError,
    SessionVerificationError,
)
from persona_auth.domain.model import (
    CreateSessionContext,
    DestroySessionContext,
    Persona,
    SessionPayload,
    TestInfo,
    VerifySessionContext,
)
from persona_auth.domain.session_file import SessionFile

logger = logging.getLogger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(UTC)


@dataclass(frozen=True)
class EnsureSessionResult:
    status: str  # "CREATED" | "REUSED" | "REFRESHED"
    session: SessionPayload
    message: str


class EnsurePersonaSessionUseCase:
    """Returns a usable session for one persona, preferring the cached one.

    A cached session is first restored into a throwaway browser context and
    checked there. Only a session that passed the check is applied to the
    caller's page; a failing one is destroyed and minted again.
    """

    def __init__(
        self,
        persona: Persona,
        *,
        store: SessionStorePort,
        browser: BrowserPort,
        context: BrowserContextPort,
        page: PagePort,
        test_info: TestInfo,
        restorer: StorageStateRestorer | None = None,
        fixtures: Mapping[str, Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.persona = persona
        self.store = store
        self.browser = browser
        self.context = context
        self.page = page
        self.test_info = test_info
        self.restorer = restorer or StorageStateRestorer()
        self.fixtures = dict(fixtures or {})
        self.clock = clock or SystemClock()
        self.key = SessionKey(test_info.test_id, persona.name)

    def _log(self, msg: str, level: int = logging.INFO) -> None:
        logger.log(level, f"[EnsurePersonaSession:{self.persona.name}] {msg}")

    async def execute(self) -> EnsureSessionResult:
        cached = await self._load_cached()
        if cached is None:
            session = await self._create()
            return EnsureSessionResult("CREATED", session, "No cached session, created a new one")

        if self.persona.verify_session is None:
            await self.restorer.restore(cached, self.page)
            return EnsureSessionResult("REUSED", cached.session, "Cached session trusted without verification")

        verification_context = await self.browser.new_context(storage_state=cached.to_storage_state())
        try:
            try:
                await self._verify(cached, verification_context)
            except SessionVerificationError as e:
                self._log(f"{e}: {e.__cause__!r}, recreating")
                await self._destroy(cached.session)
                session = await self._create()
                return EnsureSessionResult("REFRESHED", session, "Cached session was invalid, recreated it")

            await self.restorer.restore(cached, self.page)
            self._log("reusing verified cached session")
            return EnsureSessionResult("REUSED", cached.session, "Valid session from cache")
        finally:
            await verification_context.close()

    async def _load_cached(self) -> SessionFile | None:
        try:
            stored = await self.store.load(self.key)
        except CacheDecodeError as e:
            self._log(f"{e}, treating as cache miss", logging.WARNING)
            return None
        if stored is None:
            self._log(f"cache miss for {self.key.file_name}")
            return None
        if self._is_expired(stored):
            self._log(f"cached session from {stored.saved_at.isoformat()} exceeded ttl={self.persona.ttl}s")
            return None
        return stored.session_file

    def _is_expired(self, stored: StoredSession) -> bool:
        if self.persona.ttl is None:
            return False
        return self.clock.now() - stored.saved_at > timedelta(seconds=self.persona.ttl)

    async def _verify(self, cached: SessionFile, verification_context: BrowserContextPort) -> None:
        assert self.persona.verify_session is not None
        try:
            verification_page = await verification_context.new_page()
            await self.restorer.restore(cached, verification_page)
            await self.persona.verify_session(
                VerifySessionContext(verification_page, cached.session, self.fixtures),
                self.test_info,
            )
        except Exception as e:
            raise SessionVerificationError(self.persona.name) from e

    async def _destroy(self, session: SessionPayload) -> None:
        if self.persona.destroy_session is None:
            return
        try:
            await self.persona.destroy_session(
                DestroySessionContext(self.page, session, self.fixtures),
                self.test_info,
            )
        except Exception as e:
            error = DestroySessionError(self.persona.name)
            error.__cause__ = e
            logger.warning(f"[EnsurePersonaSession:{self.persona.name}] {error}: {e!r}", exc_info=error)

    async def _create(self) -> SessionPayload:
        try:
            session = await self.persona.create_session(
                CreateSessionContext(self.page, self.fixtures), self.test_info
            )
        except Exception as e:
            raise SessionCreationError(self.persona.name) from e
        if not isinstance(session, Mapping):
            raise SessionCreationError(self.persona.name) from TypeError(
                f"create_session returned {type(session).__name__}, expected a mapping"
            )

        state = await self.context.storage_state()
        try:
            await self.store.save(self.key, SessionFile.from_storage_state(state, session))
        except (TypeError, ValueError) as e:
            # payload is not plain JSON data (functions, live handles, cycles)
            raise SessionCreationError(self.persona.name) from e
        self._log(f"created session and cached it as {self.key.file_name}")
        return session
