from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import Any

from persona_auth.application.ports.browser_port import BrowserContextPort, BrowserPort, PagePort
from persona_auth.application.ports.session_store_port import SessionStorePort
from persona_auth.application.use_cases.ensure_persona_session import (
    Clock,
    EnsurePersonaSessionUseCase,
)
from persona_auth.application.use_cases.restore_storage_state import StorageStateRestorer
from persona_auth.domain.errors import DuplicatePersonaError, PersonaNotFoundError
from persona_auth.domain.model import (
    CreateSessionFunction,
    DestroySessionFunction,
    Persona,
    SessionPayload,
    TestInfo,
    VerifySessionFunction,
)
from persona_auth.infrastructure.adapters.session.file_store import JsonFileSessionStore


def define_persona(
    name: str,
    *,
    create_session: CreateSessionFunction,
    verify_session: VerifySessionFunction | None = None,
    destroy_session: DestroySessionFunction | None = None,
    ttl: float | None = None,
) -> Persona:
    if not name:
        raise ValueError("Persona name must be a non-empty string")
    if not callable(create_session):
        raise ValueError(f'Persona "{name}" needs a callable create_session')
    if ttl is not None and ttl <= 0:
        raise ValueError(f'Persona "{name}" ttl must be positive, got {ttl}')
    return Persona(
        name=name,
        create_session=create_session,
        verify_session=verify_session,
        destroy_session=destroy_session,
        ttl=ttl,
    )


class CombinedPersonas:
    """A fixed set of personas addressable by name."""

    def __init__(self, personas: tuple[Persona, ...]) -> None:
        seen: dict[str, Persona] = {}
        for persona in personas:
            if persona.name in seen:
                raise DuplicatePersonaError(persona.name)
            seen[persona.name] = persona
        self._personas = seen

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._personas)

    def get(self, name: str) -> Persona:
        try:
            return self._personas[name]
        except KeyError:
            raise PersonaNotFoundError(name, self.names) from None

    def bind(
        self,
        *,
        browser: BrowserPort,
        context: BrowserContextPort,
        page: PagePort,
        test_info: TestInfo,
        store: SessionStorePort | None = None,
        restorer: StorageStateRestorer | None = None,
        fixtures: Mapping[str, Any] | None = None,
        clock: Clock | None = None,
    ) -> "Authenticator":
        """Authenticator for one test, acting on that test's browser objects."""
        return Authenticator(
            self,
            browser=browser,
            context=context,
            page=page,
            test_info=test_info,
            store=store or JsonFileSessionStore(),
            restorer=restorer or StorageStateRestorer(),
            fixtures=fixtures,
            clock=clock,
        )


def combine_personas(*personas: Persona) -> CombinedPersonas:
    return CombinedPersonas(personas)


class Authenticator:
    """authenticate(as_="admin") -> awaitable session payload.

    The persona lookup runs before the coroutine is created, so an unknown
    name fails immediately without touching the browser or the cache.
    """

    def __init__(
        self,
        personas: CombinedPersonas,
        *,
        browser: BrowserPort,
        context: BrowserContextPort,
        page: PagePort,
        test_info: TestInfo,
        store: SessionStorePort,
        restorer: StorageStateRestorer,
        fixtures: Mapping[str, Any] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.personas = personas
        self.browser = browser
        self.context = context
        self.page = page
        self.test_info = test_info
        self.store = store
        self.restorer = restorer
        self.fixtures = dict(fixtures or {})
        # hooks may authenticate other personas from inside their own flow
        self.fixtures.setdefault("authenticate", self)
        self.clock = clock

    def __call__(self, *, as_: str) -> Awaitable[SessionPayload]:
        persona = self.personas.get(as_)
        return self._authenticate(persona)

    async def _authenticate(self, persona: Persona) -> SessionPayload:
        use_case = EnsurePersonaSessionUseCase(
            persona,
            store=self.store,
            browser=self.browser,
            context=self.context,
            page=self.page,
            test_info=self.test_info,
            restorer=self.restorer,
            fixtures=self.fixtures,
            clock=self.clock,
        )
        result = await use_case.execute()
        return result.session
