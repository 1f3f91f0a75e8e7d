from __future__ import annotations

from collections.abc import Sequence


class PersonaError(Exception):
    """Base exception for persona authentication failures."""


class PersonaNotFoundError(PersonaError, LookupError):
    def __init__(self, name: str, known_names: Sequence[str]) -> None:
        self.name = name
        self.known_names = tuple(known_names)
        super().__init__(
            f'Failed to authenticate: cannot find persona by name "{name}" '
            f"(known personas: {', '.join(self.known_names)})"
        )


class DuplicatePersonaError(PersonaError, ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Persona "{name}" is defined more than once in the same combination')


class SessionCreationError(PersonaError):
    """The persona's create_session hook failed. The hook error is the __cause__."""

    def __init__(self, persona_name: str) -> None:
        self.persona_name = persona_name
        super().__init__(f'Failed to create a session for persona "{persona_name}"')


class SessionVerificationError(PersonaError):
    """A cached session did not pass verify_session. Never leaves the engine."""

    def __init__(self, persona_name: str) -> None:
        self.persona_name = persona_name
        super().__init__(f'Cached session for persona "{persona_name}" failed verification')


class DestroySessionError(PersonaError):
    """Best-effort cleanup failed. Logged, never raised to the caller."""

    def __init__(self, persona_name: str) -> None:
        self.persona_name = persona_name
        super().__init__(f'destroy_session failed for persona "{persona_name}"')


class CacheDecodeError(PersonaError):
    """A session file is unreadable, truncated, or has the wrong shape."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot decode session file {source}: {reason}")


class StorageRestoreError(PersonaError):
    def __init__(self, origin: str) -> None:
        self.origin = origin
        super().__init__(f"Failed to restore local storage for origin {origin}")
