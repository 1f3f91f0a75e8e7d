from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Union

# =========================
# Session payload
# =========================
# Application-defined data returned by create_session. Plain data only:
# dates are persisted as ISO-8601 strings.
SessionValue = Union[
    str, int, float, bool, date, None, list["SessionValue"], dict[str, "SessionValue"]
]
SessionPayload = dict[str, SessionValue]


# =========================
# Test metadata
# =========================
@dataclass(frozen=True)
class TestInfo:
    """Identity of the running test. test_id is the cache-key component."""

    __test__ = False  # keep pytest from collecting this class

    test_id: str
    title: str = ""
    retry: int = 0


# =========================
# Hook contexts
# =========================
@dataclass(frozen=True)
class CreateSessionContext:
    page: Any
    fixtures: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class VerifySessionContext:
    page: Any
    session: SessionPayload
    fixtures: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DestroySessionContext:
    page: Any
    session: SessionPayload
    fixtures: Mapping[str, Any] = field(default_factory=dict)


CreateSessionFunction = Callable[[CreateSessionContext, TestInfo], Awaitable[SessionPayload]]
VerifySessionFunction = Callable[[VerifySessionContext, TestInfo], Awaitable[None]]
DestroySessionFunction = Callable[[DestroySessionContext, TestInfo], Awaitable[None]]


# =========================
# Entities
# =========================
@dataclass(frozen=True)
class Persona:
    """A named way to establish and validate one kind of authenticated actor.

    Behaviour branches on which hooks are present:
    - no verify_session: a cached session is trusted without a check
    - no destroy_session: invalid sessions are recreated without cleanup
    - no ttl: cached files never expire by age
    """

    name: str
    create_session: CreateSessionFunction
    verify_session: VerifySessionFunction | None = None
    destroy_session: DestroySessionFunction | None = None
    ttl: float | None = None
