from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from re import Pattern
from typing import Any, Protocol


class RoutePort(Protocol):
    async def fulfill(self, *, body: str | None = None, **kwargs: Any) -> None: ...


class FramePort(Protocol):
    async def goto(self, url: str, **kwargs: Any) -> Any: ...
    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...


class PagePort(Protocol):
    """Subset of playwright.async_api.Page used by the restorer and hooks."""

    @property
    def context(self) -> "BrowserContextPort": ...
    @property
    def main_frame(self) -> FramePort: ...
    async def route(
        self, url: str | Pattern[str], handler: Callable[[RoutePort], Awaitable[None]]
    ) -> None: ...
    async def close(self) -> None: ...


class BrowserContextPort(Protocol):
    async def add_cookies(self, cookies: Sequence[dict[str, Any]]) -> None: ...
    async def new_page(self) -> PagePort: ...
    async def storage_state(self) -> dict[str, Any]:
        """Returns {"cookies": [...], "origins": [{"origin", "localStorage"}]}."""
        ...
    async def close(self) -> None: ...


class BrowserPort(Protocol):
    async def new_context(self, *, storage_state: dict[str, Any] | None = None) -> BrowserContextPort: ...
