from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from persona_auth.application.ports.browser_port import PagePort, RoutePort
from persona_auth.config import settings
from persona_auth.domain.errors import StorageRestoreError
from persona_auth.domain.session_file import OriginState, SessionFile

logger = logging.getLogger(__name__)

BLANK_DOCUMENT = "<html></html>"
SET_LOCAL_STORAGE = "([key, value]) => { localStorage.setItem(key, value) }"
_ANY_URL = re.compile(r".+")


@dataclass(frozen=True)
class RestoreResult:
    origins_restored: int
    failed_origins: tuple[str, ...] = ()


async def _fulfill_blank(route: RoutePort) -> None:
    try:
        await route.fulfill(body=BLANK_DOCUMENT)
    except Exception as e:
        # the scratch page may already be closing
        logger.debug(f"[StorageStateRestorer] route fulfill skipped: {e}")


class StorageStateRestorer:
    """Replays a SessionFile into the browser context that owns a page.

    Cookies go in one add_cookies batch. Local storage is written through a
    scratch page whose every request is answered with a blank document, so
    no network traffic happens and no site script runs. Origins are visited
    one at a time because they share the scratch page's main frame.

    strict=True aborts on the first failing origin with StorageRestoreError;
    strict=False settles each origin independently and reports failures.
    """

    def __init__(self, *, strict: bool | None = None) -> None:
        self.strict = settings.strict_origin_restore if strict is None else strict

    def _log(self, msg: str, level: int = logging.DEBUG) -> None:
        logger.log(level, f"[StorageStateRestorer] {msg}")

    async def restore(self, session_file: SessionFile, page: PagePort) -> RestoreResult:
        context = page.context
        await context.add_cookies(list(session_file.cookies))

        if not session_file.origins:
            return RestoreResult(0)

        scratch = await context.new_page()
        failed: list[str] = []
        try:
            await scratch.route(_ANY_URL, _fulfill_blank)
            for state in session_file.origins:
                try:
                    await self._restore_origin(scratch, state)
                except Exception as e:
                    if self.strict:
                        raise StorageRestoreError(state.origin) from e
                    self._log(f"origin {state.origin} not restored: {e}", logging.WARNING)
                    failed.append(state.origin)
        finally:
            await scratch.close()

        return RestoreResult(len(session_file.origins) - len(failed), tuple(failed))

    async def _restore_origin(self, scratch: PagePort, state: OriginState) -> None:
        frame = scratch.main_frame
        await frame.goto(state.origin)
        for item in state.local_storage:
            await frame.evaluate(SET_LOCAL_STORAGE, [item.name, item.value])
        self._log(f"restored {len(state.local_storage)} entries for {state.origin}")
