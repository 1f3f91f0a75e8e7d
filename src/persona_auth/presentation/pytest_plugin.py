"""pytest wiring for persona authentication.

Expects the runner to provide async ``browser``, ``context`` and ``page``
fixtures (pytest-playwright's asyncio plugin does). Usage in a conftest::

    personas = combine_personas(user, admin)
    authenticate = authenticate_fixture(personas, fixtures=("base_url",))

    @pytest.mark.asyncio
    async def test_dashboard(authenticate, page):
        await authenticate(as_="admin")
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pytest
import pytest_asyncio

from persona_auth.application.personas import CombinedPersonas
from persona_auth.application.ports.session_store_port import SessionStorePort
from persona_auth.domain.model import TestInfo


def build_test_info(request: pytest.FixtureRequest) -> TestInfo:
    node = request.node
    # pytest-rerunfailures records the attempt on the item
    retry = int(getattr(node, "execution_count", 1)) - 1
    return TestInfo(test_id=node.nodeid, title=node.name, retry=max(retry, 0))


def authenticate_fixture(
    personas: CombinedPersonas,
    *,
    name: str = "authenticate",
    fixtures: Sequence[str] = (),
    store: SessionStorePort | None = None,
) -> Any:
    """Build a function-scoped fixture yielding the bound Authenticator.

    ``fixtures`` names other fixtures to expose to the persona hooks as
    ``ctx.fixtures[name]``.
    """

    @pytest_asyncio.fixture(name=name)
    async def _authenticate(request: pytest.FixtureRequest, browser: Any, context: Any, page: Any) -> Any:
        extras = {fixture: request.getfixturevalue(fixture) for fixture in fixtures}
        yield personas.bind(
            browser=browser,
            context=context,
            page=page,
            test_info=build_test_info(request),
            store=store,
            fixtures=extras,
        )

    return _authenticate
