from __future__ import annotations

import inspect

import pytest

from persona_auth.application.personas import combine_personas, define_persona
from persona_auth.application.session_keys import SessionKey
from persona_auth.domain.errors import DuplicatePersonaError, PersonaNotFoundError
from persona_auth.domain.model import TestInfo
from persona_auth.infrastructure.adapters.session.file_store import JsonFileSessionStore
from tests.unit._fakes_browser import live_setup
from tests.unit._fakes_personas import CountingStore, FakeHooks

TEST = TestInfo(test_id="t-1")


async def _noop_create(ctx, test_info):
    return {}


def _bind(personas, store):
    browser, context, page = live_setup()
    auth = personas.bind(browser=browser, context=context, page=page, test_info=TEST, store=store)
    return auth, browser, context


def test_define_persona_requires_create_session():
    with pytest.raises(ValueError):
        define_persona("user", create_session=None)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        define_persona("", create_session=_noop_create)
    with pytest.raises(ValueError):
        define_persona("user", create_session=_noop_create, ttl=0)


def test_define_persona_keeps_optional_hooks_absent():
    persona = define_persona("user", create_session=_noop_create)
    assert persona.verify_session is None
    assert persona.destroy_session is None
    assert persona.ttl is None


def test_duplicate_names_are_rejected():
    with pytest.raises(DuplicatePersonaError):
        combine_personas(
            define_persona("user", create_session=_noop_create),
            define_persona("user", create_session=_noop_create),
        )


def test_unknown_persona_fails_before_any_io():
    hooks = FakeHooks([])
    personas = combine_personas(hooks.persona("user"), hooks.persona("admin"))
    store = CountingStore()
    auth, browser, context = _bind(personas, store)

    with pytest.raises(PersonaNotFoundError) as exc:
        auth(as_="unknown")  # raises on the call itself, no await

    assert "user, admin" in str(exc.value)
    assert exc.value.known_names == ("user", "admin")
    assert store.reads == 0
    assert context.log == [] and browser.log == []


@pytest.mark.asyncio
async def test_authenticate_twice_reuses_without_writing():
    hooks = FakeHooks([])
    store = CountingStore()
    auth, *_ = _bind(combine_personas(hooks.persona("user")), store)

    first = await auth(as_="user")
    assert store.reads == 1 and store.writes == 1

    second = await auth(as_="user")
    third = await auth(as_="user")

    assert first == second == third
    assert hooks.created == 1
    assert store.reads == 3 and store.writes == 1


@pytest.mark.asyncio
async def test_each_persona_gets_its_own_cache_entry():
    user_hooks = FakeHooks([], payload={"role": "user"})
    admin_hooks = FakeHooks([], payload={"role": "admin"})
    store = CountingStore()
    auth, *_ = _bind(combine_personas(user_hooks.persona("user"), admin_hooks.persona("admin")), store)

    assert (await auth(as_="user"))["role"] == "user"
    assert (await auth(as_="admin"))["role"] == "admin"
    assert store.raw(SessionKey("t-1", "user")) != store.raw(SessionKey("t-1", "admin"))


@pytest.mark.asyncio
async def test_authenticate_with_file_store(tmp_path):
    hooks = FakeHooks([])
    personas = combine_personas(hooks.persona("user"))
    store = JsonFileSessionStore(tmp_path / ".auth")

    auth, *_ = _bind(personas, store)
    created = await auth(as_="user")

    # a retry of the same test starts with fresh browser objects
    retry_auth, _, retry_context = _bind(personas, store)
    reused = await retry_auth(as_="user")

    assert created == reused
    assert hooks.created == 1 and hooks.verified == 1
    assert (tmp_path / ".auth" / "t-1-user.json").exists()
    assert retry_context.cookies[0]["value"] == "s1"


def test_authenticator_call_returns_awaitable():
    hooks = FakeHooks([])
    auth, *_ = _bind(combine_personas(hooks.persona("user")), CountingStore())
    pending = auth(as_="user")
    assert inspect.isawaitable(pending)
    pending.close()


def test_authenticator_is_exposed_to_hooks():
    hooks = FakeHooks([])
    auth, *_ = _bind(combine_personas(hooks.persona("user")), CountingStore())
    assert auth.fixtures["authenticate"] is auth


@pytest.mark.asyncio
async def test_authenticate_recovers_from_non_utf8_cache_file(tmp_path):
    hooks = FakeHooks([])
    store = JsonFileSessionStore(tmp_path)
    store.path_for(SessionKey("t-1", "user")).write_bytes(b'{"cookies": [\xff\xfe')
    auth, *_ = _bind(combine_personas(hooks.persona("user")), store)

    session = await auth(as_="user")

    assert hooks.created == 1 and hooks.verified == 0
    stored = await store.load(SessionKey("t-1", "user"))
    assert stored.session_file.session == session
