from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from persona_auth.domain.errors import CacheDecodeError
from persona_auth.domain.model import SessionPayload


@dataclass(frozen=True)
class StorageItem:
    name: str
    value: str


@dataclass(frozen=True)
class OriginState:
    origin: str
    local_storage: tuple[StorageItem, ...] = ()


@dataclass(frozen=True)
class SessionFile:
    """Durable snapshot for one (test, persona) pair.

    cookies are kept as the browser reports them: opaque records passed
    through verbatim to add_cookies.
    """

    cookies: tuple[dict[str, Any], ...] = ()
    origins: tuple[OriginState, ...] = ()
    session: SessionPayload = field(default_factory=dict)

    @classmethod
    def from_storage_state(
        cls, state: Mapping[str, Any], session: SessionPayload
    ) -> "SessionFile":
        """Combine a browser storage_state() snapshot with the app payload."""
        return _from_dict({**state, "session": session}, source="storage_state")

    def to_storage_state(self) -> dict[str, Any]:
        """Shape accepted by Browser.new_context(storage_state=...)."""
        data = self.to_dict()
        del data["session"]
        return data

    def to_dict(self) -> dict[str, Any]:
        return {
            "cookies": [dict(c) for c in self.cookies],
            "origins": [
                {
                    "origin": o.origin,
                    "localStorage": [{"name": i.name, "value": i.value} for i in o.local_storage],
                }
                for o in self.origins
            ],
            "session": self.session,
        }


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Session payload value of type {type(value).__name__} is not serializable")


def encode_session_file(session_file: SessionFile) -> str:
    return json.dumps(session_file.to_dict(), indent=2, default=_json_default)


def decode_session_file(text: str, *, source: str = "<memory>") -> SessionFile:
    """Parse a session file, raising CacheDecodeError for anything malformed."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise CacheDecodeError(source, f"invalid JSON ({e})") from e
    return _from_dict(data, source=source)


def _require_list(value: Any, what: str, source: str) -> Sequence[Any]:
    if not isinstance(value, list):
        raise CacheDecodeError(source, f"{what} must be a list")
    return value


def _from_dict(data: Any, *, source: str) -> SessionFile:
    if not isinstance(data, Mapping):
        raise CacheDecodeError(source, "top-level value must be an object")
    for key in ("cookies", "origins", "session"):
        if key not in data:
            raise CacheDecodeError(source, f'missing "{key}"')

    cookies = _require_list(data["cookies"], "cookies", source)
    if not all(isinstance(c, Mapping) for c in cookies):
        raise CacheDecodeError(source, "cookie records must be objects")

    origins: list[OriginState] = []
    for entry in _require_list(data["origins"], "origins", source):
        if not isinstance(entry, Mapping) or not isinstance(entry.get("origin"), str):
            raise CacheDecodeError(source, "origin entries need a string origin")
        items: list[StorageItem] = []
        for item in _require_list(entry.get("localStorage"), "localStorage", source):
            if (
                not isinstance(item, Mapping)
                or not isinstance(item.get("name"), str)
                or not isinstance(item.get("value"), str)
            ):
                raise CacheDecodeError(source, f"bad localStorage item for {entry['origin']}")
            items.append(StorageItem(item["name"], item["value"]))
        origins.append(OriginState(entry["origin"], tuple(items)))

    session = data["session"]
    if not isinstance(session, Mapping):
        raise CacheDecodeError(source, "session payload must be an object")

    return SessionFile(
        cookies=tuple(dict(c) for c in cookies),
        origins=tuple(origins),
        session=dict(session),
    )
