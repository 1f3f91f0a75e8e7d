from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")

# file names are capped at 255 bytes; leave room for "-", ".json" and the
# ".<pid>.tmp" suffix used while writing
MAX_TEST_COMPONENT = 150
MAX_PERSONA_COMPONENT = 64


def _safe_component(value: str, limit: int) -> str:
    """Filesystem-safe rendering of one key component, at most ``limit`` chars.

    Replaced or truncated values get a digest suffix so "a/b" and "a_b", or
    two long ids sharing a prefix, stay distinct.
    """
    cleaned = _UNSAFE.sub("_", value)
    if cleaned == value and cleaned not in ("", ".", "..") and len(cleaned) <= limit:
        return cleaned
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()[:8]
    return f"{cleaned[: limit - len(digest) - 1]}_{digest}"


@dataclass(frozen=True)
class SessionKey:
    """Cache key for one persona inside one test.

    Retries of the same test share a key, so a session minted on the
    first attempt is reused by the next one.
    """

    test_id: str
    persona_name: str

    @property
    def file_name(self) -> str:
        test = _safe_component(self.test_id, MAX_TEST_COMPONENT)
        persona = _safe_component(self.persona_name, MAX_PERSONA_COMPONENT)
        return f"{test}-{persona}.json"


def session_file_path(directory: str | Path, key: SessionKey) -> Path:
    base = Path(directory)
    path = base / key.file_name
    if path.resolve().parent != base.resolve():
        raise ValueError(f"Session key {key!r} escapes cache directory {base}")
    return path
