from __future__ import annotations

import asyncio
import os
import time

from typer.testing import CliRunner

from persona_auth.application.session_keys import SessionKey
from persona_auth.domain.session_file import OriginState, SessionFile, StorageItem
from persona_auth.infrastructure.adapters.session.file_store import JsonFileSessionStore
from persona_auth.presentation.cli.main import app

runner = CliRunner()
SF = SessionFile(
    cookies=({"name": "sid", "value": "x", "domain": "a.test", "path": "/"},),
    origins=(OriginState("https://a.test", (StorageItem("k", "v"),)),),
    session={"user": {"id": "abc-123"}},
)


def _seed(tmp_path):
    store = JsonFileSessionStore(tmp_path)
    asyncio.run(store.save(SessionKey("t-old", "user"), SF))
    asyncio.run(store.save(SessionKey("t-new", "admin"), SF))
    stale = time.time() - 7200
    os.utime(tmp_path / "t-old-user.json", (stale, stale))
    (tmp_path / "t-bad-user.json").write_text("{", encoding="utf-8")
    return store


def test_list_shows_every_cached_file(tmp_path):
    _seed(tmp_path)
    result = runner.invoke(app, ["list", "--dir", str(tmp_path)])
    assert result.exit_code == 0
    lines = result.output.strip().splitlines()
    assert lines[0].startswith("t-old-user.json")
    assert "1 cookies, 1 origins" in lines[0]
    assert any("t-bad-user.json" in line and "corrupt" in line for line in lines)


def test_list_empty_directory(tmp_path):
    result = runner.invoke(app, ["list", "--dir", str(tmp_path / "missing")])
    assert result.exit_code == 0
    assert "No cached sessions" in result.output


def test_show_prints_payload(tmp_path):
    _seed(tmp_path)
    result = runner.invoke(app, ["show", str(tmp_path / "t-new-admin.json")])
    assert result.exit_code == 0
    assert "origin: https://a.test (1 localStorage entries)" in result.output
    assert '"id": "abc-123"' in result.output


def test_show_corrupt_file_fails(tmp_path):
    _seed(tmp_path)
    result = runner.invoke(app, ["show", str(tmp_path / "t-bad-user.json")])
    assert result.exit_code == 1


def test_prune_dry_run_keeps_files(tmp_path):
    _seed(tmp_path)
    result = runner.invoke(app, ["prune", "--older-than", "3600", "--dir", str(tmp_path), "--dry-run"])
    assert result.exit_code == 0
    assert "would remove t-old-user.json" in result.output
    assert (tmp_path / "t-old-user.json").exists()


def test_prune_removes_only_stale_files(tmp_path):
    _seed(tmp_path)
    result = runner.invoke(app, ["prune", "--older-than", "3600", "--dir", str(tmp_path)])
    assert result.exit_code == 0
    assert "Stale sessions: 1" in result.output
    assert not (tmp_path / "t-old-user.json").exists()
    assert (tmp_path / "t-new-admin.json").exists()
