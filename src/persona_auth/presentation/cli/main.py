from __future__ import annotations

import asyncio
import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import typer

from persona_auth.config import settings
from persona_auth.domain.errors import CacheDecodeError
from persona_auth.domain.session_file import decode_session_file
from persona_auth.infrastructure.adapters.session.file_store import JsonFileSessionStore

app = typer.Typer(help="Persona session cache maintenance")

_DIR_OPTION = typer.Option(None, "--dir", "-d", help="Cache directory (default: $PERSONA_AUTH_DIR)")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


def _store(directory: Path | None) -> JsonFileSessionStore:
    return JsonFileSessionStore(directory if directory is not None else settings.storage_state_dir)


def _summary(path: Path) -> str:
    try:
        session_file = decode_session_file(path.read_text(encoding="utf-8"), source=str(path))
    except CacheDecodeError as e:
        return f"corrupt ({e.reason})"
    return f"{len(session_file.cookies)} cookies, {len(session_file.origins)} origins"


@app.command("list")
def list_sessions(directory: Path | None = _DIR_OPTION) -> None:
    entries = asyncio.run(_store(directory).entries())
    if not entries:
        typer.echo("No cached sessions")
        return
    now = datetime.now(UTC)
    for entry in entries:
        age = int((now - entry.saved_at).total_seconds())
        typer.echo(f"{entry.path.name}\t{age}s\t{_summary(entry.path)}")


@app.command()
def show(path: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    try:
        session_file = decode_session_file(path.read_text(encoding="utf-8"), source=str(path))
    except CacheDecodeError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    typer.echo(f"cookies: {len(session_file.cookies)}")
    for origin in session_file.origins:
        typer.echo(f"origin: {origin.origin} ({len(origin.local_storage)} localStorage entries)")
    typer.echo(json.dumps(session_file.session, indent=2))


@app.command()
def prune(
    older_than: float = typer.Option(..., "--older-than", "-o", help="Maximum age in seconds"),
    directory: Path | None = _DIR_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run"),
) -> None:
    store = _store(directory)

    async def _prune() -> int:
        now = datetime.now(UTC)
        removed = 0
        for entry in await store.entries():
            if (now - entry.saved_at).total_seconds() <= older_than:
                continue
            typer.echo(f"{'would remove' if dry_run else 'removing'} {entry.path.name}")
            if not dry_run:
                await store.delete(entry.path)
            removed += 1
        return removed

    n = asyncio.run(_prune())
    typer.echo(f"Stale sessions: {n}")
