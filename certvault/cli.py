"""Operator CLI for inspecting a certvault store and clearing stuck locks."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich import print

from .adapter import S3CertStorage, storage_from_config
from .config import AppConfig
from .errors import StorageError
from .logging_utils import setup_logging

app = typer.Typer(help="certvault: S3-compatible certificate storage utility CLI")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(
        Path("certvault.yaml"), envvar="CERTVAULT_CONFIG", help="Path to config YAML"
    ),
    log_level: str = typer.Option("WARNING", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines"),
):
    setup_logging(log_level, json=json_logs)
    ctx.obj = config


def _fail(e: Exception) -> NoReturn:
    print(f"[red]{type(e).__name__}: {e}")
    raise typer.Exit(code=1)


def _storage(ctx: typer.Context) -> S3CertStorage:
    try:
        return storage_from_config(AppConfig.load(ctx.obj))
    except StorageError as e:
        _fail(e)


@app.command("ls", help="List keys under a prefix")
def ls_cmd(
    ctx: typer.Context,
    prefix: str = typer.Argument("", help="Logical key prefix"),
    recursive: bool = typer.Option(True, "--recursive/--no-recursive", help="Descend into nested keys"),
):
    storage = _storage(ctx)
    try:
        keys = storage.list(prefix, recursive)
    except StorageError as e:
        _fail(e)
    for key in sorted(keys):
        print(key)


@app.command("stat", help="Show size and modification time of a key")
def stat_cmd(ctx: typer.Context, key: str = typer.Argument(...)):
    storage = _storage(ctx)
    try:
        info = storage.stat(key)
    except StorageError as e:
        _fail(e)
    print(f"[cyan]{info.key}[/cyan] size={info.size} modified={info.modified.isoformat()}")


@app.command("get", help="Print or save the (decrypted) value of a key")
def get_cmd(
    ctx: typer.Context,
    key: str = typer.Argument(...),
    out: Optional[Path] = typer.Option(None, help="Write value to this file instead of stdout"),
):
    storage = _storage(ctx)
    try:
        data = storage.load(key)
    except StorageError as e:
        _fail(e)
    if out:
        out.write_bytes(data)
        print(f"[green]Wrote {len(data)} bytes to {out}")
    else:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()


@app.command("put", help="Store a local file under a key")
def put_cmd(
    ctx: typer.Context,
    key: str = typer.Argument(...),
    src: Path = typer.Argument(..., exists=True, dir_okay=False),
):
    storage = _storage(ctx)
    data = src.read_bytes()
    try:
        storage.store(key, data)
    except StorageError as e:
        _fail(e)
    print(f"[green]Stored {len(data)} bytes at {key}")


@app.command("rm", help="Delete a key")
def rm_cmd(ctx: typer.Context, key: str = typer.Argument(...)):
    storage = _storage(ctx)
    try:
        storage.delete(key)
    except StorageError as e:
        _fail(e)
    print(f"[green]Deleted {key}")


@app.command("lock-info", help="Show who holds the lock on a key")
def lock_info_cmd(ctx: typer.Context, key: str = typer.Argument(...)):
    storage = _storage(ctx)
    try:
        locked = storage.locks.is_locked(key)
        info = storage.locks.lock_info(key) if locked else None
    except StorageError as e:
        _fail(e)
    if not locked:
        print(f"[green]{key} is not locked")
    elif info is None:
        print(f"[yellow]{key} is locked by an unreadable marker (will be reclaimed)")
    else:
        age = info.age().total_seconds()
        stale = age > storage.locks.settings.stale_threshold
        state = "[yellow]stale[/yellow]" if stale else "held"
        print(f"[cyan]{key}[/cyan] {state} by {info.holder} for {age:.0f}s")


@app.command("unlock", help="Forcibly remove the lock marker for a key")
def unlock_cmd(ctx: typer.Context, key: str = typer.Argument(...)):
    storage = _storage(ctx)
    try:
        storage.unlock(key)
    except StorageError as e:
        _fail(e)
    print(f"[green]Released lock on {key}")


if __name__ == "__main__":
    app()
