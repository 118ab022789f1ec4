"""Entry commands -- look at what is stored under a cache key.

``filecache inspect KEY`` reports the store inspector's view of an entry
(which variant exists, when it was written, whether it is still fresh).
``filecache show KEY`` prints the decoded payload, exactly as the cache
middleware would hand it to downstream code in delegate mode.
"""

from __future__ import annotations

import asyncio
from typing import Any

import typer

from filecache.exceptions import EntryNotFoundError, FileCacheError
from filecache.http import http_date
from filecache.models import CacheConfig
from filecache.output import error, get_output


def _resolve(ctx: typer.Context) -> CacheConfig:
    """Resolve the effective config from the root callback's options."""
    from filecache.config import ensure_folder, resolve_config

    obj = ctx.obj or {}
    config = resolve_config(obj.get("config_path"), obj.get("overrides"))
    ensure_folder(config)
    return config


def _fail(exc: FileCacheError) -> typer.Exit:
    error(str(exc))
    return typer.Exit(code=exc.exit_code)


def inspect_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key (file name under the cache folder)."),
) -> None:
    """Show existence, compression and freshness of an entry.

    Example::

        filecache --folder ./cache inspect reports.daily
        filecache --json inspect reports.daily
    """
    from filecache.cache.store import inspect_entry

    try:
        config = _resolve(ctx)
        entry = asyncio.run(inspect_entry(key, config))
    except FileCacheError as exc:
        raise _fail(exc) from None

    record: dict[str, Any] = {
        "key": entry.key,
        "path": str(entry.path),
        "exists": entry.exists,
        "compressed": entry.compressed,
        "last_modified": http_date(entry.last_modified) if entry.last_modified else None,
        "expires": http_date(entry.expires) if entry.expires is not None else None,
        "expired": entry.expired,
    }
    get_output().print_record(record, title=f"Cache entry {key}")


def show_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key (file name under the cache folder)."),
) -> None:
    """Print the decoded payload stored under KEY.

    Compressed entries are decompressed and JSON payloads parsed. Expired
    entries are still shown; a note is printed to stderr.

    Example::

        filecache --folder ./cache show reports.daily
    """
    from filecache.cache.store import inspect_entry, read_entry

    output = get_output()
    try:
        config = _resolve(ctx)
        entry = asyncio.run(inspect_entry(key, config))
        if not entry.exists:
            raise EntryNotFoundError(f"No cache entry for key '{key}' in {config.folder}")
        value = asyncio.run(read_entry(entry, config))
    except FileCacheError as exc:
        raise _fail(exc) from None

    if entry.expired:
        output.info(f"Entry {entry.path} has expired")
    output.format_value(value)
