"""Config commands -- view and create ``filecache.json``.

The effective configuration is the same precedence merge the server side
uses (:func:`~filecache.config.resolve_config`), so ``config show`` is the
quickest way to check which folder and TTL a deployment will pick up.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from filecache.exceptions import FileCacheError
from filecache.output import error, get_output, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration.

    Example::

        filecache config show
        FILECACHE_TTL=300 filecache --json config show
    """
    from filecache.config import resolve_config

    obj = ctx.obj or {}
    try:
        config = resolve_config(obj.get("config_path"), obj.get("overrides"))
    except FileCacheError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Media type: {config.media_type}")
    get_output().print_record(config.model_dump(mode="json"), title="filecache config")


@config_app.command("init")
def config_init(
    path: Optional[Path] = typer.Option(
        None, "--path", help="Where to write the file (default: ./filecache.json)."
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file."),
) -> None:
    """Write a config file holding the default settings.

    Raises:
        typer.Exit: With code 2 if the file exists and ``--force`` is not given.

    Example::

        filecache config init
        filecache config init --path deploy/filecache.json --force
    """
    from filecache.config import CONFIG_FILENAME, save_config
    from filecache.models import CacheConfig

    target = path or Path.cwd() / CONFIG_FILENAME
    if target.exists() and not force:
        error(f"{target} already exists (use --force to overwrite)")
        raise typer.Exit(code=2)

    written = save_config(CacheConfig(), target)
    success(f"Wrote {written}")
