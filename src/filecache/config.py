"""Configuration loading with precedence resolution and atomic writes.

A :class:`~filecache.models.CacheConfig` can be built directly in code, but
the CLI (and servers that prefer file-based setup) resolve it through
:func:`resolve_config`, which merges, from highest to lowest precedence:

1. explicit overrides (CLI flags),
2. environment variables (``FILECACHE_FOLDER``, ``FILECACHE_TTL``,
   ``FILECACHE_GZIP``, ``FILECACHE_DELEGATE``),
3. the project config file (``./filecache.json`` or an explicit path),
4. model defaults.

Config files are written with a temp-file-then-rename strategy
(:func:`_atomic_write`). Cache entries themselves are not; see
:mod:`filecache.cache.writer`.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from filecache.exceptions import ConfigurationError
from filecache.models import CacheConfig

CONFIG_FILENAME = "filecache.json"

_ENV_FIELDS = {
    "FILECACHE_FOLDER": "folder",
    "FILECACHE_TTL": "ttl_seconds",
    "FILECACHE_GZIP": "gzip",
    "FILECACHE_DELEGATE": "delegate",
}


def build_config(data: Mapping[str, Any]) -> CacheConfig:
    """Validate *data* into a :class:`CacheConfig`.

    Raises:
        ConfigurationError: If validation fails.
    """
    try:
        return CacheConfig.model_validate(dict(data))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid cache configuration: {exc}") from exc


def ensure_folder(config: CacheConfig) -> None:
    """Fail fast when the cache folder is missing.

    Raises:
        ConfigurationError: If ``config.folder`` is not an existing directory.
    """
    if not config.folder.is_dir():
        raise ConfigurationError(f"Cache folder {config.folder} does not exist")


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created next to *path* so ``os.replace`` is an
    atomic rename on POSIX systems. On failure the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Config file ---


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON config file.

    Returns:
        The parsed mapping.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON, or
            does not hold a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")
    return data


def save_config(config: CacheConfig, path: Optional[Path] = None) -> Path:
    """Persist *config* as JSON, atomically.

    Args:
        config: The configuration to write.
        path: Target file; defaults to ``./filecache.json``.

    Returns:
        The path written.
    """
    target = path or Path.cwd() / CONFIG_FILENAME
    data = config.model_dump(mode="json")
    _atomic_write(target, json.dumps(data, indent=2) + "\n")
    return target


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    """Collect config values from ``FILECACHE_*`` environment variables."""
    env = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for var, field_name in _ENV_FIELDS.items():
        raw = env.get(var)
        if raw:
            values[field_name] = raw
    return values


# --- Precedence resolution ---


def resolve_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CacheConfig:
    """Resolve the effective configuration.

    Precedence (high to low):
        1. *overrides* (entries set to ``None`` are ignored)
        2. Environment variables
        3. Config file (*config_path*, else ``./filecache.json`` if present)
        4. Defaults

    Raises:
        ConfigurationError: If an explicit *config_path* does not exist, or
            the merged values fail validation.
    """
    data: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"Config file {config_path} not found")
        data.update(load_config_file(config_path))
    else:
        project = Path.cwd() / CONFIG_FILENAME
        if project.is_file():
            data.update(load_config_file(project))

    data.update(config_from_env())
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    return build_config(data)
