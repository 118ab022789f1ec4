"""Write side of the on-disk store.

Writes go straight to the final path (no temp file, no rename) and nothing
serialises concurrent writers of the same key: the last write wins and a
concurrent reader can observe a partially written file.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
from pathlib import Path

from filecache.context import RequestContext, collect_body, is_stream, serialize_body
from filecache.exceptions import ConfigurationError, StoreIOError
from filecache.models import CacheConfig

logger = logging.getLogger(__name__)


def _write_plain(path: Path, data: bytes) -> None:
    with path.open("wb") as fh:
        fh.write(data)


def _write_gzip(path: Path, data: bytes) -> None:
    with gzip.open(path, "wb") as fh:
        fh.write(data)


async def encode_for_store(ctx: RequestContext, config: CacheConfig) -> bytes:
    """Serialize ``ctx.body`` into the bytes that get stored and sent.

    For JSON payloads, ``bytes`` (and drained streams) are taken to be
    serialized already; every other value, strings included, is dumped as
    JSON so that reading it back yields an equal value.

    Raises:
        ConfigurationError: If a non-JSON payload type is configured but the
            body is a structured value.
    """
    body = ctx.body
    if is_stream(body):
        body = await collect_body(body)
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if config.is_structured:
        return json.dumps(body, indent=config.json_spaces, ensure_ascii=False).encode("utf-8")
    if not isinstance(body, str):
        raise ConfigurationError(
            f"Cannot store a {type(body).__name__} body with payload type {config.type!r}"
        )
    return serialize_body(body)


async def save_entry(ctx: RequestContext, config: CacheConfig, key: str) -> Path:
    """Persist the downstream body of *ctx* under *key*.

    Structured bodies are serialized to JSON first. When gzip is enabled and
    the serialized size exceeds ``config.gzip_threshold`` the data goes to
    ``<key>.gz`` compressed; otherwise to ``<key>`` as-is. Afterwards
    ``ctx.body`` holds the serialized bytes so the client receives exactly
    what was stored.

    Returns:
        The path that was written.

    Raises:
        StoreIOError: If the file cannot be written.
    """
    data = await encode_for_store(ctx, config)
    ctx.body = data
    if ctx.content_type is None:
        ctx.content_type = config.media_type

    if config.gzip and len(data) > config.gzip_threshold:
        path = config.entry_path(key, compressed=True)
        write = _write_gzip
        logger.debug("Attempting to save %s (%d bytes before gzip)", path, len(data))
    else:
        path = config.entry_path(key)
        write = _write_plain
        logger.debug("gzip disabled or below threshold, attempting to save %s", path)

    try:
        await asyncio.to_thread(write, path, data)
    except OSError as exc:
        raise StoreIOError(f"Cannot write cache file {path}: {exc}", path) from exc
    return path
