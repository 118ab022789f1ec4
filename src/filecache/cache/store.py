"""Read side of the on-disk store: probing, freshness, and decoding entries.

An entry for key ``K`` lives either at ``<folder>/K`` or, compressed, at
``<folder>/K.gz``. There is no metadata file; freshness comes solely from the
file's modification time.

Blocking filesystem calls are pushed to a worker thread with
:func:`asyncio.to_thread` so concurrent requests keep flowing while one of
them waits on the disk.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
import time
import zlib
from pathlib import Path
from typing import Any, AsyncIterator, Optional

from filecache.exceptions import MalformedCacheError, StoreIOError
from filecache.models import CacheConfig, EntryInfo

logger = logging.getLogger(__name__)


def is_expired(last_modified: Optional[float], ttl_seconds: float, now: float) -> bool:
    """Freshness rule: missing entries are expired, others after ``mtime + ttl``."""
    if last_modified is None:
        return True
    return now > last_modified + ttl_seconds


def _exists(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def _probe(key: str, config: CacheConfig, now: Optional[float]) -> EntryInfo:
    plain = config.entry_path(key)
    path, compressed, exists = plain, False, False

    # Compressed variant wins when both are present.
    if config.gzip:
        candidate = config.entry_path(key, compressed=True)
        if _exists(candidate):
            path, compressed, exists = candidate, True, True
    if not exists:
        exists = _exists(plain)

    if not exists:
        return EntryInfo(key=key, path=plain, ttl_seconds=config.ttl_seconds)

    try:
        last_modified = path.stat().st_mtime
    except OSError as exc:
        raise StoreIOError(f"Cannot stat cache file {path}: {exc}", path) from exc

    checked_at = time.time() if now is None else now
    return EntryInfo(
        key=key,
        path=path,
        exists=True,
        compressed=compressed,
        last_modified=last_modified,
        ttl_seconds=config.ttl_seconds,
        expired=is_expired(last_modified, config.ttl_seconds, checked_at),
    )


async def inspect_entry(
    key: str, config: CacheConfig, now: Optional[float] = None
) -> EntryInfo:
    """Report existence, compression and freshness of *key*'s entry.

    Args:
        key: The derived cache key.
        config: Cache configuration (folder, gzip flag, TTL).
        now: Epoch seconds to judge freshness against; defaults to the
            current time.

    Raises:
        StoreIOError: If an existing entry cannot be stat-ed.
    """
    info = await asyncio.to_thread(_probe, key, config, now)
    logger.debug(
        "Cache entry %s exists=%s compressed=%s expired=%s",
        info.path,
        info.exists,
        info.compressed,
        info.expired,
    )
    return info


async def iter_entry(path: Path, chunk_size: int = 64 * 1024) -> AsyncIterator[bytes]:
    """Stream the raw bytes of a cache file in chunks.

    The file is opened lazily on first iteration, so the stream can be handed
    to the response layer without touching the disk up front.

    Raises:
        StoreIOError: If the file cannot be opened or read.
    """
    try:
        handle = await asyncio.to_thread(path.open, "rb")
    except OSError as exc:
        raise StoreIOError(f"Cannot open cache file {path}: {exc}", path) from exc
    try:
        while True:
            try:
                chunk = await asyncio.to_thread(handle.read, chunk_size)
            except OSError as exc:
                raise StoreIOError(f"Cannot read cache file {path}: {exc}", path) from exc
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()


async def read_bytes(path: Path) -> bytes:
    """Read a whole cache file into memory.

    Raises:
        StoreIOError: If the file cannot be read.
    """
    try:
        return await asyncio.to_thread(path.read_bytes)
    except OSError as exc:
        raise StoreIOError(f"Cannot read cache file {path}: {exc}", path) from exc


def _unpack(raw: bytes, compressed: bool) -> bytes:
    if not compressed:
        return raw
    try:
        return gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as exc:
        raise MalformedCacheError(f"Cannot decompress cache entry: {exc}") from exc


def decode_entry(raw: bytes, compressed: bool, config: CacheConfig) -> Any:
    """Turn stored bytes back into the cached value.

    Compressed data is gunzipped; structured payloads are parsed from JSON.
    Other payload types come back as ``bytes``.

    Raises:
        MalformedCacheError: If decompression or parsing fails.
    """
    data = _unpack(raw, compressed)
    if not config.is_structured:
        return data
    try:
        return json.loads(data)
    except ValueError as exc:
        raise MalformedCacheError(f"Cannot parse cached JSON: {exc}") from exc


async def read_entry(info: EntryInfo, config: CacheConfig) -> Any:
    """Read and decode the entry described by *info*.

    Raises:
        StoreIOError: If the file cannot be read.
        MalformedCacheError: If the stored bytes cannot be decoded.
    """
    logger.debug("Reading from %s", info.path)
    raw = await read_bytes(info.path)
    return decode_entry(raw, info.compressed, config)


async def read_entry_bytes(info: EntryInfo, config: CacheConfig) -> bytes:
    """Read the entry described by *info* as its uncompressed stored bytes.

    The bytes are exactly what the writer serialized. Structured payloads
    are still parsed once so that an unreadable entry is reported here
    rather than sent to the client.

    Raises:
        StoreIOError: If the file cannot be read.
        MalformedCacheError: If the stored bytes cannot be decoded.
    """
    logger.debug("Reading from %s", info.path)
    data = _unpack(await read_bytes(info.path), info.compressed)
    decode_entry(data, False, config)
    return data
