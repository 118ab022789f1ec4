"""Serving a fresh cache entry.

:func:`negotiate` is only called for entries the store inspector reported as
fresh. It decides between four outcomes:

* ``BYPASS`` -- caching was switched off upstream; downstream runs as if
  there were no cache.
* ``NOT_MODIFIED`` -- the client's copy is current; a bodiless 304 is sent.
* ``SERVED`` -- the response body is now the stored entry (streamed from
  disk, or gunzipped when the client cannot take gzip).
* ``DELEGATE`` -- downstream must run, with the decoded entry (or ``None``
  when it could not be decoded) exposed as ``ctx.body``.

Compressed bytes are never sent to a client that did not accept gzip.
"""

from __future__ import annotations

import enum
import logging
import math

from filecache.cache.store import iter_entry, read_entry, read_entry_bytes
from filecache.context import RequestContext
from filecache.exceptions import MalformedCacheError
from filecache.http import http_date, parse_http_date
from filecache.models import CacheConfig, EntryInfo

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = ("gzip", "identity")


class Decision(str, enum.Enum):
    """What the orchestrator has to do after negotiation."""

    BYPASS = "bypass"
    NOT_MODIFIED = "not_modified"
    SERVED = "served"
    DELEGATE = "delegate"


def _set_freshness_headers(ctx: RequestContext, last_modified: float, expires: float) -> None:
    ctx.set_header("Last-Modified", http_date(last_modified))
    ctx.set_header("Expires", http_date(expires))


async def negotiate(entry: EntryInfo, ctx: RequestContext, config: CacheConfig) -> Decision:
    """Answer *ctx* from the fresh *entry*, or tell the caller to go downstream.

    Args:
        entry: Store inspector result with ``exists`` true and ``expired``
            false.
        ctx: The request context; response fields are mutated in place.
        config: Cache configuration.

    Returns:
        The :class:`Decision` taken.

    Raises:
        StoreIOError: If the entry cannot be read while decoding it.
    """
    if ctx.caching is False:
        logger.debug("Cache read disabled upstream for %s", entry.key)
        return Decision.BYPASS

    assert entry.last_modified is not None  # fresh entries always exist

    ctx.vary("Accept-Encoding")
    encoding = ctx.accepts_encodings(*SUPPORTED_ENCODINGS)
    expires = entry.last_modified + config.ttl_seconds
    # HTTP dates carry whole seconds only
    last_modified = float(math.floor(entry.last_modified))

    if_modified_since = parse_http_date(ctx.get_header("If-Modified-Since"))
    if if_modified_since is not None and if_modified_since >= last_modified:
        logger.debug("Client copy of %s is current, sending 304", entry.key)
        ctx.status = 304
        ctx.body = None
        _set_freshness_headers(ctx, last_modified, expires)
        return Decision.NOT_MODIFIED

    must_decode = config.delegate
    if not config.delegate:
        _set_freshness_headers(ctx, last_modified, expires)
        if entry.compressed and encoding == "gzip":
            ctx.set_header("Content-Encoding", "gzip")
            ctx.body = iter_entry(entry.path, config.chunk_size)
            ctx.compress = False
        elif entry.compressed:
            must_decode = True
        else:
            ctx.body = iter_entry(entry.path, config.chunk_size)
        ctx.content_type = config.media_type

    if must_decode:
        # direct serving keeps the stored bytes, delegates get the value
        reader = read_entry if config.delegate else read_entry_bytes
        try:
            ctx.body = await reader(entry, config)
        except MalformedCacheError as exc:
            logger.warning("Ignoring unreadable cache entry %s: %s", entry.path, exc)
            ctx.body = None

    if config.delegate or ctx.body is None:
        return Decision.DELEGATE

    logger.debug("Served %s from cache (encoding=%s)", entry.path, encoding)
    return Decision.SERVED
