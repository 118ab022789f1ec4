"""The cache middleware: one inspect, then either serve or produce-and-store.

Per request the entry state is determined exactly once:

* **expired** (or missing) -- downstream runs to completion; unless it
  switched caching off or produced no body, the result is written to disk and
  the response is stamped with ``Last-Modified``/``Expires`` computed from the
  save time (an approximation of the file's real mtime).
* **fresh** -- :func:`~filecache.cache.negotiation.negotiate` answers from
  the stored entry, possibly handing over to downstream (delegate mode,
  upstream bypass, or an unreadable entry).

There is no per-key lock: two concurrent misses for the same key both run
downstream and both write, the later write winning.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from filecache.cache.keys import resolve_key
from filecache.cache.negotiation import Decision, negotiate
from filecache.cache.store import inspect_entry
from filecache.cache.writer import save_entry
from filecache.config import build_config, ensure_folder
from filecache.context import RequestContext, is_empty_body
from filecache.http import http_date
from filecache.models import CacheConfig
from filecache.pipeline import Next

logger = logging.getLogger(__name__)


class FileCache:
    """Pipeline middleware caching downstream response bodies on disk.

    Args:
        config: Cache settings. When omitted, defaults are used with any
            keyword *overrides* applied (``FileCache(folder="cache", gzip=False)``).

    Raises:
        ConfigurationError: If the configured folder does not exist.

    Example::

        pipeline.use(FileCache(CacheConfig(folder="cache", delegate=True)))
    """

    def __init__(self, config: Optional[CacheConfig] = None, **overrides: object) -> None:
        if config is None:
            config = build_config(overrides)
        elif overrides:
            config = build_config({**config.model_dump(), **overrides})
        ensure_folder(config)
        self.config = config

    async def __call__(self, ctx: RequestContext, call_next: Next) -> None:
        key = resolve_key(ctx, self.config)
        entry = await inspect_entry(key, self.config)
        logger.debug("%s has expired: %s", entry.path, entry.expired)

        if entry.expired:
            await self._produce_and_store(ctx, call_next, key)
            return

        decision = await negotiate(entry, ctx, self.config)
        if decision in (Decision.BYPASS, Decision.DELEGATE):
            await call_next()

    async def _produce_and_store(self, ctx: RequestContext, call_next: Next, key: str) -> None:
        await call_next()

        if ctx.caching is False or is_empty_body(ctx.body):
            logger.debug("Caching disabled or empty body for %s", key)
            return

        await save_entry(ctx, self.config, key)

        saved_at = time.time()
        ctx.set_header("Last-Modified", http_date(saved_at))
        ctx.set_header("Expires", http_date(saved_at + self.config.ttl_seconds))
