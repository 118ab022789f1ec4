"""Gzip stage for outgoing responses.

Placed ahead of the cache in a pipeline, :class:`GzipStage` compresses
whatever downstream produced for clients that accept gzip. It leaves alone
responses that are already encoded, which is how cache hits served straight
from a ``.gz`` file avoid being compressed twice: the cache sets
``ctx.compress = False`` and ``Content-Encoding: gzip``.
"""

from __future__ import annotations

import gzip
import logging

from filecache.context import (
    RequestContext,
    collect_body,
    guess_content_type,
    is_empty_body,
    is_stream,
    serialize_body,
)
from filecache.http import accepts_encoding
from filecache.pipeline import Next

logger = logging.getLogger(__name__)


class GzipStage:
    """Pipeline middleware gzip-compressing response bodies.

    Args:
        threshold: Minimum body size in bytes worth compressing.
        level: zlib compression level.
    """

    def __init__(self, threshold: int = 1024, level: int = 6) -> None:
        self.threshold = threshold
        self.level = level

    async def __call__(self, ctx: RequestContext, call_next: Next) -> None:
        await call_next()

        if ctx.compress is False or is_empty_body(ctx.body) or ctx.status in (204, 304):
            return
        if ctx.get_response_header("Content-Encoding"):
            return
        ctx.vary("Accept-Encoding")
        if not accepts_encoding(ctx.get_header("Accept-Encoding"), "gzip"):
            return

        if ctx.content_type is None:
            ctx.content_type = guess_content_type(ctx.body)
        body = ctx.body
        data = await collect_body(body) if is_stream(body) else serialize_body(body)
        if len(data) < self.threshold:
            ctx.body = data
            return

        ctx.body = gzip.compress(data, compresslevel=self.level)
        ctx.set_header("Content-Encoding", "gzip")
        logger.debug("Compressed response %s from %d to %d bytes", ctx.path, len(data), len(ctx.body))
