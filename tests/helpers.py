"""Helpers shared by the filecache test modules."""

from __future__ import annotations

import asyncio
import gzip
import json
from pathlib import Path
from typing import Any, Coroutine, Optional

from filecache.context import RequestContext, collect_body, is_stream


def run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Drive a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


def set_cache_name(name: str):
    """Middleware storing the cache key field, like an upstream router would."""

    async def _mw(ctx: RequestContext, call_next) -> None:
        ctx.state["cache_name"] = name
        await call_next()

    return _mw


def disable_caching():
    """Middleware switching caching off for the request."""

    async def _mw(ctx: RequestContext, call_next) -> None:
        ctx.caching = False
        await call_next()

    return _mw


def respond_with(body: Any, calls: Optional[list] = None, caching: Optional[bool] = None):
    """Terminal middleware producing *body*.

    Each invocation appends the body it found on the context to *calls*, so
    tests can assert whether downstream ran and what it saw.
    """

    async def _mw(ctx: RequestContext, call_next) -> None:
        if calls is not None:
            calls.append(ctx.body)
        if caching is not None:
            ctx.caching = caching
        ctx.body = body

    return _mw


def large_body() -> dict[str, Any]:
    return {"arr": ["test"] * 10_000}


def small_body() -> dict[str, Any]:
    return {"test": "test"}


async def body_bytes(ctx: RequestContext) -> bytes:
    """Materialise whatever the pipeline left in ``ctx.body``."""
    if is_stream(ctx.body):
        return await collect_body(ctx.body)
    if isinstance(ctx.body, bytes):
        return ctx.body
    return json.dumps(ctx.body).encode()


def is_gzipped(data: bytes) -> bool:
    return data[:2] == b"\x1f\x8b"


def read_gz_json(path: Path) -> Any:
    return json.loads(gzip.decompress(path.read_bytes()))
