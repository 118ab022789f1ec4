"""Async middleware chain that carries a :class:`RequestContext` end to end.

Each middleware is an async callable ``mw(ctx, call_next)``. Code before
``await call_next()`` runs on the way in, code after it runs on the way out,
so a middleware can both short-circuit a request (by never calling
``call_next``) and post-process what downstream produced. The cache
middleware uses both: it skips downstream entirely on a fresh hit and stores
the downstream body on a miss.

Example::

    async def set_cache_name(ctx, call_next):
        ctx.state["cache_name"] = ctx.query.get("report", "default")
        await call_next()

    pipeline = Pipeline().use(set_cache_name).use(FileCache(config)).use(handler)
    ctx = await pipeline.handle(RequestContext(path="/reports"))
"""

from __future__ import annotations

from typing import Awaitable, Callable, Iterable, Optional

from filecache.context import RequestContext
from filecache.exceptions import InvalidUsageError

Next = Callable[[], Awaitable[None]]
Middleware = Callable[[RequestContext, Next], Awaitable[None]]


class Pipeline:
    """An ordered list of middleware executed around a shared context.

    Args:
        middleware: Optional initial middleware, outermost first.
    """

    def __init__(self, middleware: Optional[Iterable[Middleware]] = None) -> None:
        self._middleware: list[Middleware] = list(middleware or [])

    def __len__(self) -> int:
        return len(self._middleware)

    def use(self, middleware: Middleware) -> Pipeline:
        """Append *middleware* (innermost so far) and return the pipeline."""
        if not callable(middleware):
            raise InvalidUsageError(f"Middleware must be callable, got {middleware!r}")
        self._middleware.append(middleware)
        return self

    async def handle(self, ctx: RequestContext) -> RequestContext:
        """Run every middleware against *ctx* and return it.

        Raises:
            InvalidUsageError: If a middleware calls ``call_next`` twice.
        """
        chain = list(self._middleware)
        last_index = -1

        async def dispatch(index: int) -> None:
            nonlocal last_index
            if index <= last_index:
                raise InvalidUsageError("call_next() called multiple times")
            last_index = index
            if index >= len(chain):
                return
            await chain[index](ctx, lambda: dispatch(index + 1))

        await dispatch(0)
        return ctx
