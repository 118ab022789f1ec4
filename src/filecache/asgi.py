"""ASGI adapter: run a :class:`~filecache.pipeline.Pipeline` behind any ASGI server.

:class:`PipelineApp` turns each HTTP request into a
:class:`~filecache.context.RequestContext`, runs the pipeline, and renders the
context with Starlette responses. Streamed bodies (cache files read straight
from disk) become a :class:`~starlette.responses.StreamingResponse`.

Example::

    app = PipelineApp(Pipeline().use(FileCache(config)).use(handler))
    # uvicorn mymodule:app
"""

from __future__ import annotations

import json
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response, StreamingResponse
from starlette.types import Receive, Scope, Send

from filecache.context import RequestContext, guess_content_type, is_stream
from filecache.pipeline import Pipeline

_BODILESS_STATUSES = (204, 304)


def context_from_request(request: Request) -> RequestContext:
    """Build the pipeline context for an incoming Starlette request."""
    return RequestContext(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        headers=dict(request.headers),
    )


def render_response(ctx: RequestContext) -> Response:
    """Render the response side of *ctx* as a Starlette response."""
    status = ctx.effective_status
    headers = dict(ctx.response_headers)
    body = ctx.body

    if body is None or status in _BODILESS_STATUSES:
        headers.pop("content-type", None)
        return Response(content=b"", status_code=status, headers=headers)

    content_type: Optional[str] = ctx.content_type or guess_content_type(body)
    headers["content-type"] = content_type

    if is_stream(body):
        return StreamingResponse(body, status_code=status, headers=headers)
    if isinstance(body, (bytes, bytearray)):
        content = bytes(body)
    elif isinstance(body, str):
        content = body.encode("utf-8")
    else:
        content = json.dumps(body, ensure_ascii=False).encode("utf-8")
    return Response(content=content, status_code=status, headers=headers)


class PipelineApp:
    """ASGI application running a pipeline for every HTTP request.

    Lifespan events are acknowledged without doing anything; other
    non-HTTP scopes are rejected.
    """

    def __init__(self, pipeline: Pipeline) -> None:
        self.pipeline = pipeline

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            raise RuntimeError(f"Unsupported ASGI scope type: {scope['type']}")

        request = Request(scope, receive)
        ctx = context_from_request(request)
        await self.pipeline.handle(ctx)
        response = render_response(ctx)
        await response(scope, receive, send)

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return
