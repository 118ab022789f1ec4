"""Request-scoped context threaded through the middleware pipeline.

:class:`RequestContext` plays the role the surrounding web framework's
request/response object plays in other stacks: every middleware receives the
same instance, reads the request side, and progressively fills in the
response side. The cache middleware only relies on the attributes documented
below.

The module also holds the body helpers shared by the cache writer, the
compression stage, and the ASGI adapter.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from filecache.http import preferred_encoding


@dataclass
class RequestContext:
    """Mutable per-request state shared by every middleware.

    Request side:

    * ``method``, ``path``, ``query`` -- the request target.
    * ``headers`` -- request headers with lower-cased names.
    * ``state`` -- free-form request-scoped values. Cache key fields are
      looked up here first (e.g. ``state["cache_name"]``).
    * ``caching`` -- tri-state override. ``None`` means unset; ``False`` set
      upstream of the cache skips reading, set downstream skips writing.

    Response side:

    * ``status`` -- ``None`` until something sets it.
    * ``response_headers`` -- lower-cased names, see :meth:`set_header`.
    * ``body`` -- ``None``, ``bytes``, ``str``, an async iterator of
      ``bytes``, or any JSON-serialisable value.
    * ``content_type`` -- the response ``Content-Type``.
    * ``compress`` -- ``False`` forbids later compression stages from
      touching the body (it is already encoded).
    """

    method: str = "GET"
    path: str = "/"
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)
    caching: Optional[bool] = None
    status: Optional[int] = None
    response_headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    content_type: Optional[str] = None
    compress: Optional[bool] = None

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}
        self.response_headers = {k.lower(): v for k, v in self.response_headers.items()}

    # ------------------------------------------------------------------ #
    # Request helpers
    # ------------------------------------------------------------------ #

    def get_header(self, name: str) -> str:
        """Return a request header value, or ``""`` when absent."""
        return self.headers.get(name.lower(), "")

    def accepts_encodings(self, *encodings: str) -> Optional[str]:
        """Return the client's preferred coding among *encodings*."""
        return preferred_encoding(self.headers.get("accept-encoding"), encodings)

    # ------------------------------------------------------------------ #
    # Response helpers
    # ------------------------------------------------------------------ #

    def set_header(self, name: str, value: str) -> None:
        self.response_headers[name.lower()] = value

    def get_response_header(self, name: str) -> Optional[str]:
        return self.response_headers.get(name.lower())

    def vary(self, header: str) -> None:
        """Append *header* to ``Vary`` unless it is already listed."""
        current = self.response_headers.get("vary", "")
        listed = [h.strip() for h in current.split(",") if h.strip()]
        if "*" in listed or header.lower() in (h.lower() for h in listed):
            return
        listed.append(header)
        self.response_headers["vary"] = ", ".join(listed)

    @property
    def effective_status(self) -> int:
        """The status to send: explicit, else 200 with a body, else 404."""
        if self.status is not None:
            return self.status
        return 404 if self.body is None else 200


# ---------------------------------------------------------------------- #
# Body helpers
# ---------------------------------------------------------------------- #


def is_stream(body: Any) -> bool:
    """Return ``True`` for async byte iterators (streamed bodies)."""
    return hasattr(body, "__aiter__")


def is_empty_body(body: Any) -> bool:
    """Return ``True`` for bodies that carry nothing worth storing or sending."""
    if body is None:
        return True
    if isinstance(body, (bytes, bytearray, str)):
        return len(body) == 0
    return False


async def collect_body(body: AsyncIterator[bytes]) -> bytes:
    """Drain an async byte iterator into memory."""
    chunks = [chunk async for chunk in body]
    return b"".join(chunks)


def serialize_body(body: Any, json_spaces: Optional[int] = None) -> bytes:
    """Render a non-stream body as bytes.

    ``bytes`` pass through, ``str`` is UTF-8 encoded, anything else is
    serialised as JSON with *json_spaces* indentation.
    """
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    return json.dumps(body, indent=json_spaces, ensure_ascii=False).encode("utf-8")


def guess_content_type(body: Any) -> str:
    """Default ``Content-Type`` for a body whose type was never set."""
    if isinstance(body, str):
        return "text/plain; charset=utf-8"
    if isinstance(body, (bytes, bytearray)) or is_stream(body):
        return "application/octet-stream"
    return "application/json"
