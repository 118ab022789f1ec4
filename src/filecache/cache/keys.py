"""Cache key derivation from request-scoped fields."""

from __future__ import annotations

import os
from typing import Any

from filecache.context import RequestContext
from filecache.exceptions import ConfigurationError
from filecache.models import CacheConfig

_MISSING = object()


def _field_value(ctx: RequestContext, name: str) -> str:
    value: Any = ctx.state.get(name, _MISSING)
    if value is _MISSING:
        value = getattr(ctx, name, None)
    if value is None:
        return ""
    return str(value)


def resolve_key(ctx: RequestContext, config: CacheConfig) -> str:
    """Build the cache key for *ctx* from ``config.key_fields``.

    Values are taken from ``ctx.state`` first and fall back to context
    attributes of the same name (``method``, ``path``...). They are joined
    with ``config.key_separator`` in configured order.

    Raises:
        ConfigurationError: If no field yields a value, or the key is not a
            plain file name.
    """
    parts = [_field_value(ctx, name) for name in config.key_fields]
    if not any(parts):
        raise ConfigurationError(
            "No cache key could be derived from fields "
            f"{config.key_fields!r}; set one of them on the request context"
        )

    key = config.key_separator.join(parts)
    if key in (".", "..") or "/" in key or (os.altsep and os.altsep in key) or os.sep in key:
        raise ConfigurationError(f"Cache key {key!r} is not a valid file name")
    return key
