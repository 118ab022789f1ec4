"""filecache -- Disk-backed HTTP response caching for async request pipelines.

This package sits in an async middleware chain, derives a cache key from
request-scoped fields, and either serves a previously stored response body
(optionally gzip-compressed on disk) or lets the request continue and stores
the freshly produced body for reuse.

Typical usage::

    from filecache import CacheConfig, FileCache, Pipeline, PipelineApp

    pipeline = Pipeline()
    pipeline.use(set_cache_name)
    pipeline.use(FileCache(CacheConfig(folder="/var/cache/api", ttl_seconds=300)))
    pipeline.use(expensive_handler)
    app = PipelineApp(pipeline)  # mount in any ASGI server

Modules:
    app: Typer CLI for inspecting cache folders.
    models: Pydantic models (:class:`CacheConfig`, :class:`EntryInfo`).
    config: Configuration loading with precedence resolution.
    context: The request-scoped :class:`RequestContext`.
    pipeline: Koa-style async middleware chain.
    asgi: ASGI adapter built on Starlette.
    compress: Optional gzip stage for outgoing responses.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes used by the CLI.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"

from filecache.asgi import PipelineApp
from filecache.cache import FileCache
from filecache.context import RequestContext
from filecache.models import CacheConfig, EntryInfo
from filecache.pipeline import Pipeline

__all__ = [
    "CacheConfig",
    "EntryInfo",
    "FileCache",
    "Pipeline",
    "PipelineApp",
    "RequestContext",
    "__version__",
]
