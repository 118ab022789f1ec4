"""Disk-backed response caching for filecache pipelines.

This package provides :class:`FileCache`, a pipeline middleware that stores
downstream response bodies as plain (or gzip-compressed) files named after a
key derived from request-scoped fields, and serves them back while they are
fresh.

Building blocks, leaves first:

* :mod:`~filecache.cache.keys` -- key derivation.
* :mod:`~filecache.cache.store` -- existence, compression and freshness
  probes, plus reading and decoding entries.
* :mod:`~filecache.cache.negotiation` -- conditional requests and
  content-encoding for fresh entries.
* :mod:`~filecache.cache.writer` -- compression policy and writes.
* :mod:`~filecache.cache.middleware` -- the per-request orchestration.
"""

from filecache.cache.keys import resolve_key
from filecache.cache.middleware import FileCache
from filecache.cache.negotiation import Decision, negotiate
from filecache.cache.store import inspect_entry, read_entry
from filecache.cache.writer import save_entry

__all__ = [
    "Decision",
    "FileCache",
    "inspect_entry",
    "negotiate",
    "read_entry",
    "resolve_key",
    "save_entry",
]
