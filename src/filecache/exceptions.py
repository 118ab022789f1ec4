"""Exception hierarchy for filecache.

All exceptions inherit from :class:`FileCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`filecache.exit_codes`.
The CLI entry point in :func:`filecache.app.main` catches ``FileCacheError``
and exits with the appropriate code.

Inside the request pipeline the classes have different propagation rules:

* :class:`ConfigurationError` and :class:`StoreIOError` are fatal and always
  propagate out of the cache middleware to the surrounding server.
* :class:`MalformedCacheError` never leaves the cache middleware; it marks a
  stored entry that could not be decoded and is handled as a cache miss.

Subclass hierarchy::

    FileCacheError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigurationError  (exit 3)
    +-- StoreIOError        (exit 4)
    +-- EntryNotFoundError  (exit 5)
    +-- MalformedCacheError (exit 1)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from filecache.exit_codes import (
    EXIT_CONFIG_ERROR,
    EXIT_ENTRY_NOT_FOUND,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_STORE_ERROR,
)


class FileCacheError(Exception):
    """Base exception for all filecache errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FileCacheError):
    """Raised when the pipeline or CLI is driven incorrectly."""

    exit_code = EXIT_INVALID_USAGE


class ConfigurationError(FileCacheError):
    """Raised for unusable configuration.

    Covers invalid config files, a cache folder that does not exist, and a
    request for which none of the configured key fields yields a value.
    This is never retried: the route was set up without a cache identity.
    """

    exit_code = EXIT_CONFIG_ERROR


class StoreIOError(FileCacheError):
    """Raised when a stat, read, or write fails on a cache file.

    Attributes:
        path: The cache file involved, when known.
    """

    exit_code = EXIT_STORE_ERROR

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class EntryNotFoundError(FileCacheError):
    """Raised by the CLI when no entry is stored under the requested key."""

    exit_code = EXIT_ENTRY_NOT_FOUND


class MalformedCacheError(FileCacheError):
    """Raised when a stored entry cannot be decompressed or parsed."""
