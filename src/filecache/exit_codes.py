"""Numeric process exit codes for the ``filecache`` CLI.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~filecache.exceptions.FileCacheError` subclass.
Shell scripts can inspect the exit code to tell a missing entry apart from a
broken configuration without parsing stderr.

Example::

    $ filecache show users.list
    $ echo $?
    5   # EXIT_ENTRY_NOT_FOUND -- nothing stored under that key
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""The cache configuration is unusable (bad file, missing folder, no key fields)."""

EXIT_STORE_ERROR = 4
"""Reading or writing a cache file failed."""

EXIT_ENTRY_NOT_FOUND = 5
"""No cache entry exists for the requested key."""
