"""CLI sub-commands for filecache.

* :mod:`~filecache.commands.entries` -- ``inspect`` and ``show``.
* :mod:`~filecache.commands.config` -- ``config show`` and ``config init``.
"""
