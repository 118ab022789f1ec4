"""Canonical Pydantic models shared across all filecache modules.

**Configuration** -- :class:`CacheConfig` is supplied once per
:class:`~filecache.cache.FileCache` instance and stays fixed for its
lifetime. It can be built in code or loaded from ``filecache.json`` by
:func:`~filecache.config.resolve_config`.

**Store metadata** -- :class:`EntryInfo` is what the store inspector
reports for a key: which file variant exists, when it was last written, and
whether it is still fresh.

All models use Pydantic v2.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

GZIP_SUFFIX = ".gz"
"""File extension of the compressed variant of an entry."""

_MEDIA_TYPES = {
    "json": "application/json",
    "text": "text/plain; charset=utf-8",
    "html": "text/html; charset=utf-8",
    "xml": "application/xml",
    "bin": "application/octet-stream",
}


# --- Cache Config ---


class CacheConfig(BaseModel):
    """Settings for one cache middleware instance.

    Example::

        CacheConfig(
            folder="/var/cache/reports",
            ttl_seconds=300,
            key_fields=["tenant", "report"],
            key_separator="-",
            gzip_threshold=4096,
        )
    """

    model_config = ConfigDict(extra="forbid")

    ttl_seconds: float = Field(
        default=60,
        description="Seconds an entry stays fresh after it was written. "
        "Zero or negative values make every entry expired.",
    )
    key_fields: list[str] = Field(
        default_factory=lambda: ["cache_name"],
        min_length=1,
        description="Request-context fields concatenated, in order, to form the key",
    )
    key_separator: str = Field(
        default=".", description="String inserted between key field values"
    )
    folder: Path = Field(
        default=Path("."), description="Existing directory that holds the cache files"
    )
    gzip: bool = Field(default=True, description="Store and serve gzip-compressed entries")
    gzip_threshold: int = Field(
        default=1024,
        ge=0,
        description="Serialized size in bytes above which entries are compressed",
    )
    delegate: bool = Field(
        default=False,
        description="Always continue downstream with the cached value exposed "
        "instead of serving the file directly",
    )
    type: str = Field(
        default="json",
        description="Payload type: json, text, html, xml, bin or a full MIME type",
    )
    json_spaces: Optional[int] = Field(
        default=2, ge=0, description="Indentation used when serializing JSON payloads"
    )
    chunk_size: int = Field(
        default=64 * 1024, gt=0, description="Read size when streaming entries from disk"
    )

    @field_validator("key_fields")
    @classmethod
    def _no_blank_fields(cls, value: list[str]) -> list[str]:
        if any(not name.strip() for name in value):
            raise ValueError("key_fields must not contain blank names")
        return value

    @property
    def media_type(self) -> str:
        """The ``Content-Type`` sent for entries served straight from disk."""
        if "/" in self.type:
            return self.type
        return _MEDIA_TYPES.get(self.type, "application/octet-stream")

    @property
    def is_structured(self) -> bool:
        """Whether payloads are JSON and must be (de)serialized."""
        mime = self.media_type.split(";", 1)[0].strip().lower()
        return mime == "application/json" or mime.endswith("+json")

    def entry_path(self, key: str, compressed: bool = False) -> Path:
        """Return the on-disk path of *key*'s plain or compressed variant."""
        return self.folder / (key + GZIP_SUFFIX if compressed else key)


# --- Store metadata ---


class EntryInfo(BaseModel):
    """Result of probing the store for one key.

    Attributes:
        key: The derived cache key.
        path: The variant that exists, or the plain path when none does.
        exists: Whether any variant exists.
        compressed: Whether ``path`` is the gzip variant.
        last_modified: File modification time (epoch seconds), if it exists.
        ttl_seconds: The TTL the freshness decision was made with.
        expired: ``True`` when missing or when ``now > last_modified + ttl``.
    """

    key: str
    path: Path
    exists: bool = False
    compressed: bool = False
    last_modified: Optional[float] = None
    ttl_seconds: float = 0
    expired: bool = True

    @property
    def expires(self) -> Optional[float]:
        """Epoch seconds after which the entry is no longer fresh."""
        if self.last_modified is None:
            return None
        return self.last_modified + self.ttl_seconds
