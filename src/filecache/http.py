"""Small HTTP header helpers used by the cache and the compression stage.

* ``Accept-Encoding`` negotiation with q-values (:func:`preferred_encoding`).
* RFC 7231 date formatting and parsing (:func:`http_date`,
  :func:`parse_http_date`).
"""

from __future__ import annotations

from email.utils import formatdate, parsedate_to_datetime
from typing import Optional, Sequence

IDENTITY = "identity"


def parse_accept_encoding(header: str) -> dict[str, float]:
    """Parse an ``Accept-Encoding`` header into ``{coding: quality}``.

    Malformed quality values are treated as ``1``. Later duplicates win.

    Example::

        >>> parse_accept_encoding("gzip;q=0.8, identity;q=0")
        {'gzip': 0.8, 'identity': 0.0}
    """
    result: dict[str, float] = {}
    for part in header.split(","):
        token, _, params = part.strip().partition(";")
        coding = token.strip().lower()
        if not coding:
            continue
        quality = 1.0
        for param in params.split(";"):
            name, _, value = param.strip().partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = min(max(float(value), 0.0), 1.0)
                except ValueError:
                    quality = 1.0
        result[coding] = quality
    return result


def _quality(coding: str, accepted: dict[str, float]) -> float:
    if coding in accepted:
        return accepted[coding]
    if "*" in accepted:
        return accepted["*"]
    if coding == IDENTITY:
        # identity stays acceptable unless explicitly refused
        return min((q for q in accepted.values() if q > 0), default=1.0)
    return 0.0


def preferred_encoding(header: Optional[str], supported: Sequence[str]) -> Optional[str]:
    """Pick the best of *supported* for the client's ``Accept-Encoding``.

    A missing or empty header only accepts ``identity``. Ties are broken by
    the order of *supported*.

    Returns:
        The chosen coding, or ``None`` when the client refuses all of them.
    """
    if not header or not header.strip():
        return IDENTITY if IDENTITY in supported else None

    accepted = parse_accept_encoding(header)
    best: Optional[str] = None
    best_quality = 0.0
    for coding in supported:
        quality = _quality(coding, accepted)
        if quality > best_quality:
            best, best_quality = coding, quality
    return best


def accepts_encoding(header: Optional[str], coding: str) -> bool:
    """Return ``True`` when *coding* has a non-zero quality for the client."""
    if not header or not header.strip():
        return coding == IDENTITY
    return _quality(coding, parse_accept_encoding(header)) > 0


def http_date(timestamp: float) -> str:
    """Format epoch seconds as an IMF-fixdate (``Sun, 06 Nov 1994 08:49:37 GMT``)."""
    return formatdate(timestamp, usegmt=True)


def parse_http_date(value: Optional[str]) -> Optional[float]:
    """Parse an HTTP date header into epoch seconds, or ``None`` if unusable."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return parsed.timestamp()
