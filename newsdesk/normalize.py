"""Normalisation: raw connector records → canonical ``Item``.

``normalize_item`` is a **total** function: every missing or malformed
field maps to a documented default, nothing raises.  Records that break
the connector contract (no ``url``, or ``verified`` explicitly
``False``) are dropped *before* normalisation by ``accept_record``.

Timestamps are parsed leniently (ISO-8601, ``yyyy/mm/dd hh:mm``,
``yyyy年m月d日 hh:mm``, epoch numbers) and always come out in UTC.
Wall-clock values without an offset are read in the source timezone
(``SOURCE_TZ``, Asia/Tokyo: TDnet, X and the press sites publish JST).
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable, List, Mapping
from zoneinfo import ZoneInfo

from dateutil import parser as dtparser

from .classify import classify_item
from .common_types import (
    CATEGORIES,
    CATEGORY_MARKET,
    DEFAULT_LOCALE,
    MAX_TAGS,
    UNKNOWN_TITLE,
    Item,
    RawRecord,
)

logger = logging.getLogger(__name__)

SOURCE_TZ = ZoneInfo("Asia/Tokyo")

# Shortest plausible date string is "YYYYMMDD".  dateutil happily turns
# "5" into the 5th of the current month, which is worse than unknown.
_MIN_DATE_LEN = 8

_YMD_RE = re.compile(
    r"(\d{4})\s*[/.\-年]\s*(\d{1,2})\s*[/.\-月]\s*(\d{1,2})\s*日?"
    r"(?:[\sT]*(\d{1,2})\s*[:時]\s*(\d{2}))?"
)

_NON_ISO_RE = re.compile(r"\d{4}\s*[/.年]")

_KNOWN_KEYS = frozenset({
    "id", "category", "title", "summary", "source", "url", "publishedAt",
    "tags", "locale", "verified", "thumbnail", "type", "tickers", "issuer",
})


# ── Shared helpers ──────────────────────────────────────────────

def _text(v: Any) -> str:
    """Stringify *v*; ``None`` / empty become ``""``."""
    if v is None:
        return ""
    return str(v)


def _utc(dt: datetime, default_tz: tzinfo) -> datetime | None:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_tz)
    try:
        return dt.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # year 1 / year 9999 edges cannot shift across midnight
        return None


def parse_timestamp(v: Any, default_tz: tzinfo = SOURCE_TZ) -> datetime | None:
    """Parse a loosely-typed timestamp into UTC; ``None`` when unusable.

    *default_tz* applies to wall-clock values that carry no offset.
    """
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, datetime):
        return _utc(v, default_tz)
    if isinstance(v, (int, float)):
        if v <= 0:
            return None
        # Millisecond epochs (JS Date.getTime()) are 13 digits.
        secs = v / 1000.0 if v > 1e11 else float(v)
        try:
            return datetime.fromtimestamp(secs, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(v, str):
        return None

    s = v.strip()
    if len(s) < _MIN_DATE_LEN:
        return None

    m = _YMD_RE.search(s)
    if m and _NON_ISO_RE.search(s):
        try:
            local = datetime(
                int(m.group(1)), int(m.group(2)), int(m.group(3)),
                int(m.group(4) or 0), int(m.group(5) or 0),
            )
        except ValueError:
            return None
        return _utc(local, default_tz)

    try:
        return _utc(dtparser.parse(s), default_tz)
    except (ValueError, OverflowError, TypeError):
        logger.debug("Unparseable timestamp %r", s[:80])
        return None


def _tags(v: Any) -> tuple[str, ...]:
    if not isinstance(v, (list, tuple)):
        return ()
    return tuple(_text(t) for t in v[:MAX_TAGS])


def _tickers(v: Any) -> tuple[str, ...]:
    if not isinstance(v, (list, tuple)):
        return ()
    return tuple(t.strip() for t in v if isinstance(t, str) and t.strip())


def random_id() -> str:
    """Placeholder id until the store assigns ``<prefix>-<n>``."""
    return secrets.token_hex(8)


# ── Contract gate ───────────────────────────────────────────────

def accept_record(raw: Any) -> bool:
    """Connector contract: a mapping with a ``url`` that is not unverified."""
    if not isinstance(raw, Mapping):
        return False
    if not raw.get("url"):
        return False
    return raw.get("verified") is not False


# ── Normaliser ──────────────────────────────────────────────────

def normalize_item(raw: RawRecord, default_tz: tzinfo = SOURCE_TZ) -> Item:
    """Normalise one raw record.  Never raises; ``type`` may stay empty."""
    category = raw.get("category")
    if category not in CATEGORIES:
        category = CATEGORY_MARKET

    title = _text(raw.get("title"))
    if not title:
        title = UNKNOWN_TITLE

    raw_type = raw.get("type")

    return Item(
        id=_text(raw.get("id")) or random_id(),
        category=category,
        title=title,
        url=_text(raw.get("url")),
        summary=_text(raw.get("summary")),
        source=_text(raw.get("source")),
        published_at=parse_timestamp(raw.get("publishedAt"), default_tz),
        tags=_tags(raw.get("tags")),
        locale=_text(raw.get("locale")) or DEFAULT_LOCALE,
        verified=raw.get("verified") is not False,
        thumbnail=_text(raw.get("thumbnail")),
        type=raw_type if isinstance(raw_type, str) else "",
        tickers=_tickers(raw.get("tickers")),
        extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
    )


def normalize_records(raws: Iterable[Any], default_tz: tzinfo = SOURCE_TZ) -> List[Item]:
    """Contract gate → normalise → classify, preserving input order."""
    out: List[Item] = []
    dropped = 0
    for raw in raws:
        if not accept_record(raw):
            dropped += 1
            continue
        out.append(classify_item(normalize_item(raw, default_tz)))
    if dropped:
        logger.info("Dropped %d record(s) without url or marked unverified", dropped)
    return out
