"""Unified internal schema shared across all news sources.

Every connector (SNS, TDnet, press sites, …) hands over loosely-typed
``RawRecord`` dicts.  ``normalize.normalize_item`` is the only place that
turns one of those into a canonical ``Item``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

# Untrusted connector payload: arbitrary keys, arbitrary value shapes.
RawRecord = Dict[str, Any]

# ── Enumerations ────────────────────────────────────────────────

CATEGORY_MARKET = "market"
CATEGORY_COMPANY = "company"
CATEGORY_SNS = "sns"
CATEGORIES: tuple[str, ...] = (CATEGORY_MARKET, CATEGORY_COMPANY, CATEGORY_SNS)

ISSUER_WITH = "withIssuer"
ISSUER_NONE = "noIssuer"
ISSUERS: tuple[str, ...] = (ISSUER_WITH, ISSUER_NONE)

DEFAULT_LOCALE = "ja"
UNKNOWN_TITLE = "(タイトル不明)"
MAX_TAGS = 8


@dataclass(frozen=True)
class Item:
    """Canonical news / disclosure / social-post record.

    Frozen: once merged into the store an item is never edited in place.
    ``published_at`` is ``None`` when the source gave no usable time
    ("unknown", not "now").
    """

    id: str
    category: str
    title: str
    url: str
    summary: str = ""
    source: str = ""
    published_at: datetime | None = None
    tags: tuple[str, ...] = ()
    locale: str = DEFAULT_LOCALE
    verified: bool = True
    thumbnail: str = ""
    type: str = ""
    tickers: tuple[str, ...] = ()
    issuer: str = ISSUER_NONE
    extra: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    # ── Convenience ─────────────────────────────────────────────

    @property
    def published_ts(self) -> float:
        """Epoch seconds, ``0.0`` for unknown (sorts as earliest)."""
        if self.published_at is None:
            return 0.0
        return self.published_at.timestamp()

    def to_dict(self) -> dict[str, Any]:
        """Serialise using the persisted JSON field names."""
        d: dict[str, Any] = {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "summary": self.summary,
            "source": self.source,
            "url": self.url,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "tags": list(self.tags),
            "locale": self.locale,
            "verified": self.verified,
            "thumbnail": self.thumbnail,
            "type": self.type,
            "tickers": list(self.tickers),
            "issuer": self.issuer,
        }
        # Unknown keys from older files survive a load → rewrite cycle.
        for k, v in self.extra.items():
            d.setdefault(k, v)
        return d
