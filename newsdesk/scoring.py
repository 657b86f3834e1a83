"""Display-time importance score (1–5).

The score is derived on every query and never persisted.  Bonuses are
independent and stack; the total is clamped to ``[MIN_SCORE, MAX_SCORE]``.

Note the deliberate double count for company earnings/disclosure items:
they receive both the company-disclosure bonus (+2) and the generic
earnings/disclosure bonus (+1).
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

from .classify import (
    TYPE_DISCLOSURE,
    TYPE_EARNINGS,
    TYPE_EQUITY_INDEX,
    TYPE_FX,
    TYPE_MACRO,
)
from .common_types import CATEGORY_COMPANY, CATEGORY_MARKET, Item

MIN_SCORE = 1
MAX_SCORE = 5

FRESH_WINDOW = timedelta(hours=24)

_FILING_TYPES = frozenset({TYPE_EARNINGS, TYPE_DISCLOSURE})
_MARKET_WIDE_TYPES = frozenset({TYPE_MACRO, TYPE_FX, TYPE_EQUITY_INDEX})

URGENCY_RE = re.compile(
    r"急落|急騰|急伸|急反発|緊急|速報|利下げ|利上げ|サプライズ|上方修正|下方修正|"
    r"breaking|surprise|emergency|rate\s+(cut|hike)|plunge|soar|profit\s+warning",
)


def is_fresh(item: Item, now: datetime, window: timedelta = FRESH_WINDOW) -> bool:
    """True when ``published_at`` is known and within *window* before *now*."""
    if item.published_at is None:
        return False
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    age = now - item.published_at
    return timedelta(0) <= age <= window


def importance_score(item: Item, now: datetime) -> int:
    """Heuristic relevance score, always an int in ``[1, 5]``."""
    score = MIN_SCORE

    if item.category == CATEGORY_MARKET:
        score += 1
    if item.category == CATEGORY_COMPANY and item.type in _FILING_TYPES:
        score += 2
    if item.type in _MARKET_WIDE_TYPES:
        score += 2
    if item.type in _FILING_TYPES:
        score += 1
    if item.tickers:
        score += 1
    if is_fresh(item, now):
        score += 1

    urgency_text = f"{item.title} {' '.join(item.tags)}".lower()
    if URGENCY_RE.search(urgency_text):
        score += 1

    return max(MIN_SCORE, min(MAX_SCORE, score))
