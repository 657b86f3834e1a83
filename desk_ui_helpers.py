"""Pure helper functions for streamlit_newsdesk.py.

Every function here is free of Streamlit / session-state side-effects
and can be tested in regular pytest without launching a Streamlit app.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from newsdesk.common_types import CATEGORY_COMPANY, CATEGORY_MARKET, ISSUER_WITH, Item

JST = ZoneInfo("Asia/Tokyo")

# ── Label maps ──────────────────────────────────────────────────

CATEGORY_LABELS: dict[str, str] = {
    CATEGORY_MARKET: "市場ニュース",
    CATEGORY_COMPANY: "企業ニュース",
}
SNS_LABEL = "SNS投稿"

NAV_CATEGORIES: list[tuple[str, str]] = [
    ("all", "すべて"),
    ("market", "市場ニュース"),
    ("company", "企業ニュース"),
    ("sns", "SNS投稿"),
]

SORT_LABELS: dict[str, str] = {
    "date_desc": "新しい順",
    "date_asc": "古い順",
    "title_asc": "タイトル昇順",
    "title_desc": "タイトル降順",
}


def category_label(category: str) -> str:
    return CATEGORY_LABELS.get(category, SNS_LABEL)


def issuer_label(issuer: str) -> str:
    return "企業固有" if issuer == ISSUER_WITH else "市場/マクロ"


def card_badges(item: Item, max_tags: int = 3) -> list[str]:
    """Badge texts in display order: category, type, issuer, verified, tags."""
    badges = [category_label(item.category)]
    if item.type:
        badges.append(item.type)
    if item.issuer:
        badges.append(issuer_label(item.issuer))
    if item.verified:
        badges.append("検証済み")
    badges.extend(item.tags[:max_tags])
    return badges


def format_published(dt: datetime | None) -> str:
    """``YYYY/MM/DD HH:MM`` in Tokyo time, ``""`` when unknown."""
    if dt is None:
        return ""
    return dt.astimezone(JST).strftime("%Y/%m/%d %H:%M")


def format_tickers(item: Item, limit: int = 3) -> str:
    if not item.tickers:
        return ""
    return "Ticker: " + ", ".join(item.tickers[:limit])


def score_stars(score: int) -> str:
    """Five-slot star gauge, e.g. ``★★★☆☆``."""
    filled = max(0, min(5, int(score)))
    return "★" * filled + "☆" * (5 - filled)


_LINK_SCHEMES = ("http://", "https://")


def safe_markdown_text(text: str) -> str:
    """Headlines like ``[速報] ...`` must not turn into markdown links."""
    return text.replace("[", "\\[").replace("]", "\\]")


def safe_url(url: str) -> str:
    """Article link usable inside ``[label](url)``, or ``""`` if not http(s)."""
    link = (url or "").strip()
    if not link.lower().startswith(_LINK_SCHEMES):
        return ""
    return link.replace("(", "%28").replace(")", "%29")
