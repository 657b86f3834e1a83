"""Source profiles: per-source id namespace, defaults and admission policy.

Three profiles mirror the three upstream feeds:

  ``sns``    X posts           → ids ``sns-N``,     category ``sns``
  ``tdnet``  TDnet disclosures → ids ``company-N``, category ``company``,
                                 type ``disclosure``, ticker ``<code>.T``
  ``press``  press sites       → ids ``news-N``,    category/type guessed
                                 from link text, 24h cutoff, dated only

``shape_record`` fills source defaults into a raw record *before* the
normaliser; ``admit`` applies the source's admission policy to the
normalised items.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, List, Optional
from urllib.parse import urljoin

from .classify import TYPE_DISCLOSURE, TYPE_EARNINGS, guess_category, guess_press_type
from .common_types import (
    CATEGORY_COMPANY,
    CATEGORY_SNS,
    ISSUER_WITH,
    Item,
    RawRecord,
)

logger = logging.getLogger(__name__)

_FINANCE_TERMS_RE = re.compile(
    r"決算|業績|株価|為替|日経|ドル円|日銀|政策|金利|投資|経済|gdp|cpi|上場|下落|上昇|"
    r"急落|急伸|銀行|企業|市場|マーケット|トレーディング|アナリスト|予想|サプライズ|速報|"
    r"緊急|警告|注意"
)
_FINANCE_ACCOUNT_RE = re.compile(
    r"@(nikkei|reuters|bloomberg|gaitame|quick|nhk_news|monex|rakuten|sbi|kabutan|minkabu|yol_economy)",
    re.I,
)
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class SourceProfile:
    name: str
    prefix: str
    category: Optional[str]  # None → guessed per record
    title_len: int
    default_type: str = ""
    require_timestamp: bool = False
    recency_cutoff: bool = False


PROFILES: dict[str, SourceProfile] = {
    "sns": SourceProfile("sns", "sns", CATEGORY_SNS, title_len=100),
    "tdnet": SourceProfile(
        "tdnet", "company", CATEGORY_COMPANY, title_len=120, default_type=TYPE_DISCLOSURE,
    ),
    "press": SourceProfile(
        "press", "news", None, title_len=140, require_timestamp=True, recency_cutoff=True,
    ),
}


def get_profile(name: str) -> SourceProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValueError(f"Unknown source {name!r} (expected one of {sorted(PROFILES)})") from None


# ── Shaping helpers ─────────────────────────────────────────────

def clip(text: Any, length: int) -> str:
    """Collapse whitespace and cut to *length* chars with a trailing ellipsis."""
    t = _WS_RE.sub(" ", str(text or "")).strip()
    return t[: length - 1] + "…" if len(t) > length else t


def to_abs(base: str, href: str) -> str:
    """Resolve *href* against *base*; absolute http(s) links pass through."""
    if re.match(r"^https?://", href or "", re.I):
        return href
    try:
        return urljoin(base, href)
    except ValueError:
        return href


def is_finance_related(text: str) -> bool:
    return bool(_FINANCE_TERMS_RE.search((text or "").lower()))


def is_finance_account(handle: str) -> bool:
    return bool(_FINANCE_ACCOUNT_RE.search(handle or ""))


def shape_record(profile: SourceProfile, raw: RawRecord, target: str = "") -> RawRecord:
    """Return a copy of *raw* with this source's defaults filled in."""
    rec = dict(raw)
    # Connector bookkeeping, not part of the persisted record.
    rec.pop("target", None)

    if profile.name == "sns":
        text = rec.pop("text", None) or rec.get("title") or ""
        if not rec.get("title") and text:
            rec["title"] = text
        if not rec.get("summary") and text:
            rec["summary"] = clip(text, 200)
        if not rec.get("source") and target:
            rec["source"] = f"X: {target}"
    elif profile.name == "tdnet":
        if not rec.get("source") and target:
            rec["source"] = f"TDnet {target}"
        if not rec.get("tickers") and target:
            rec["tickers"] = [f"{target}.T"]
    elif profile.name == "press":
        title = str(rec.get("title") or "")
        url = str(rec.get("url") or "")
        if rec.get("category") is None:
            rec["category"] = guess_category(title, url)
        if not rec.get("type"):
            guessed = guess_press_type(title, url)
            if guessed:
                rec["type"] = guessed
        if not rec.get("source") and target:
            rec["source"] = target

    if profile.category is not None:
        rec["category"] = profile.category
    if profile.default_type and not rec.get("type"):
        rec["type"] = profile.default_type
    if rec.get("title"):
        rec["title"] = clip(rec["title"], profile.title_len)
    return rec


# ── Admission policy ────────────────────────────────────────────

def admit(
    profile: SourceProfile,
    items: List[Item],
    now: datetime,
    recency: timedelta,
    company_priority: bool = False,
) -> List[Item]:
    """Apply the source's admission rules to normalised items."""
    out = items

    if profile.name == "sns":
        out = [
            it for it in out
            if is_finance_related(f"{it.title} {it.summary}") or is_finance_account(it.source)
        ]

    if profile.require_timestamp:
        out = [it for it in out if it.published_at is not None]

    if profile.recency_cutoff:
        out = [
            it for it in out
            if it.published_at is not None and timedelta(0) <= now - it.published_at <= recency
        ]

    if company_priority:
        out = [
            it for it in out
            if it.issuer == ISSUER_WITH and it.type in (TYPE_EARNINGS, TYPE_DISCLOSURE)
        ]

    dropped = len(items) - len(out)
    if dropped:
        logger.info("%s: %d item(s) rejected by source policy", profile.name, dropped)
    return out
