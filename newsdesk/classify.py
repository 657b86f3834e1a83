"""Headline classifier: ordered keyword rules → item ``type`` + ``issuer``.

The rule table is evaluated top-to-bottom and the first match wins.
Order matters because the vocabularies overlap (e.g. 四半期 appears in
both results coverage and quarterly filings); earnings is checked
before disclosure, disclosure before fx, and so on.  Items that match
nothing fall back to ``companyNews`` / ``marketNews``.

Explicit ``type`` values from a connector always win over inference.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass

from .common_types import CATEGORY_COMPANY, CATEGORY_MARKET, ISSUER_NONE, ISSUER_WITH, Item

# Short ASCII terms (ir, fx, eps, …) must not match inside longer words
# such as "first" or "steps", but must still match next to kana/kanji.
_A = r"(?<![a-z])"
_Z = r"(?![a-z])"

TYPE_EARNINGS = "earnings"
TYPE_DISCLOSURE = "disclosure"
TYPE_FX = "fx"
TYPE_MACRO = "macro"
TYPE_EQUITY_INDEX = "equityIndex"
TYPE_COMPANY_NEWS = "companyNews"
TYPE_MARKET_NEWS = "marketNews"


@dataclass(frozen=True)
class TypeRule:
    type: str
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return bool(self.pattern.search(text))


# ── Type rules (ordered by priority) ────────────────────────────

TYPE_RULES: list[TypeRule] = [
    TypeRule(TYPE_EARNINGS, re.compile(
        rf"決算|業績|通期|四半期|売上|ガイダンス|{_A}eps{_Z}|earnings|results|revenue|"
        rf"guidance|quarterly|full[\s\-]year"
    )),
    TypeRule(TYPE_DISCLOSURE, re.compile(
        rf"適時開示|開示|有報|有価証券報告書|短信|{_A}ir{_Z}|filing|annual\s+report|"
        rf"timely\s+disclosure|{_A}(8|10)-[kq]{_Z}"
    )),
    TypeRule(TYPE_FX, re.compile(
        rf"為替|ドル円|円相場|usd/jpy|eur/jpy|{_A}fx{_Z}|forex|foreign\s+exchange|currency"
    )),
    TypeRule(TYPE_MACRO, re.compile(
        rf"{_A}(cpi|pmi|gdp|fomc|boj){_Z}|景気|マクロ|失業|物価|政策|日銀|雇用|"
        rf"employment|payrolls?|central\s+bank"
    )),
    TypeRule(TYPE_EQUITY_INDEX, re.compile(
        rf"日経平均|{_A}topix{_Z}|sp500|s&p\s*500|nikkei\s*225|指数|先物|オプション|"
        rf"futures|options"
    )),
]


def issuer_for(category: str) -> str:
    """Company items are attributable to an issuer; everything else is not."""
    return ISSUER_WITH if category == CATEGORY_COMPANY else ISSUER_NONE


def classification_text(item: Item) -> str:
    return f"{item.title} {item.summary} {' '.join(item.tags)}".lower()


def infer_type(item: Item, rules: list[TypeRule] | None = None) -> str:
    """First matching rule wins; fallback depends on category."""
    text = classification_text(item)
    for rule in TYPE_RULES if rules is None else rules:
        if rule.matches(text):
            return rule.type
    return TYPE_COMPANY_NEWS if item.category == CATEGORY_COMPANY else TYPE_MARKET_NEWS


def classify_item(item: Item) -> Item:
    """Return *item* with ``type`` and ``issuer`` populated.

    Idempotent: an item whose ``type`` is already set keeps it, so
    classifying twice yields the same result.
    """
    item_type = item.type or infer_type(item)
    issuer = issuer_for(item.category)
    if item_type == item.type and issuer == item.issuer:
        return item
    return dataclasses.replace(item, type=item_type, issuer=issuer)


# ── Press-site heuristics ───────────────────────────────────────
# Press pages carry no category/type of their own; these guesses run
# on the link text + URL before the record reaches the normaliser.

_COMPANY_EVENT_RE = re.compile(
    r"決算|業績|上方修正|下方修正|人事|m&a|買収|合併|子会社|提携|出資|上場"
)

PRESS_TYPE_RULES: list[TypeRule] = [
    TypeRule(TYPE_MACRO, re.compile(
        rf"{_A}(cpi|pmi|gdp|fomc){_Z}|景気|マクロ|統計|政策|日銀|利下げ|利上げ"
    )),
    TypeRule(TYPE_DISCLOSURE, re.compile(rf"決算|業績|通期|四半期|開示|{_A}ir{_Z}|短信|有報")),
    TypeRule(TYPE_FX, re.compile(rf"為替|ドル円|usd/jpy|{_A}fx{_Z}")),
    TypeRule(TYPE_EQUITY_INDEX, re.compile(r"指数|日経平均|sp500|topix|先物|オプション")),
]


def guess_category(title: str, url: str) -> str:
    text = f"{title} {url}".lower()
    if _COMPANY_EVENT_RE.search(text):
        return CATEGORY_COMPANY
    return CATEGORY_MARKET


def guess_press_type(title: str, url: str) -> str:
    """Press-specific type guess; ``""`` leaves inference to ``classify_item``."""
    text = f"{title} {url}".lower()
    for rule in PRESS_TYPE_RULES:
        if rule.matches(text):
            return rule.type
    return ""
