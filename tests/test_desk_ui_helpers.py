"""Tests for desk_ui_helpers — pure display helpers for the Streamlit desk."""

from __future__ import annotations

from datetime import datetime, timezone

from desk_ui_helpers import (
    card_badges,
    category_label,
    format_published,
    format_tickers,
    issuer_label,
    safe_markdown_text,
    safe_url,
    score_stars,
)
from newsdesk.common_types import Item


def _item(**kw) -> Item:
    base = dict(id="news-1", category="market", title="t", url="https://n.jp/1")
    base.update(kw)
    return Item(**base)


class TestLabels:

    def test_category_label(self):
        assert category_label("market") == "市場ニュース"
        assert category_label("company") == "企業ニュース"
        assert category_label("sns") == "SNS投稿"

    def test_issuer_label(self):
        assert issuer_label("withIssuer") == "企業固有"
        assert issuer_label("noIssuer") == "市場/マクロ"

    def test_card_badges_order_and_tag_cap(self):
        it = _item(category="company", type="earnings", issuer="withIssuer", tags=("a", "b", "c", "d"))
        assert card_badges(it) == ["企業ニュース", "earnings", "企業固有", "検証済み", "a", "b", "c"]

    def test_unverified_has_no_verified_badge(self):
        assert "検証済み" not in card_badges(_item(verified=False))


class TestFormatting:

    def test_published_in_tokyo_time(self):
        assert format_published(datetime(2025, 5, 31, 23, 30, tzinfo=timezone.utc)) == "2025/06/01 08:30"

    def test_unknown_published_is_blank(self):
        assert format_published(None) == ""

    def test_tickers(self):
        assert format_tickers(_item()) == ""
        assert format_tickers(_item(tickers=("7203.T", "6758.T"))) == "Ticker: 7203.T, 6758.T"

    def test_score_stars(self):
        assert score_stars(3) == "★★★☆☆"
        assert score_stars(5) == "★★★★★"
        assert score_stars(9) == "★★★★★"
        assert score_stars(0) == "☆☆☆☆☆"


class TestSafety:

    def test_markdown_brackets_escaped(self):
        assert safe_markdown_text("[速報] 日経") == "\\[速報\\] 日経"

    def test_only_http_schemes(self):
        assert safe_url("javascript:alert(1)") == ""
        assert safe_url("data:text/html,x") == ""
        assert safe_url("") == ""
        assert safe_url(" https://n.jp/a(1) ") == "https://n.jp/a%281%29"
        assert safe_url("HTTP://N.JP/x") == "HTTP://N.JP/x"
