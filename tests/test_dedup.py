"""Tests for newsdesk.dedup — URL key, title key, order stability."""

from __future__ import annotations

from newsdesk.common_types import Item
from newsdesk.dedup import dedup_items, title_key, url_key


def _item(id: str, url: str, title: str) -> Item:
    return Item(id=id, category="market", title=title, url=url)


def test_url_key_strips_query_and_fragment():
    assert url_key("https://n.jp/a?x=2") == "https://n.jp/a"
    assert url_key("https://n.jp/a#top") == "https://n.jp/a"
    assert url_key("https://n.jp/a?x=1#frag") == "https://n.jp/a"
    assert url_key("  https://n.jp/a  ") == "https://n.jp/a"
    assert url_key("https://n.jp/a/") == "https://n.jp/a/"


def test_title_key_folds_case_and_whitespace():
    assert title_key("  Breaking   NEWS\tToday ") == "breaking news today"
    assert title_key("トヨタ　決算") == title_key("トヨタ 決算")


def test_query_variant_and_title_collision_are_dropped():
    a = _item("a", "https://n.jp/u1", "日銀が政策金利を据え置き")
    b = _item("b", "https://n.jp/u1?x=2", "別の見出し")
    c = _item("c", "https://other.jp/z", "日銀が政策金利を据え置き")
    assert dedup_items([a, b, c]) == [a]


def test_first_occurrence_wins():
    later = _item("later", "https://n.jp/u1#comments", "Same story")
    first = _item("first", "https://n.jp/u1", "Same Story")
    assert [it.id for it in dedup_items([later, first])] == ["later"]


def test_title_match_ignores_case_and_spacing():
    a = _item("a", "https://n.jp/1", "Fed  holds rates")
    b = _item("b", "https://n.jp/2", "fed holds RATES")
    assert dedup_items([a, b]) == [a]


def test_distinct_items_keep_input_order():
    items = [_item(str(i), f"https://n.jp/{i}", f"title {i}") for i in range(5)]
    assert dedup_items(items) == items


def test_empty_input():
    assert dedup_items([]) == []
