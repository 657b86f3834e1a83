"""Tests for connectors, sequential collection and the ingestion pipeline."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from newsdesk.common_types import Item
from newsdesk.config import Config
from newsdesk.ingest import FileConnector, HttpJsonConnector, collect
from newsdesk.pipeline import ingest_records, load_view, prepare_items, run_ingest, visible_items
from newsdesk.query import QueryState
from newsdesk.store_json import JsonStore, save_items

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def _cfg(tmp_path, **kw) -> Config:
    base = dict(
        store_path=str(tmp_path / "news.json"),
        clean_mode=False,
        company_priority=False,
        recency_hours=24.0,
    )
    base.update(kw)
    return Config(**base)


def _iso(hours_ago: float) -> str:
    return (NOW - timedelta(hours=hours_ago)).isoformat()


class StubConnector:
    name = "stub"

    def __init__(self, by_target, fail=()):
        self.by_target = by_target
        self.fail = set(fail)
        self.calls: list[str] = []

    def fetch(self, target, limit):
        self.calls.append(target)
        if target in self.fail:
            raise RuntimeError("page did not load")
        return list(self.by_target.get(target, []))[:limit]


# ── Connectors ──────────────────────────────────────────────────


class TestFileConnector:

    def test_filters_by_target_and_dedups_urls(self, tmp_path):
        p = tmp_path / "raw.json"
        p.write_text(json.dumps({"items": [
            {"target": "@a", "url": "https://x/1"},
            {"target": "@a", "url": "https://x/1"},
            {"target": "@b", "url": "https://x/2"},
            {"target": "@a", "url": "https://x/3"},
            "junk",
        ]}), encoding="utf-8")
        conn = FileConnector(str(p))
        assert [r["url"] for r in conn.fetch("@a", 10)] == ["https://x/1", "https://x/3"]
        assert len(conn.fetch("", 10)) == 3
        assert len(conn.fetch("", 1)) == 1

    def test_non_list_payload_yields_nothing(self, tmp_path):
        p = tmp_path / "raw.json"
        p.write_text('"hello"', encoding="utf-8")
        assert FileConnector(str(p)).fetch("", 10) == []


class TestHttpJsonConnector:

    @staticmethod
    def _connector(handler) -> HttpJsonConnector:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return HttpJsonConnector("https://feed.test/tdnet/{target}.json", client=client)

    def test_formats_target_into_url(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            return httpx.Response(200, json=[{"url": "https://t/1"}, {"url": "https://t/2"}])

        conn = self._connector(handler)
        try:
            assert [r["url"] for r in conn.fetch("7203", 1)] == ["https://t/1"]
        finally:
            conn.close()
        assert seen == ["/tdnet/7203.json"]

    def test_non_json_body_raises_value_error(self):
        conn = self._connector(lambda request: httpx.Response(200, text="<html>login</html>"))
        with pytest.raises(ValueError):
            conn.fetch("7203", 5)

    def test_http_error_raises(self):
        conn = self._connector(lambda request: httpx.Response(503, text="busy"))
        with pytest.raises(httpx.HTTPStatusError):
            conn.fetch("7203", 5)


# ── collect ─────────────────────────────────────────────────────


def test_failing_target_is_skipped():
    conn = StubConnector(
        {"a": [{"url": "https://x/a"}], "c": [{"url": "https://x/c"}]},
        fail={"b"},
    )
    out = collect(conn, ["a", "b", "c"], per_target_limit=5)
    assert [(t, r["url"]) for t, r in out] == [("a", "https://x/a"), ("c", "https://x/c")]
    assert conn.calls == ["a", "b", "c"]


def test_global_limit_stops_visiting_targets():
    recs = {t: [{"url": f"https://x/{t}{i}"} for i in range(3)] for t in "abc"}
    conn = StubConnector(recs)
    out = collect(conn, ["a", "b", "c"], per_target_limit=5, global_limit=4)
    assert len(out) == 4
    assert conn.calls == ["a", "b"]


def test_empty_target_is_not_an_error():
    assert collect(StubConnector({}), ["a"], per_target_limit=5) == []


# ── Ingestion pipeline ──────────────────────────────────────────


class TestIngestRecords:

    def test_tdnet_run_assigns_company_ids_and_is_idempotent(self, tmp_path):
        cfg = _cfg(tmp_path)
        store = JsonStore(cfg.store_path)
        records = [
            ("7203", {"title": "2025年3月期 決算短信", "url": "https://t/1"}),
            ("7203", {"title": "自己株式の取得状況", "url": "https://t/2"}),
            ("7203", {"title": "no url", "url": ""}),
            ("7203", {"title": "unverified", "url": "https://t/3", "verified": False}),
        ]
        report = ingest_records(store, "tdnet", records, cfg, now=NOW)
        assert (report.collected, report.normalized, report.admitted, report.appended) == (4, 2, 2, 2)

        items = store.load()
        assert [it.id for it in items] == ["company-1", "company-2"]
        assert all(it.category == "company" for it in items)
        assert all(it.issuer == "withIssuer" for it in items)
        assert items[0].tickers == ("7203.T",)
        assert items[0].type == "disclosure"

        before = (tmp_path / "news.json").read_bytes()
        again = ingest_records(store, "tdnet", records, cfg, now=NOW)
        assert again.appended == 0
        assert not again.changed
        assert (tmp_path / "news.json").read_bytes() == before

    def test_ids_continue_across_sources(self, tmp_path):
        cfg = _cfg(tmp_path)
        store = JsonStore(cfg.store_path)
        ingest_records(store, "tdnet", [("7203", {"title": "開示", "url": "https://t/1"})], cfg, now=NOW)
        ingest_records(store, "sns", [("@nikkei", {"text": "日経平均 続伸", "url": "https://x/1"})], cfg, now=NOW)
        ingest_records(store, "tdnet", [("6758", {"title": "開示", "url": "https://t/2"})], cfg, now=NOW)
        assert [it.id for it in store.load()] == ["company-1", "sns-1", "company-2"]

    def test_press_recency_cutoff(self, tmp_path):
        cfg = _cfg(tmp_path)
        store = JsonStore(cfg.store_path)
        records = [
            ("https://www.nikkei.com", {"title": "日銀 利上げ", "url": "https://n/1", "publishedAt": _iso(2)}),
            ("https://www.nikkei.com", {"title": "古い記事", "url": "https://n/2", "publishedAt": _iso(48)}),
            ("https://www.nikkei.com", {"title": "日付なし", "url": "https://n/3"}),
        ]
        report = ingest_records(store, "press", records, cfg, now=NOW)
        assert report.appended == 1
        (item,) = store.load()
        assert item.id == "news-1"
        assert item.type == "macro"
        assert item.source == "https://www.nikkei.com"

    def test_press_wall_clock_time_read_as_tokyo(self, tmp_path):
        # 19:00 JST is 10:00 UTC, two hours before NOW.
        records = [("site", {"title": "日銀 利上げ", "url": "https://n/jst", "publishedAt": "2025/06/01 19:00"})]
        items, normalized = prepare_items("press", records, _cfg(tmp_path), NOW)
        assert normalized == 1
        assert len(items) == 1
        assert items[0].published_at == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)

    def test_press_source_timezone_knob(self, tmp_path):
        # Read as UTC the same wall-clock time lies in the future and is rejected.
        records = [("site", {"title": "日銀 利上げ", "url": "https://n/utc", "publishedAt": "2025/06/01 19:00"})]
        items, normalized = prepare_items("press", records, _cfg(tmp_path, source_tz="UTC"), NOW)
        assert normalized == 1
        assert items == []

    def test_clean_mode_runs_before_merge(self, tmp_path):
        cfg = _cfg(tmp_path, clean_mode=True)
        save_items(cfg.store_path, [
            Item(id="sns-11", category="sns", title="demo", url="https://x.com/demo/status/1"),
            Item(id="news-1", category="market", title="demo", url="https://example.com/a"),
            Item(id="sns-1", category="sns", title="real", url="https://x.com/r/status/9"),
        ])
        store = JsonStore(cfg.store_path)
        report = ingest_records(store, "sns", [], cfg, now=NOW)
        assert report.cleaned == 2
        assert report.changed
        assert [it.id for it in store.load()] == ["sns-1"]

    def test_company_priority_mode(self, tmp_path):
        cfg = _cfg(tmp_path, company_priority=True)
        store = JsonStore(cfg.store_path)
        records = [
            ("7203", {"title": "決算説明会のお知らせ", "url": "https://t/1", "type": ""}),
            ("7203", {"title": "社長交代", "url": "https://t/2", "type": "companyNews"}),
        ]
        report = ingest_records(store, "tdnet", records, cfg, now=NOW)
        assert report.appended == 1
        assert store.load()[0].url == "https://t/1"


def test_run_ingest_uses_configured_targets(tmp_path):
    raw = tmp_path / "raw.json"
    raw.write_text(json.dumps([
        {"target": "7203", "title": "開示A", "url": "https://t/a"},
        {"target": "9999", "title": "開示B", "url": "https://t/b"},
    ], ensure_ascii=False), encoding="utf-8")
    cfg = _cfg(tmp_path, tdnet_codes=("7203",))
    report = run_ingest(cfg, "tdnet", FileConnector(str(raw)), now=NOW)
    assert report.appended == 1

    saved = json.loads((tmp_path / "news.json").read_text(encoding="utf-8"))
    assert saved[0]["tickers"] == ["7203.T"]
    assert "target" not in saved[0]


def test_run_ingest_press_global_limit(tmp_path):
    conn = StubConnector({
        "site-a": [{"title": f"記事{i}", "url": f"https://a/{i}", "publishedAt": _iso(1)} for i in range(3)],
        "site-b": [{"title": "記事b", "url": "https://b/1", "publishedAt": _iso(1)}],
    })
    cfg = _cfg(tmp_path, press_global_limit=2)
    report = run_ingest(cfg, "press", conn, targets=["site-a", "site-b"], now=NOW)
    assert report.collected == 2
    assert conn.calls == ["site-a"]


def test_run_ingest_unknown_source(tmp_path):
    with pytest.raises(ValueError):
        run_ingest(_cfg(tmp_path), "rss", StubConnector({}))


# ── Display pipeline ────────────────────────────────────────────


def test_unverified_items_never_displayed(tmp_path):
    path = str(tmp_path / "news.json")
    save_items(path, [
        Item(id="news-1", category="market", title="ok", url="https://n/1", published_at=NOW),
        Item(id="news-2", category="market", title="hidden", url="https://n/2", verified=False),
    ])
    store = JsonStore(path)
    assert len(store.load()) == 2
    assert [it.id for it in visible_items(store.load())] == ["news-1"]
    rows = load_view(store, QueryState(), now=NOW)
    assert [r.item.id for r in rows] == ["news-1"]
    assert 1 <= rows[0].score <= 5
