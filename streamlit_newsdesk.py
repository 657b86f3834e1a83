"""News Desk — filterable view over the aggregated news collection.

Run with::

    streamlit run streamlit_newsdesk.py

Reads the store at ``NEWSDESK_STORE_PATH`` (default
``assets/data/news.json``) on every rerun; nothing is cached, so each
render reflects the latest merged state.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import streamlit as st

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from desk_ui_helpers import (
    NAV_CATEGORIES,
    SORT_LABELS,
    card_badges,
    format_published,
    format_tickers,
    safe_markdown_text,
    safe_url,
    score_stars,
)
from newsdesk.config import Config
from newsdesk.pipeline import visible_items
from newsdesk.query import ALL, FeedSession, QueryEvent, QueryState
from newsdesk.store_json import JsonStore

logger = logging.getLogger(__name__)

st.set_page_config(page_title="News Desk", page_icon="📰", layout="wide")

cfg = Config()
items = visible_items(JsonStore(cfg.store_path).load())
logger.debug("Loaded %d visible item(s) from %s", len(items), cfg.store_path)

if "query_state" not in st.session_state:
    st.session_state["query_state"] = QueryState()

session = FeedSession(items, st.session_state["query_state"])

# ── Sidebar controls → query events ─────────────────────────────

with st.sidebar:
    st.header("フィルタ")
    nav_keys = [k for k, _ in NAV_CATEGORIES]
    nav_names = dict(NAV_CATEGORIES)
    category = st.radio(
        "カテゴリ", nav_keys, format_func=lambda k: nav_names[k], key="nav_category",
    )
    type_choices = [ALL, *sorted({it.type for it in items if it.type})]
    item_type = st.selectbox("種別", type_choices, key="nav_type")
    issuer = st.selectbox("発行体", [ALL, "withIssuer", "noIssuer"], key="nav_issuer")
    window_h = st.number_input("直近（時間, 0=無効）", min_value=0, value=0, step=6, key="nav_window")
    dedupe = st.checkbox("重複を隠す", value=True, key="nav_dedupe")

search = st.text_input("🔍 検索", value="", placeholder="例: 決算 7203.T", key="search").strip()
sort = st.selectbox(
    "並び替え", list(SORT_LABELS), format_func=lambda k: SORT_LABELS[k], key="sort",
)

view = session.dispatch(
    QueryEvent("category", category),
    QueryEvent("type", item_type),
    QueryEvent("issuer", issuer),
    QueryEvent("time_window", window_h),
    QueryEvent("dedupe", dedupe),
    QueryEvent("search_text", search),
    QueryEvent("sort", sort),
)
st.session_state["query_state"] = session.state

# ── Cards ───────────────────────────────────────────────────────

st.caption(f"{len(view)} / {len(items)} 件")

if not view:
    st.info("該当する記事はありません。")

for row in view:
    it = row.item
    with st.container(border=True):
        st.caption(" · ".join(safe_markdown_text(b) for b in card_badges(it)))
        st.markdown(f"**{safe_markdown_text(it.title)}**  {score_stars(row.score)}")
        if it.summary:
            st.write(it.summary)
        meta = " · ".join(x for x in (it.source, format_published(it.published_at), format_tickers(it)) if x)
        if meta:
            st.caption(safe_markdown_text(meta))
        link = safe_url(it.url)
        if link:
            st.markdown(f"[記事を開く]({link}) ↗ 外部サイト")
