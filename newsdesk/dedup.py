"""Order-stable near-duplicate removal for query results.

Two items are the same real-world article when their URL keys match
(query string / fragment stripped) or when their whitespace-normalised,
case-folded titles are identical.  The first occurrence in input order
is kept, so callers must dedup *before* sorting.
"""

from __future__ import annotations

import re
from typing import Iterable, List

from .common_types import Item

_WS_RE = re.compile(r"\s+")
_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#].*$", re.S)


def url_key(url: str) -> str:
    """URL with any trailing ``?query`` or ``#fragment`` removed."""
    return _QUERY_OR_FRAGMENT_RE.sub("", (url or "").strip())


def title_key(title: str) -> str:
    return _WS_RE.sub(" ", (title or "").strip()).casefold()


def dedup_items(items: Iterable[Item]) -> List[Item]:
    """Drop items whose URL key or title key collides with a kept item.

    The title check scans every kept title (quadratic in the kept set).
    """
    seen_urls: set[str] = set()
    kept: List[Item] = []
    kept_titles: List[str] = []

    for item in items:
        ukey = url_key(item.url)
        tkey = title_key(item.title)
        if ukey and ukey in seen_urls:
            continue
        if tkey and any(t == tkey for t in kept_titles):
            continue
        if ukey:
            seen_urls.add(ukey)
        kept_titles.append(tkey)
        kept.append(item)

    return kept
