"""Query engine: collection + immutable ``QueryState`` → ordered view.

``apply_query`` is pure and recomputes everything from the full
collection on each call.  Stage order is fixed and significant:

    recency window → category → type → issuer → search → dedup → sort

Dedup runs before the sort so "first occurrence" means store order,
not recency.  Unknown filter values disable that filter; an unknown
sort falls back to ``date_desc``.  Nothing here raises on bad state.

UI layers never mutate state: they build a ``QueryEvent`` and hand it
to ``FeedSession.dispatch`` (or ``reduce_state``), which produces a new
``QueryState`` and recomputes the view synchronously.
"""

from __future__ import annotations

import dataclasses
import logging
import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Sequence

from .common_types import CATEGORIES, ISSUERS, Item
from .dedup import dedup_items
from .scoring import importance_score

logger = logging.getLogger(__name__)

ALL = "all"

SORT_DATE_DESC = "date_desc"
SORT_DATE_ASC = "date_asc"
SORT_TITLE_ASC = "title_asc"
SORT_TITLE_DESC = "title_desc"
SORTS: tuple[str, ...] = (SORT_DATE_DESC, SORT_DATE_ASC, SORT_TITLE_ASC, SORT_TITLE_DESC)


@dataclass(frozen=True)
class QueryState:
    """Everything that shapes one view of the collection."""

    time_window: timedelta | None = None
    category: str = ALL
    type: str = ALL
    issuer: str = ALL
    search_text: str = ""
    dedupe: bool = True
    sort: str = SORT_DATE_DESC

    def with_changes(self, **changes: Any) -> "QueryState":
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class ScoredItem:
    item: Item
    score: int


# ── Stages ──────────────────────────────────────────────────────

def _aware(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.replace(tzinfo=timezone.utc)


def within_window(item: Item, now: datetime, window: timedelta) -> bool:
    if item.published_at is None:
        return False
    return now - window <= item.published_at <= now


def matches_search(item: Item, q_lower: str) -> bool:
    """Case-insensitive substring match on title/summary/source/tags/tickers."""
    if q_lower in item.title.lower():
        return True
    if q_lower in item.summary.lower():
        return True
    if q_lower in item.source.lower():
        return True
    if any(q_lower in (t or "").lower() for t in item.tags):
        return True
    return any(q_lower in (t or "").lower() for t in item.tickers)


def title_sort_key(title: str) -> str:
    """Collation key: width-folded (NFKC) and case-folded."""
    return unicodedata.normalize("NFKC", title or "").casefold()


def sort_items(items: Sequence[Item], sort: str) -> List[Item]:
    """Stable sort; undated items count as the earliest possible date."""
    if sort == SORT_DATE_ASC:
        return sorted(items, key=lambda it: (it.published_at is not None, it.published_ts))
    if sort == SORT_TITLE_ASC:
        return sorted(items, key=lambda it: title_sort_key(it.title))
    if sort == SORT_TITLE_DESC:
        return sorted(items, key=lambda it: title_sort_key(it.title), reverse=True)
    if sort != SORT_DATE_DESC:
        logger.debug("Unknown sort %r — using %s", sort, SORT_DATE_DESC)
    return sorted(
        items,
        key=lambda it: (it.published_at is not None, it.published_ts),
        reverse=True,
    )


# ── Engine ──────────────────────────────────────────────────────

def apply_query(items: Sequence[Item], state: QueryState, now: datetime) -> List[Item]:
    """Filter, search, dedup and sort *items* according to *state*."""
    now = _aware(now)
    out = list(items)

    window = state.time_window
    if isinstance(window, timedelta) and window > timedelta(0):
        out = [it for it in out if within_window(it, now, window)]
    elif window is not None:
        logger.debug("Ignoring time window %r", window)

    if state.category != ALL and state.category in CATEGORIES:
        out = [it for it in out if it.category == state.category]

    if state.type and state.type != ALL:
        out = [it for it in out if it.type == state.type]

    if state.issuer != ALL and state.issuer in ISSUERS:
        out = [it for it in out if it.issuer == state.issuer]

    q = str(state.search_text or "").strip().lower()
    if q:
        out = [it for it in out if matches_search(it, q)]

    if state.dedupe:
        out = dedup_items(out)

    return sort_items(out, state.sort)


def build_view(items: Sequence[Item], state: QueryState, now: datetime) -> List[ScoredItem]:
    """``apply_query`` plus the display-time importance score per row."""
    now = _aware(now)
    return [ScoredItem(it, importance_score(it, now)) for it in apply_query(items, state, now)]


# ── State transitions ───────────────────────────────────────────

@dataclass(frozen=True)
class QueryEvent:
    """A UI change request: set *field* of the query state to *value*."""

    field: str
    value: Any


_STATE_FIELDS = frozenset(f.name for f in dataclasses.fields(QueryState))


def _coerce(field_name: str, value: Any) -> Any:
    if field_name == "time_window":
        if value is None or isinstance(value, timedelta):
            return value
        try:
            hours = float(value)
        except (TypeError, ValueError):
            return None
        return timedelta(hours=hours) if hours > 0 else None
    if field_name == "dedupe":
        return bool(value)
    return "" if value is None else str(value)


def reduce_state(state: QueryState, event: QueryEvent) -> QueryState:
    """Return the state that results from *event*; never mutates *state*."""
    if event.field not in _STATE_FIELDS:
        logger.warning("Ignoring query event for unknown field %r", event.field)
        return state
    return state.with_changes(**{event.field: _coerce(event.field, event.value)})


class FeedSession:
    """Holds a loaded collection and the current query state.

    Each ``dispatch`` swaps in a new state and recomputes the whole view;
    there is no caching or incremental diffing.
    """

    def __init__(
        self,
        items: Sequence[Item],
        state: QueryState | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.items = list(items)
        self.state = state or QueryState()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def view(self) -> List[ScoredItem]:
        return build_view(self.items, self.state, self._clock())

    def dispatch(self, *events: QueryEvent) -> List[ScoredItem]:
        for ev in events:
            self.state = reduce_state(self.state, ev)
        return self.view()
