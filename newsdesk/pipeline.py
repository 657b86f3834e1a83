"""Ingestion and display pipelines.

Ingestion:  connector → shape → accept/normalise/classify → admit → merge → save
Display:    load → drop unverified → apply_query → score

Both are synchronous; one ingestion run at a time per store file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Sequence

from .common_types import Item, RawRecord
from .config import Config
from .ingest import Connector, collect
from .normalize import normalize_records
from .query import QueryState, ScoredItem, build_view
from .sources import admit, get_profile, shape_record
from .store_json import JsonStore

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    source: str
    collected: int = 0
    normalized: int = 0
    admitted: int = 0
    appended: int = 0
    cleaned: int = 0

    @property
    def changed(self) -> bool:
        return self.appended > 0 or self.cleaned > 0


def prepare_items(
    source: str,
    records: Iterable[tuple[str, RawRecord]],
    cfg: Config,
    now: datetime,
) -> tuple[List[Item], int]:
    """Shape, normalise, classify and admit raw records for *source*.

    Returns ``(admitted_items, normalized_count)``.
    """
    profile = get_profile(source)
    shaped = [shape_record(profile, raw, target) for target, raw in records]
    items = normalize_records(shaped, cfg.source_zone())
    admitted = admit(
        profile,
        items,
        now=now,
        recency=timedelta(hours=cfg.recency_hours),
        company_priority=cfg.company_priority,
    )
    return admitted, len(items)


def ingest_records(
    store: JsonStore,
    source: str,
    records: Sequence[tuple[str, RawRecord]],
    cfg: Config,
    now: datetime | None = None,
) -> IngestReport:
    """Merge one connector run's raw records into *store*."""
    now = now or datetime.now(timezone.utc)
    report = IngestReport(source=source, collected=len(records))

    if cfg.clean_mode:
        report.cleaned = store.clean()

    if not records:
        logger.info("%s: no candidates collected.", source)
        return report

    items, report.normalized = prepare_items(source, records, cfg, now)
    report.admitted = len(items)
    if not items:
        logger.info("%s: nothing left after source policy.", source)
        return report

    result = store.merge(items, get_profile(source).prefix)
    report.appended = len(result.appended)
    return report


def run_ingest(
    cfg: Config,
    source: str,
    connector: Connector,
    targets: Iterable[str] | None = None,
    now: datetime | None = None,
) -> IngestReport:
    """Collect from every target sequentially, then merge into the store."""
    get_profile(source)  # fail fast on an unknown source
    targets = list(targets) if targets is not None else list(cfg.default_targets(source))
    if not targets:
        targets = [""]
    global_limit = cfg.press_global_limit if source == "press" else None
    records = collect(connector, targets, cfg.per_target_limit(source), global_limit)
    return ingest_records(JsonStore(cfg.store_path), source, records, cfg, now)


def visible_items(items: Sequence[Item]) -> List[Item]:
    """Only verified items are ever displayed."""
    return [it for it in items if it.verified]


def load_view(store: JsonStore, state: QueryState, now: datetime | None = None) -> List[ScoredItem]:
    """Fresh load of the whole collection (no caching) → ordered, scored view."""
    now = now or datetime.now(timezone.utc)
    return build_view(visible_items(store.load()), state, now)
