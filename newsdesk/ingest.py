"""Connector contract and sequential collection.

A connector turns one *target* (an X handle, a TDnet code, a press
site) into a list of raw record dicts.  How it gets them (browser
automation, HTTP, a file dropped by another tool) is its own business;
the core only needs each record to carry a ``url``.

``collect`` visits targets strictly one after another.  A failing
target is logged and skipped; it never aborts the run and is not
retried.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, List, Protocol

import httpx

from .common_types import RawRecord

logger = logging.getLogger(__name__)


class Connector(Protocol):
    name: str

    def fetch(self, target: str, limit: int) -> List[RawRecord]:
        ...


def _as_list(x: Any, origin: str) -> List[RawRecord]:
    """Coerce a decoded payload to a list of dicts (``{"items": [...]}`` ok)."""
    if isinstance(x, dict) and isinstance(x.get("items"), list):
        x = x["items"]
    if not isinstance(x, list):
        if x is not None:
            logger.warning("%s returned %s instead of list — 0 records.", origin, type(x).__name__)
        return []
    return [r for r in x if isinstance(r, dict)]


def _uniq_by_url(records: Iterable[RawRecord]) -> List[RawRecord]:
    seen: set[str] = set()
    out: List[RawRecord] = []
    for r in records:
        u = str(r.get("url") or "")
        if u in seen:
            continue
        seen.add(u)
        out.append(r)
    return out


# ── Connectors ──────────────────────────────────────────────────

class FileConnector:
    """Reads pre-collected raw records from a JSON file.

    The target selects records whose ``target`` field matches (e.g. the
    handle or code the scraper recorded); an empty target takes all.
    """

    name = "file"

    def __init__(self, path: str) -> None:
        self.path = path

    def fetch(self, target: str, limit: int) -> List[RawRecord]:
        with open(self.path, "r", encoding="utf-8") as f:
            records = _as_list(json.load(f), self.path)
        if target:
            records = [r for r in records if str(r.get("target") or "") == target]
        return _uniq_by_url(records)[:limit]


class HttpJsonConnector:
    """GETs a JSON list of raw records per target.

    *url_template* may contain ``{target}``; e.g.
    ``https://scraper.internal/tdnet/{target}.json``.
    """

    name = "http"

    def __init__(self, url_template: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.url_template = url_template
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def fetch(self, target: str, limit: int) -> List[RawRecord]:
        url = self.url_template.format(target=target)
        r = self.client.get(url, headers={"Cache-Control": "no-cache"})
        r.raise_for_status()
        try:
            payload = r.json()
        except (json.JSONDecodeError, ValueError):
            raise ValueError(
                f"{url} returned non-JSON (content-type={r.headers.get('content-type', '')!r}, "
                f"status={r.status_code})"
            ) from None
        return _uniq_by_url(_as_list(payload, url))[:limit]

    def close(self) -> None:
        self.client.close()


# ── Collection ──────────────────────────────────────────────────

def collect(
    connector: Connector,
    targets: Iterable[str],
    per_target_limit: int,
    global_limit: int | None = None,
) -> List[tuple[str, RawRecord]]:
    """Fetch every target in order; returns ``(target, record)`` pairs.

    Exceptions from a single target are logged as warnings and the run
    moves on.  A target that yields nothing is not an error.
    """
    collected: List[tuple[str, RawRecord]] = []
    for target in targets:
        if global_limit is not None and len(collected) >= global_limit:
            logger.info("%s: global limit %d reached, skipping remaining targets", connector.name, global_limit)
            break
        try:
            records = connector.fetch(target, per_target_limit)
        except Exception as exc:
            logger.warning("%s: target %r failed (%s: %s) — skipped", connector.name, target, type(exc).__name__, exc)
            continue
        logger.info("%s %s: %d record(s)", connector.name, target or "*", len(records))
        collected.extend((target, r) for r in records)

    if global_limit is not None:
        collected = collected[:global_limit]
    return collected
