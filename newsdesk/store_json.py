"""JSON-file store for the canonical item collection.

The whole collection lives in one JSON array and is always rewritten in
full via tempfile → fsync → rename, so readers never observe a partial
file.  Single writer only: callers must serialise ingestion runs.

``merge_items`` is the pure part (URL identity + per-prefix id
assignment); ``JsonStore`` wraps it with load/save.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence

from .classify import classify_item
from .common_types import Item
from .normalize import normalize_item

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^[A-Za-z0-9_]+$")

# Clean mode: seeded demo entries that must not survive a real run.
_EXAMPLE_URL_RE = re.compile(r"(^|//)example\.com", re.I)
_DUMMY_ID_RE = re.compile(r"^sns-(1[0-4])$")


# ── Load / save ─────────────────────────────────────────────────

def load_items(path: str) -> List[Item]:
    """Load the persisted collection; any read/parse failure → ``[]``.

    Entries are re-normalised on the way in so hand-edited or older
    files still yield canonical items; the next rewrite persists that
    canonical form (UTC ISO dates, inferred ``type``, at most 8 tags).
    Unknown keys are carried through.  Entries without a URL are
    skipped (they cannot be identified).
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.info("Store %s not found — starting from an empty collection.", path)
        return []
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Store %s unreadable (%s) — treating as empty.", path, exc)
        return []

    if isinstance(data, dict) and isinstance(data.get("items"), list):
        data = data["items"]
    if not isinstance(data, list):
        logger.warning(
            "Store %s holds %s instead of a list — treating as empty.",
            path, type(data).__name__,
        )
        return []

    items: List[Item] = []
    skipped = 0
    for entry in data:
        if not isinstance(entry, dict) or not entry.get("url"):
            skipped += 1
            continue
        items.append(classify_item(normalize_item(entry)))
    if skipped:
        logger.warning("Store %s: skipped %d entr(ies) without url.", path, skipped)
    return items


def save_items(path: str, items: Sequence[Item]) -> None:
    """Atomically rewrite *path* with *items*."""
    dest_dir = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(dest_dir, exist_ok=True)
    payload = [it.to_dict() for it in items]
    fd, tmp = tempfile.mkstemp(dir=dest_dir, suffix=".tmp", prefix="news_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, default=str)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


# ── Merge ───────────────────────────────────────────────────────

@dataclass
class MergeResult:
    items: List[Item]
    appended: List[Item] = field(default_factory=list)
    skipped: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.appended)


def next_id_start(items: Iterable[Item], prefix: str) -> int:
    """1 + the largest ``<prefix>-<n>`` suffix anywhere in *items*."""
    rx = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    highest = 0
    for it in items:
        m = rx.match(it.id or "")
        if m:
            highest = max(highest, int(m.group(1)))
    return highest + 1


def merge_items(existing: Sequence[Item], new: Iterable[Item], prefix: str) -> MergeResult:
    """Append URL-unseen *new* items with ids ``<prefix>-<n>``.

    Append-only: existing items keep their position, id and fields.
    Re-merging the same batch appends nothing.
    """
    if not prefix or not _PREFIX_RE.match(prefix):
        raise ValueError(f"Invalid id prefix: {prefix!r}")

    seen_urls = {it.url for it in existing if it.url}
    counter = next_id_start(existing, prefix)
    appended: List[Item] = []
    skipped = 0

    for it in new:
        if not it.url or it.url in seen_urls:
            skipped += 1
            continue
        appended.append(dataclasses.replace(it, id=f"{prefix}-{counter}"))
        seen_urls.add(it.url)
        counter += 1

    return MergeResult(items=[*existing, *appended], appended=appended, skipped=skipped)


# ── Clean mode ──────────────────────────────────────────────────

def is_placeholder(item: Item) -> bool:
    return bool(_EXAMPLE_URL_RE.search(item.url or "")) or bool(_DUMMY_ID_RE.match(item.id or ""))


def clean_placeholders(items: Sequence[Item]) -> tuple[List[Item], int]:
    """Drop demo entries (example.com URLs, ids sns-10..sns-14)."""
    kept = [it for it in items if not is_placeholder(it)]
    return kept, len(items) - len(kept)


# ── Store facade ────────────────────────────────────────────────

class JsonStore:
    """Load/merge/rewrite facade over one JSON collection file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> List[Item]:
        return load_items(self.path)

    def merge(self, new: Iterable[Item], prefix: str) -> MergeResult:
        """Merge *new* under *prefix*; the file is only touched on change."""
        result = merge_items(self.load(), new, prefix)
        if not result.changed:
            logger.info("%s: no new URLs to append (%d skipped).", prefix, result.skipped)
            return result
        save_items(self.path, result.items)
        logger.info(
            "%s: appended %d item(s) to %s (%d skipped).",
            prefix, len(result.appended), self.path, result.skipped,
        )
        return result

    def clean(self) -> int:
        """Remove placeholder entries; returns the number removed."""
        kept, removed = clean_placeholders(self.load())
        if removed:
            save_items(self.path, kept)
            logger.info("Clean: removed %d placeholder item(s).", removed)
        else:
            logger.info("Clean: no placeholder items found.")
        return removed

    def stats(self) -> dict[str, Any]:
        items = self.load()
        by_category: dict[str, int] = {}
        for it in items:
            by_category[it.category] = by_category.get(it.category, 0) + 1
        return {"total": len(items), "by_category": by_category}
