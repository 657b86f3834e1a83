"""Global configuration for newsdesk ingestion and display.

All tunables can be overridden via environment variables.  None of the
core logic depends on these defaults; they only shape ingestion runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_SOURCE_TZ = "Asia/Tokyo"

DEFAULT_X_TARGETS = (
    "@nikkei",
    "@ReutersJapan",
    "@Gaitame_com",
    "@QUICK_QMW",
    "@NHK_news",
    "@BloombergJapan",
    "@WSJJapan",
    "@JPX_official",
    "@TSE_pr",
    "@MonexJP",
    "@RakutenSec",
    "@SBISEC",
    "@kabutan_jp",
    "@minkabu_jp",
    "@YOL_economy",
)


def _env_number(key: str, default, cast):
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    return _env_number(key, default, float)


def _env_int(key: str, default: int) -> int:
    return _env_number(key, default, int)


def _env_list(key: str, default: str) -> tuple[str, ...]:
    """``"a, b,,c"`` → ``("a", "b", "c")``."""
    return tuple(s.strip() for s in os.getenv(key, default).split(",") if s.strip())


@dataclass(frozen=True)
class Config:
    """Knobs for one ingest or display run.

    Each field's default is looked up in the environment when a
    ``Config`` is built, so tests and scripts can patch ``os.environ``
    first.  Malformed numbers keep the built-in default.
    """

    # ── Store ───────────────────────────────────────────────────
    store_path: str = field(default_factory=lambda: os.getenv("NEWSDESK_STORE_PATH", "assets/data/news.json"))

    # ── Targets ─────────────────────────────────────────────────
    tdnet_codes: tuple[str, ...] = field(default_factory=lambda: _env_list("TDNET_CODES", "7203,6758,9432"))
    x_targets: tuple[str, ...] = field(default_factory=lambda: _env_list("X_TARGETS", ",".join(DEFAULT_X_TARGETS)))

    # ── Limits ──────────────────────────────────────────────────
    per_code_limit: int = field(default_factory=lambda: _env_int("PER_CODE_LIMIT", 5))
    per_account_limit: int = field(default_factory=lambda: _env_int("PER_ACCOUNT_LIMIT", 5))
    press_per_site_limit: int = field(default_factory=lambda: _env_int("PRESS_PER_SITE_LIMIT", 10))
    press_global_limit: int = field(default_factory=lambda: _env_int("PRESS_GLOBAL_LIMIT", 50))

    # ── Recency cutoff for press ingestion (hours) ──────────────
    recency_hours: float = field(default_factory=lambda: _env_float("NEWSDESK_RECENCY_HOURS", 24.0))

    # ── Timezone for source timestamps that carry no offset ─────
    source_tz: str = field(default_factory=lambda: os.getenv("NEWSDESK_SOURCE_TZ", DEFAULT_SOURCE_TZ))

    # ── Modes ───────────────────────────────────────────────────
    # Clean mode is on unless explicitly disabled with "false".
    clean_mode: bool = field(default_factory=lambda: os.getenv("CLEAN_MODE", "true").lower() != "false")
    company_priority: bool = field(default_factory=lambda: os.getenv("COMPANY_PRIORITY", "false").lower() == "true")

    # ── HTTP connectors ─────────────────────────────────────────
    http_timeout_s: float = field(default_factory=lambda: _env_float("NEWSDESK_HTTP_TIMEOUT_S", 10.0))

    def per_target_limit(self, source: str) -> int:
        """Per-target item cap for the named source profile."""
        if source == "tdnet":
            return self.per_code_limit
        if source == "sns":
            return self.per_account_limit
        return self.press_per_site_limit

    def source_zone(self) -> ZoneInfo:
        """``source_tz`` as a ``ZoneInfo``; unknown names fall back to Tokyo."""
        try:
            return ZoneInfo(self.source_tz)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            return ZoneInfo(DEFAULT_SOURCE_TZ)

    def default_targets(self, source: str) -> tuple[str, ...]:
        if source == "tdnet":
            return self.tdnet_codes
        if source == "sns":
            return self.x_targets
        return ()
