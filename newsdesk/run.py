"""Entry point: ``python -m newsdesk.run <command>``

Commands::

    ingest --source {sns,tdnet,press} (--file PATH | --url TEMPLATE) [--target T ...]
    clean
    query  [--category C] [--type T] [--issuer I] [--search Q] [--sort S]
           [--window-hours H] [--no-dedupe] [--limit N]

Environment variables (see ``newsdesk.config``) choose the store path,
limits, recency cutoff, clean mode and company-priority mode.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from typing import List, Optional

from .config import Config
from .ingest import FileConnector, HttpJsonConnector
from .pipeline import load_view, run_ingest
from .query import ALL, SORT_DATE_DESC, SORTS, QueryState
from .sources import PROFILES
from .store_json import JsonStore

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="newsdesk", description="Financial news aggregation desk")
    sub = p.add_subparsers(dest="command", required=True)

    ing = sub.add_parser("ingest", help="merge raw records from one source into the store")
    ing.add_argument("--source", required=True, choices=sorted(PROFILES))
    src = ing.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", help="JSON file with raw records")
    src.add_argument("--url", help="URL template returning JSON records; may contain {target}")
    ing.add_argument("--target", action="append", default=None,
                     help="target to fetch (repeatable); defaults depend on source")

    sub.add_parser("clean", help="remove placeholder/demo entries from the store")

    q = sub.add_parser("query", help="print the filtered, sorted view")
    q.add_argument("--category", default=ALL)
    q.add_argument("--type", default=ALL)
    q.add_argument("--issuer", default=ALL)
    q.add_argument("--search", default="")
    q.add_argument("--sort", default=SORT_DATE_DESC, choices=SORTS)
    q.add_argument("--window-hours", type=float, default=None)
    q.add_argument("--no-dedupe", action="store_true")
    q.add_argument("--limit", type=int, default=50)
    return p


def _cmd_ingest(cfg: Config, args: argparse.Namespace) -> int:
    if args.file:
        connector = FileConnector(args.file)
        # File drops rarely carry per-target tags; take everything by default.
        targets = args.target or [""]
    else:
        connector = HttpJsonConnector(args.url, timeout=cfg.http_timeout_s)
        targets = args.target
    try:
        report = run_ingest(cfg, args.source, connector, targets)
    finally:
        if isinstance(connector, HttpJsonConnector):
            connector.close()
    logger.info(
        "%s: collected=%d normalized=%d admitted=%d appended=%d cleaned=%d",
        report.source, report.collected, report.normalized,
        report.admitted, report.appended, report.cleaned,
    )
    return 0


def _cmd_query(cfg: Config, args: argparse.Namespace) -> int:
    state = QueryState(
        time_window=timedelta(hours=args.window_hours) if args.window_hours else None,
        category=args.category,
        type=args.type,
        issuer=args.issuer,
        search_text=args.search,
        dedupe=not args.no_dedupe,
        sort=args.sort,
    )
    rows = load_view(JsonStore(cfg.store_path), state)
    for row in rows[: max(args.limit, 0)]:
        it = row.item
        ts = it.published_at.strftime("%Y-%m-%d %H:%M") if it.published_at else "----------------"
        print(f"{'★' * row.score:<5}  {ts}  [{it.category}/{it.type}]  {it.title}  {it.url}")
    print(f"{len(rows)} item(s)", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )
    args = _build_parser().parse_args(argv)
    cfg = Config()

    if args.command == "ingest":
        return _cmd_ingest(cfg, args)
    if args.command == "clean":
        JsonStore(cfg.store_path).clean()
        return 0
    return _cmd_query(cfg, args)


if __name__ == "__main__":
    sys.exit(main())
