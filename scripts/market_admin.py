#!/usr/bin/env python3
"""
Administer a market kernel database: create tables, list events, print an
event report.

The database comes from the active config (MARKET_DATABASE_URL /
DATABASE_URL override the YAML value).

Usage:
    python3 scripts/market_admin.py init-db
    python3 scripts/market_admin.py events [--archived]
    python3 scripts/market_admin.py report EVENT_ID

Examples:
    MARKET_DATABASE_URL=sqlite:///stall.db python3 scripts/market_admin.py init-db
    python3 scripts/market_admin.py --config prod.yaml report 6f1c...
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from uuid import UUID

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Market kernel administration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: market_config/defaults.yaml).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables.")

    events = sub.add_parser("events", help="List events.")
    events.add_argument("--archived", action="store_true", help="Include archived events.")

    report = sub.add_parser("report", help="Print event metrics as JSON.")
    report.add_argument("event_id", type=UUID, help="Event ID.")
    report.add_argument("--top", type=int, default=5, help="Number of top sellers (default: 5).")

    return parser.parse_args(argv)


def build_report(session, event_id: UUID, top: int = 5) -> dict:
    """Collect every metric of one event into a JSON-ready dict."""
    from market_kernel.selectors.metrics_selector import MetricsSelector
    from market_kernel.services.catalog_service import CatalogService

    event = CatalogService(session).get_event(event_id)
    metrics = MetricsSelector(session)
    to_date = metrics.event_to_date(event_id)
    financials = metrics.event_financials(event_id)
    live = to_date.live

    return {
        "event": {
            "id": event.id,
            "name": event.name,
            "status": event.status,
            "current_day": event.current_day,
            "day_open": event.is_day_open,
        },
        "event_to_date": {
            "revenue": to_date.revenue,
            "items_sold": to_date.items_sold,
            "order_count": to_date.order_count,
            "days_closed": to_date.days_closed,
            "average_revenue_per_day": to_date.average_revenue_per_day,
            "average_order_value": to_date.average_order_value,
        },
        "live_day": {
            "day_number": live.day_number,
            "is_open": live.is_open,
            "revenue": live.revenue,
            "items_sold": live.items_sold,
            "order_count": live.order_count,
            "average_order_value": live.average_order_value,
            "items_per_order": live.items_per_order,
            "gross_profit": live.gross_profit,
        },
        "ledger": asdict(metrics.ledger_totals(event_id)),
        "financials": {
            "revenue": financials.revenue,
            "cogs": financials.cogs,
            "gross_profit": financials.gross_profit,
            "profit_margin_pct": financials.profit_margin_pct,
            "units_sold": financials.units_sold,
            "total_inventory": financials.total_inventory,
        },
        "top_sellers": [
            {
                "item_id": p.item_id,
                "name": p.name,
                "sold": p.sold,
                "remaining": p.remaining,
                "revenue": p.revenue,
                "margin": p.margin,
                "sell_through_pct": p.sell_through_pct,
            }
            for p in metrics.top_sellers(event_id, limit=top)
        ],
        "categories": [asdict(c) for c in metrics.category_breakdown(event_id)],
        "days": [
            {**asdict(d), "duration_seconds": d.duration_seconds}
            for d in metrics.daily_breakdown(event_id)
        ],
    }


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from market_config import get_active_config
    from market_kernel.db.engine import (
        create_tables,
        init_engine_from_config,
        reset_engine,
        session_scope,
    )
    from market_kernel.exceptions import MarketKernelError
    from market_kernel.logging_config import configure_logging
    from market_kernel.services.catalog_service import CatalogService

    config = get_active_config(args.config)
    configure_logging(level=config.logging.level)
    init_engine_from_config(config.database)

    try:
        if args.command == "init-db":
            create_tables()
            print(f"Tables created ({config.database.url.split(':', 1)[0]})")
            return 0

        with session_scope() as session:
            if args.command == "events":
                for event in CatalogService(session).list_events(include_archived=args.archived):
                    print(f"{event.id}  {event.status:<10} day {event.current_day:<3} {event.name}")
                return 0

            if args.command == "report":
                try:
                    report = build_report(session, args.event_id, top=args.top)
                except MarketKernelError as exc:
                    print(f"Error [{exc.code}]: {exc}", file=sys.stderr)
                    return 1
                print(json.dumps(report, indent=2, default=str))
                return 0
    finally:
        reset_engine()

    return 2


if __name__ == "__main__":
    sys.exit(main())
