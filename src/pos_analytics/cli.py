"""Command-line entry point: ``pos-analytics``.

Examples:
    $ pos-analytics init-db
    $ pos-analytics ingest-receipt receipts/2025-12-02.jpg --date 2025-12-02
    $ pos-analytics save-delivery --date 2025-12-02 --amount 185000
    $ pos-analytics save-channel-sales --date 2025-12-02 --instore 410000 --coupang 52000
    $ pos-analytics summary --range 7d
    $ pos-analytics summary --start 2025-11-01 --end 2025-11-30
    $ pos-analytics coverage --range 1m
    $ pos-analytics ask "이번 주 가장 많이 팔린 메뉴는?"

The database URL comes from ``POS_DATABASE_URL`` unless ``--database-url``
is given.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from functools import partial
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from pos_analytics.analytics import AnalyticsService
from pos_analytics.assistant import AnalyticsAssistant, AssistantToolbox
from pos_analytics.business_calendar import PRESETS, BusinessCalendar
from pos_analytics.config import DELIVERY_CHANNELS, AppConfig
from pos_analytics.exceptions import ExtractionFormatError, PosAnalyticsError
from pos_analytics.formatting import format_currency, format_date, format_signed_percent
from pos_analytics.ingestion.api import (
    ingest_receipt,
    ingest_transaction_history,
    save_receipt,
    save_transaction_history,
)
from pos_analytics.ingestion.extraction import VisionExtractor
from pos_analytics.llm import ChatCompletionsClient
from pos_analytics.qa import run_coverage_qa
from pos_analytics.store import (
    StoreGateway,
    create_engine_from_config,
    create_session_factory,
    init_schema,
)
from pos_analytics.utils import parse_date

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pos-analytics",
        description="Restaurant POS ingestion and sales analytics.",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy database URL (default: $POS_DATABASE_URL).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing tables.")

    for name, help_text in (
        ("ingest-receipt", "Extract a receipt image and store it as an order."),
        ("ingest-transactions", "Extract a transaction-history image and store its lunch/dinner split."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("image", type=Path, help="Image file.")
        p.add_argument("--date", required=True, help="Business date (YYYY-MM-DD).")

    for name, help_text in (
        ("save-receipt", "Store a reviewed receipt extraction (JSON file)."),
        ("save-transactions", "Store a reviewed transaction-history extraction (JSON file)."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("payload", type=Path, help="JSON file with the extraction payload.")
        p.add_argument("--date", required=True, help="Business date (YYYY-MM-DD).")

    p = sub.add_parser("save-delivery", help="Insert or update delivery sales for a date.")
    p.add_argument("--date", required=True, help="Sale date (YYYY-MM-DD).")
    p.add_argument("--amount", required=True, help="Total delivery revenue.")
    p.add_argument("--notes", default=None)

    p = sub.add_parser("save-channel-sales", help="Insert or update multi-channel sales for a date.")
    p.add_argument("--date", required=True, help="Sale date (YYYY-MM-DD).")
    p.add_argument("--instore", default="0", help="In-store revenue.")
    p.add_argument("--instore-orders", default="0", help="In-store order count.")
    for channel in DELIVERY_CHANNELS:
        p.add_argument(f"--{channel}", default="0", help=f"{channel} revenue.")
    p.add_argument("--notes", default=None)

    for name, help_text in (
        ("delete-order", "Delete the order (and its line items) for a date."),
        ("delete-split", "Delete the transaction-history split for a date."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--date", required=True, help="Business date (YYYY-MM-DD).")

    for name, help_text in (
        ("summary", "Print sales metrics for a window."),
        ("coverage", "List counted days without uploads and closed-day records."),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--range", dest="preset", choices=PRESETS, default="7d")
        p.add_argument("--start", default=None, help="Explicit start date (needs --end).")
        p.add_argument("--end", default=None, help="Explicit end date (needs --start).")

    p = sub.add_parser("ask", help="Ask the analytics assistant a question.")
    p.add_argument("question", help="Question in any language.")

    return parser


def _selection(args: argparse.Namespace) -> str | tuple:
    if args.start or args.end:
        if not (args.start and args.end):
            raise SystemExit("ERROR: --start and --end must be given together.")
        return (args.start, args.end)
    return args.preset


def _print_summary(service: AnalyticsService, args: argparse.Namespace, config: AppConfig) -> None:
    summary = service.sales_summary(_selection(args))
    current = summary.current
    money = partial(format_currency, symbol=config.currency_symbol)

    window = current.window
    print(f"{window.label}: {format_date(window.start)} - {format_date(window.end)}")
    print(f"  Counted days      : {current.counted_days} ({current.days_with_orders} with orders)")
    print(
        f"  Revenue           : {money(current.total_revenue)} "
        f"({format_signed_percent(summary.revenue_change)})"
    )
    print(f"  Items sold        : {current.total_items} ({format_signed_percent(summary.items_change)})")
    print(f"  Avg sale value    : {money(current.average_sale_value)}")
    print(f"  Avg value / item  : {money(current.average_value_per_item)}")
    print(f"  Avg items / day   : {current.average_items_per_day:.1f}")
    if current.top_item is not None:
        print(f"  Top item          : {current.top_item.name} x{current.top_item.quantity}")
    dayparts = current.dayparts
    print(
        f"  Lunch / dinner    : {money(dayparts.lunch_revenue)} ({dayparts.lunch_days} days) / "
        f"{money(dayparts.dinner_revenue)} ({dayparts.dinner_days} days)"
    )
    print(f"  Delivery          : {money(current.delivery.total)} ({current.delivery.days_with_data} days)")
    print(f"  POS + delivery    : {money(current.combined_revenue)}")


def _print_coverage(service: AnalyticsService, args: argparse.Namespace) -> None:
    frames = service.load_frames(_selection(args), counted_only=False)
    result = run_coverage_qa(frames, service.calendar)
    print(f"Coverage {result.summary['window_start']} .. {result.summary['window_end']}")
    print(f"  Counted days                 : {result.summary['counted_days']}")
    print(f"  Days without orders          : {result.summary['missing_order_days_count']}")
    print(f"  Days without transaction log : {result.summary['missing_split_days_count']}")
    print(f"  Closed-day records           : {result.summary['closed_day_records_count']}")
    for label, df in (
        ("Missing orders", result.missing_order_days),
        ("Missing transaction history", result.missing_split_days),
        ("Closed-day records", result.closed_day_records),
    ):
        if df is not None:
            print(f"\n{label}:")
            print(df.to_string(index=False))


def _load_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SystemExit(f"ERROR: Could not read {path}: {e}") from e


def run(args: argparse.Namespace, config: AppConfig) -> None:
    engine = create_engine_from_config(config)
    try:
        if args.command == "init-db":
            init_schema(engine)
            print("Schema ready.")
            return

        gateway = StoreGateway(
            create_session_factory(engine),
            location=config.location,
            channel_location=config.channel_location,
        )
        calendar = BusinessCalendar(closed_weekday=config.closed_weekday)
        service = AnalyticsService(gateway, calendar, config)

        if args.command in ("ingest-receipt", "ingest-transactions"):
            extractor = VisionExtractor(config)
            ingest = ingest_receipt if args.command == "ingest-receipt" else ingest_transaction_history
            result = ingest(gateway, extractor, args.image, args.date)
            print(f"Saved record {result.record_id} for {result.record.business_date}")
            for d in result.discrepancies:
                print(f"  WARNING: reported {d.field}={d.reported}, computed {d.computed}")
        elif args.command in ("save-receipt", "save-transactions"):
            save = save_receipt if args.command == "save-receipt" else save_transaction_history
            result = save(gateway, _load_json(args.payload), args.date, config=config)
            print(f"Saved record {result.record_id} for {result.record.business_date}")
            for d in result.discrepancies:
                print(f"  WARNING: reported {d.field}={d.reported}, computed {d.computed}")
        elif args.command == "save-delivery":
            gateway.upsert_delivery_sales(parse_date(args.date), args.amount, args.notes)
            print(f"Saved delivery sales for {args.date}")
        elif args.command == "save-channel-sales":
            gateway.upsert_channel_sales(
                parse_date(args.date),
                instore_revenue=args.instore,
                instore_order_count=args.instore_orders,
                channel_revenue={channel: getattr(args, channel) for channel in DELIVERY_CHANNELS},
                notes=args.notes,
            )
            print(f"Saved channel sales for {args.date}")
        elif args.command in ("delete-order", "delete-split"):
            day = parse_date(args.date)
            delete = gateway.delete_order if args.command == "delete-order" else gateway.delete_revenue_split
            print("Deleted." if delete(day) else f"Nothing stored for {day}.")
        elif args.command == "summary":
            _print_summary(service, args, config)
        elif args.command == "coverage":
            _print_coverage(service, args)
        elif args.command == "ask":
            assistant = AnalyticsAssistant(ChatCompletionsClient(config), AssistantToolbox(service))
            print(assistant.ask(args.question))
    finally:
        engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Execute the pos-analytics command-line tool.

    Returns:
        Process exit code: 0 on success, 1 on a handled error.
    """
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = AppConfig.from_env()
        if args.database_url:
            config = config.with_overrides(database_url=args.database_url)
        run(args, config)
    except ExtractionFormatError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        print("Raw model response:", file=sys.stderr)
        print(e.raw_text, file=sys.stderr)
        return 1
    except PosAnalyticsError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except SQLAlchemyError as e:
        print(f"ERROR: Database error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
