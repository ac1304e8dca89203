# journal/cli.py
"""
Trade journal command line
Run with: trade-journal --help  (or python run_journal.py --help)
"""

import argparse
import logging
import sys
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Sequence

from .config import get_config
from .exceptions import ConfigurationError, JournalError, SourceNotFoundError, StorageError, TradeLogError
from .reporting import formatters
from .reporting.daily_log import daily_log_to_json, daily_log_to_yaml
from .trades.models import Direction, parse_date
from .trades.plugin import STATUS_EMPTY, TradePlugin

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1


def _date_arg(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}' (expected YYYY-MM-DD)")


def _price_arg(value: str) -> Decimal:
    try:
        price = Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"Invalid price '{value}'")
    if not price.is_finite() or price <= 0:
        raise argparse.ArgumentTypeError(f"Price must be positive: '{value}'")
    return price


def _shares_arg(value: str) -> int:
    try:
        shares = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid share count '{value}'")
    if shares <= 0:
        raise argparse.ArgumentTypeError(f"Shares must be positive: '{value}'")
    return shares


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trade-journal",
        description="Reconstruct broker fills into round trips and review performance",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  trade-journal ingest -d 2026-02-10
  trade-journal ingest -d 2026-02-10 --dry-run -o json
  trade-journal stats --week
  trade-journal stats --by-time --range 2026-01-01 2026-02-10
  trade-journal log -t AAPL --side long --entry 150 --exit 152.5 --shares 100 --setup ORB
  trade-journal tag 2026-02-10-AAPL-1 --setup "VWAP reclaim"
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ingest = subparsers.add_parser("ingest", help="Parse a day's exports into a daily log")
    ingest.add_argument("-d", "--date", type=_date_arg, help="Trading day (default: today)")
    ingest.add_argument("--source", type=Path, help="Folder holding trades-DATE.csv")
    ingest.add_argument("--dry-run", action="store_true", help="Print results without writing anything")
    ingest.add_argument("-o", "--output", choices=["text", "json", "yaml"], default="text")

    stats = subparsers.add_parser("stats", help="Daily, weekly or range statistics")
    period = stats.add_mutually_exclusive_group()
    period.add_argument("-d", "--date", type=_date_arg, help="Single day (default: today)")
    period.add_argument("--week", action="store_true", help="Last seven days including today")
    period.add_argument("--range", nargs=2, type=_date_arg, metavar=("FROM", "TO"), help="Date range")
    grouping = stats.add_mutually_exclusive_group()
    grouping.add_argument("--by-setup", action="store_const", const="setup", dest="grouping")
    grouping.add_argument("--by-time", action="store_const", const="time", dest="grouping")
    grouping.add_argument("--by-account", action="store_const", const="account", dest="grouping")
    stats.add_argument("--symbol", help="Only this symbol")

    review = subparsers.add_parser("review", help="End-of-day session review")
    review.add_argument("-d", "--date", type=_date_arg)

    list_cmd = subparsers.add_parser("list", help="List a day's round trips")
    list_cmd.add_argument("-d", "--date", type=_date_arg)

    log = subparsers.add_parser("log", help="Record a round trip by hand")
    log.add_argument("-t", "--ticker", required=True)
    log.add_argument("--side", choices=["long", "short"], default="long")
    log.add_argument("--entry", type=_price_arg, required=True)
    log.add_argument("--exit", type=_price_arg, required=True)
    log.add_argument("--shares", type=_shares_arg, required=True)
    log.add_argument("-d", "--date", type=_date_arg)
    log.add_argument("--setup")
    log.add_argument("--notes")

    tag = subparsers.add_parser("tag", help="Attach a setup and/or notes to a trade")
    tag.add_argument("trade_id")
    tag.add_argument("--setup")
    tag.add_argument("--notes")

    subparsers.add_parser("migrate", help="Load all YAML daily logs into the database")

    export = subparsers.add_parser("export", help="Write a day from the database to YAML")
    export.add_argument("-d", "--date", type=_date_arg)

    return parser


def resolve_period(args: argparse.Namespace, today: Optional[date] = None):
    """(from, to, label) for the stats command."""
    today = today or date.today()
    if args.range:
        start, end = args.range
        return start, end, f"{start.isoformat()} to {end.isoformat()}"
    if args.week:
        return today - timedelta(days=6), today, "Weekly"
    day = args.date or today
    return day, day, day.isoformat()


def cmd_ingest(plugin: TradePlugin, args) -> int:
    trade_date = args.date or date.today()
    result = plugin.ingest(trade_date, args.source, dry_run=args.dry_run)

    if result.status == STATUS_EMPTY:
        print(f"No valid fills found for {trade_date.isoformat()}.")
        return EXIT_OK

    if args.output == "json":
        print(daily_log_to_json(result.daily_log))
    elif args.output == "yaml":
        print(daily_log_to_yaml(result.daily_log))
    else:
        print(f"\n=== Ingested: {trade_date.isoformat()} ===\n")
        print(formatters.format_summary(result.daily_log))
        print()
        print(formatters.format_trades(result.round_trips))

    for warning in result.warnings:
        print(f"\n  WARNING: {warning.message}", file=sys.stderr)

    if args.dry_run:
        print("\n(dry run: nothing written)")
        return EXIT_OK

    print(f"\nWritten to: {result.output_path}")
    if result.saved:
        print(f"Database:   {plugin.store.provider}")
    elif result.storage_error:
        print(f"Database:   not saved ({result.storage_error})", file=sys.stderr)
    return EXIT_OK


def cmd_stats(plugin: TradePlugin, args) -> int:
    start, end, label = resolve_period(args)

    if args.grouping:
        stats = plugin.group_stats(args.grouping, start, end, args.symbol)
        if not stats:
            print("No trades found for the specified period.")
            return EXIT_OK
        if args.grouping == "setup":
            print(formatters.format_group_stats(stats, f"Stats by Setup: {label}", "Setup"))
        elif args.grouping == "time":
            print(formatters.format_group_stats(stats, f"Stats by Time of Day: {label}", "Time", key_width=16))
        else:
            print(formatters.format_group_stats(stats, f"Stats by Account Type: {label}", "Type",
                                                key_width=12, upper_keys=True))
        return EXIT_OK

    period = plugin.period_stats(start, end, args.symbol)
    if period.total_trades == 0:
        print("No trades found for the specified period.")
        return EXIT_OK
    print(formatters.format_period_stats(period, label, args.symbol))
    return EXIT_OK


def _missing_day(trade_date: date) -> int:
    print(f"No trade log for {trade_date.isoformat()}. Run 'ingest -d {trade_date.isoformat()}' first.",
          file=sys.stderr)
    return EXIT_ERROR


def cmd_review(plugin: TradePlugin, args) -> int:
    trade_date = args.date or date.today()
    daily_log = plugin.load_day(trade_date)
    if daily_log is None or not daily_log.trades:
        return _missing_day(trade_date)

    setups = plugin.group_stats("setup", trade_date, trade_date)
    print(formatters.format_review(daily_log, setups))
    return EXIT_OK


def cmd_list(plugin: TradePlugin, args) -> int:
    trade_date = args.date or date.today()
    daily_log = plugin.load_day(trade_date)
    if daily_log is None or not daily_log.trades:
        return _missing_day(trade_date)

    print(f"\n=== Trades: {trade_date.isoformat()} ===\n")
    print(formatters.format_trades(daily_log.trades))
    return EXIT_OK


def cmd_log(plugin: TradePlugin, args) -> int:
    direction = Direction(args.side)
    trip, path = plugin.log_manual_trade(
        args.ticker, direction, args.entry, args.exit, args.shares,
        trade_date=args.date, setup=args.setup, notes=args.notes,
    )
    print(f"\nLogged: {trip.id}")
    print(f"  {direction.value.upper()} {trip.total_shares} {trip.symbol} @ {args.entry} -> {args.exit}")
    print(f"  P&L: {formatters.money(trip.net_pnl)}")
    print(f"\nWritten to: {path}")
    return EXIT_OK


def cmd_tag(plugin: TradePlugin, args) -> int:
    if args.setup is None and args.notes is None:
        print("Nothing to tag: pass --setup and/or --notes.", file=sys.stderr)
        return EXIT_ERROR
    if not plugin.tag_trade(args.trade_id, setup=args.setup, notes=args.notes):
        print(f"Trade not found: {args.trade_id}", file=sys.stderr)
        return EXIT_ERROR
    print(f"Tagged {args.trade_id}")
    return EXIT_OK


def cmd_migrate(plugin: TradePlugin, args) -> int:
    result = plugin.migrate()
    for name in result.skipped:
        print(f"  SKIP  {name} (invalid format)")
    print(f"\n  Migrated: {result.days} days, {result.trades} trades")
    for table, count in plugin.stored_days().items():
        print(f"  {table}: {count} rows")
    return EXIT_OK


def cmd_export(plugin: TradePlugin, args) -> int:
    trade_date = args.date or date.today()
    exported = plugin.export_day(trade_date)
    if exported is None:
        print(f"No trades in database for {trade_date.isoformat()}.", file=sys.stderr)
        return EXIT_ERROR

    daily_log, path = exported
    print(f"\nExported {len(daily_log.trades)} trades for {trade_date.isoformat()}")
    print(f"Written to: {path}")
    return EXIT_OK


COMMANDS = {
    "ingest": cmd_ingest,
    "stats": cmd_stats,
    "review": cmd_review,
    "list": cmd_list,
    "log": cmd_log,
    "tag": cmd_tag,
    "migrate": cmd_migrate,
    "export": cmd_export,
}


def main(argv: Optional[Sequence[str]] = None, plugin: Optional[TradePlugin] = None) -> int:
    """Parse arguments, run one command and return its exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    try:
        config = plugin.config if plugin else get_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    config.get_logger("journal", level=logging.DEBUG if args.verbose else None)

    owns_plugin = plugin is None
    plugin = plugin or TradePlugin(config)
    try:
        return COMMANDS[args.command](plugin, args)
    except (SourceNotFoundError, TradeLogError) as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_ERROR
    except StorageError as e:
        print(f"Database error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except JournalError as e:
        logger.error(f"{args.command} failed: {e}")
        return EXIT_ERROR
    finally:
        if owns_plugin:
            plugin.close()


if __name__ == "__main__":
    sys.exit(main())
