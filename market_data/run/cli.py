"""
CLI entrypoint: populate, status, validate.
"""

import argparse
import logging
import sys
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

from ..config import AppConfig, load_config, apply_env_overrides, apply_cli_overrides
from ..data import CandleStore, SessionClassifier
from ..providers import get_provider, list_providers
from .runner import run_populate, collect_status, run_validate

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Setup logging configuration"""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_date(value: str) -> date:
    """argparse type for YYYY-MM-DD dates"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD")


def parse_symbols(value: str) -> List[str]:
    """argparse type for comma-separated symbol lists"""
    symbols = [s.strip() for s in value.split(",") if s.strip()]
    if not symbols:
        raise argparse.ArgumentTypeError("expected at least one symbol")
    return symbols


def yesterday_utc() -> date:
    return datetime.now(timezone.utc).date() - timedelta(days=1)


def resolve_config(config_path: Optional[str], sets: List[str]) -> AppConfig:
    """Config file (or defaults), then MDATA__ env overrides, then --set overrides"""
    config = load_config(config_path) if config_path else AppConfig()
    config = apply_env_overrides(config)
    if sets:
        config = apply_cli_overrides(config, sets)
    return config


def build_store(config: AppConfig, data_dir: Optional[str]) -> CandleStore:
    classifier = SessionClassifier(config.session.exchange_timezone)
    return CandleStore(data_dir or config.store.root, classifier=classifier)


def cmd_populate(args: argparse.Namespace, config: AppConfig, store: CandleStore) -> int:
    """Fetch missing (or all, with --force) dates and write them to the store"""
    end = args.end or yesterday_utc()
    if args.start > end:
        print(f"ERROR: --start {args.start} is after --end {end}", file=sys.stderr)
        return 1

    provider_name = args.provider or config.populate.provider
    provider = get_provider(provider_name, config.providers)

    result = run_populate(
        store,
        provider,
        args.symbols,
        args.start,
        end,
        force=args.force,
        max_gap_days=config.populate.max_gap_days,
        rate_limit_retries=config.populate.rate_limit_retries,
        max_retry_wait_seconds=config.populate.max_retry_wait_seconds,
    )

    print(f"Wrote {result.candles_written} candle(s) across {result.days_written} day(s).")
    for failure in result.failures:
        print(f"WARN: {failure.symbol} {failure.start} to {failure.end}: {failure.error}")
    return 0


def cmd_status(args: argparse.Namespace, store: CandleStore) -> int:
    """Print stored date coverage per symbol"""
    statuses = collect_status(store, args.symbol)
    if not statuses:
        print("No data in store.")
        return 0

    for status in statuses:
        print(status.describe())
    return 0


def cmd_validate(args: argparse.Namespace, store: CandleStore) -> int:
    """Check every stored day file and print issues"""
    report = run_validate(store, args.symbols)
    if not report.symbols:
        print("No data to validate.")
        return 0

    for issue in report.issues:
        print(issue)

    if report.ok:
        print("All files valid.")
    else:
        print(f"{len(report.issues)} issue(s) found.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="market-data",
        description="Market data store - populate, inspect and validate 5-minute candles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch missing data for two symbols
  market-data populate -s AAPL,MSFT --start 2025-01-01 --end 2025-01-31

  # Refetch everything from Yahoo
  market-data populate -s SPY --start 2025-01-01 --provider yahoo --force

  # Show stored coverage
  market-data status -s AAPL

  # Validate all day files
  market-data --data-dir /srv/market-data validate
        """,
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        help="Store root directory (default: store.root from config, '.')",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to config file (YAML or JSON)",
    )

    parser.add_argument(
        "--set",
        action="append",
        dest="sets",
        metavar="KEY=VALUE",
        help="Override config value (can be used multiple times). Use nested keys: populate.max_gap_days=5",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: log_level from config, INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    populate = subparsers.add_parser("populate", help="Fetch data from a provider into the store")
    populate.add_argument(
        "-s", "--symbols",
        type=parse_symbols,
        required=True,
        help="Comma-separated symbols, e.g. AAPL,MSFT",
    )
    populate.add_argument("--start", type=parse_date, required=True, help="Start date (YYYY-MM-DD)")
    populate.add_argument("--end", type=parse_date, help="End date (YYYY-MM-DD, default: yesterday UTC)")
    populate.add_argument(
        "--provider",
        choices=list_providers(),
        help="Data provider (default: populate.provider from config)",
    )
    populate.add_argument("--force", action="store_true", help="Refetch dates that already have data")

    status = subparsers.add_parser("status", help="Show stored date coverage")
    status.add_argument("-s", "--symbol", type=str, help="Single symbol (all if omitted)")

    validate = subparsers.add_parser("validate", help="Check stored day files")
    validate.add_argument(
        "-s", "--symbols",
        type=parse_symbols,
        help="Comma-separated symbols (all if omitted)",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entrypoint"""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = resolve_config(args.config, args.sets or [])
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or config.log_level)

    try:
        store = build_store(config, args.data_dir)
        if args.command == "populate":
            return cmd_populate(args, config, store)
        if args.command == "status":
            return cmd_status(args, store)
        return cmd_validate(args, store)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        logger.exception(f"{args.command} failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())
