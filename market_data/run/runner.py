"""
Runner: populate the store from a provider, report status, validate day files.

The CLI is a thin layer over these functions; they return result objects and never print.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from ..data import CandleStore, MarketDataError, canonical_symbol, contiguous_ranges, weekdays
from ..data.ranges import DEFAULT_MAX_GAP_DAYS
from ..providers import CandleProvider, ProviderError, RateLimitedError

logger = logging.getLogger(__name__)


@dataclass
class RangeFailure:
    """A fetch range that could not be populated"""
    symbol: str
    start: date
    end: date
    error: str


@dataclass
class SymbolPopulateStats:
    """Per-symbol populate outcome"""
    symbol: str
    dates_requested: int = 0
    ranges: List[Tuple[date, date]] = field(default_factory=list)
    days_written: int = 0
    candles_written: int = 0
    skipped: bool = False


@dataclass
class PopulateResult:
    """Result of a populate run"""
    provider: str
    symbols: List[SymbolPopulateStats] = field(default_factory=list)
    failures: List[RangeFailure] = field(default_factory=list)

    @property
    def days_written(self) -> int:
        return sum(s.days_written for s in self.symbols)

    @property
    def candles_written(self) -> int:
        return sum(s.candles_written for s in self.symbols)

    @property
    def ok(self) -> bool:
        return not self.failures


def _fetch_with_retry(
    provider: CandleProvider,
    symbol: str,
    start: date,
    end: date,
    rate_limit_retries: int,
    max_retry_wait_seconds: float,
):
    attempt = 0
    while True:
        try:
            return provider.fetch_candles_range(symbol, start, end)
        except RateLimitedError as e:
            if attempt >= rate_limit_retries:
                raise
            attempt += 1
            wait = min(e.retry_after_seconds, max_retry_wait_seconds)
            logger.warning(
                f"{symbol}: {start} to {end}: rate limited, retry {attempt}/{rate_limit_retries} in {wait:g}s"
            )
            time.sleep(wait)


def run_populate(
    store: CandleStore,
    provider: CandleProvider,
    symbols: List[str],
    start: date,
    end: date,
    force: bool = False,
    max_gap_days: int = DEFAULT_MAX_GAP_DAYS,
    rate_limit_retries: int = 2,
    max_retry_wait_seconds: float = 300.0,
) -> PopulateResult:
    """
    Fetch and store candles for each symbol over [start, end].

    Only weekdays without a day file are fetched unless force is set. Dates are grouped
    into contiguous ranges so providers with a bulk endpoint make one call per range.
    Days the provider returns no candles for are not written, so they stay "missing" and
    will be retried on the next run.

    Args:
        store: Target store
        provider: Candle source
        symbols: Symbols to populate (upper-cased)
        start: First date (inclusive)
        end: Last date (inclusive)
        force: Refetch and overwrite dates that already have a day file
        max_gap_days: Largest calendar gap merged into one range
        rate_limit_retries: Retries per range after RateLimitedError
        max_retry_wait_seconds: Cap on a single rate-limit wait

    Returns:
        PopulateResult with per-symbol counts and failed ranges

    Raises:
        OSError: A day file could not be written
    """
    logger.info(f"Using provider: {provider.name}")
    result = PopulateResult(provider=provider.name)

    for raw_symbol in symbols:
        symbol = canonical_symbol(raw_symbol)
        stats = SymbolPopulateStats(symbol=symbol)
        result.symbols.append(stats)

        dates_to_fetch = weekdays(start, end) if force else store.missing_dates(symbol, start, end)
        if not dates_to_fetch:
            logger.info(f"{symbol}: all data present, skipping")
            stats.skipped = True
            continue

        stats.dates_requested = len(dates_to_fetch)
        logger.info(
            f"{symbol}: {len(dates_to_fetch)} missing date(s) from {dates_to_fetch[0]} to {dates_to_fetch[-1]}"
        )

        stats.ranges = contiguous_ranges(dates_to_fetch, max_gap_days=max_gap_days)
        logger.info(f"{symbol}: fetching in {len(stats.ranges)} range(s)")

        for range_start, range_end in stats.ranges:
            try:
                day_groups = _fetch_with_retry(
                    provider, symbol, range_start, range_end, rate_limit_retries, max_retry_wait_seconds
                )
            except ProviderError as e:
                logger.warning(f"{symbol}: {range_start} to {range_end}: fetch failed: {e}")
                result.failures.append(RangeFailure(symbol, range_start, range_end, str(e)))
                continue

            days_written = 0
            candles_written = 0
            for day, candles in day_groups:
                if not candles:
                    continue
                store.write_day(symbol, day, candles)
                days_written += 1
                candles_written += len(candles)

            stats.days_written += days_written
            stats.candles_written += candles_written
            logger.info(
                f"{symbol}: {range_start} to {range_end}: wrote {candles_written} candle(s) across {days_written} day(s)"
            )

    return result


@dataclass
class SymbolStatus:
    """Stored coverage for one symbol"""
    symbol: str
    day_count: int
    first: Optional[date] = None
    last: Optional[date] = None

    def describe(self) -> str:
        if not self.day_count:
            return f"{self.symbol}: no data"
        return f"{self.symbol}: {self.day_count} day(s), {self.first} to {self.last}"


def collect_status(store: CandleStore, symbol: Optional[str] = None) -> List[SymbolStatus]:
    """
    Summarize stored dates per symbol.

    Args:
        store: Store to inspect
        symbol: Single symbol to report; all stored symbols if None

    Returns:
        One SymbolStatus per symbol (empty list if the store has no symbols)
    """
    symbols = [canonical_symbol(symbol)] if symbol else store.list_symbols()

    statuses = []
    for sym in symbols:
        dates = store.list_dates(sym)
        if dates:
            statuses.append(SymbolStatus(sym, len(dates), dates[0], dates[-1]))
        else:
            statuses.append(SymbolStatus(sym, 0))
    return statuses


@dataclass
class ValidationIssue:
    """One problem found in a day file"""
    level: str  # "WARN" or "ERROR"
    symbol: str
    day: date
    message: str

    def __str__(self) -> str:
        return f"{self.level}: {self.symbol} {self.day}: {self.message}"


@dataclass
class ValidationReport:
    """Result of validating stored day files"""
    symbols: List[str] = field(default_factory=list)
    files_checked: int = 0
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


def run_validate(store: CandleStore, symbols: Optional[List[str]] = None) -> ValidationReport:
    """
    Read every stored day file and report problems.

    Empty files, timestamps that are not strictly ascending, and zero-volume candles are
    WARN issues; files that cannot be read are ERROR issues. A bad file never stops the run.

    Args:
        store: Store to validate
        symbols: Symbols to check; all stored symbols if None

    Returns:
        ValidationReport listing issues in symbol/date order
    """
    if symbols is None:
        to_check = store.list_symbols()
    else:
        to_check = [canonical_symbol(s) for s in symbols]

    report = ValidationReport(symbols=to_check)

    for sym in to_check:
        for day in store.list_dates(sym):
            report.files_checked += 1
            try:
                candles = store.read_day(sym, day)
            except (MarketDataError, OSError) as e:
                logger.debug(f"Failed to read {sym} {day}", exc_info=True)
                report.issues.append(ValidationIssue("ERROR", sym, day, f"failed to read: {e}"))
                continue

            if not candles:
                report.issues.append(ValidationIssue("WARN", sym, day, "empty file"))
                continue

            for i in range(1, len(candles)):
                if candles[i].timestamp <= candles[i - 1].timestamp:
                    report.issues.append(
                        ValidationIssue("WARN", sym, day, f"timestamps not strictly ascending at index {i}")
                    )
                    break

            zero_volume = sum(1 for c in candles if c.volume == 0)
            if zero_volume:
                report.issues.append(
                    ValidationIssue("WARN", sym, day, f"{zero_volume} candle(s) with zero volume")
                )

    logger.info(f"Validated {report.files_checked} file(s), {len(report.issues)} issue(s)")
    return report
