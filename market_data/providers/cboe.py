"""
CBOE volatility index provider.

Downloads the free daily OHLC history CSV for VIX-family indices. Data is daily only and
carries no volume; each day becomes a single candle stamped 14:30 UTC (09:30 ET).
"""

import csv
import io
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

import requests

from ..config.schemas import ProviderSettings
from ..data.models import Candle
from .base import CandleProvider, DayCandles, http_get
from .errors import ParseError, ProviderConfigError
from .registry import register_provider

logger = logging.getLogger(__name__)

CBOE_BASE_URL = "https://cdn.cboe.com/api/global/us_indices/daily_prices"

_CSV_FILES = {
    "VIX": "VIX_History.csv",
    "VVIX": "VVIX_History.csv",
    "VIX9D": "VIX9D_History.csv",
    "OVX": "OVX_History.csv",
    "GVZ": "GVZ_History.csv",
}

DAILY_BAR_TIME_UTC = time(14, 30)


def csv_filename(symbol: str) -> Optional[str]:
    """History CSV name for a CBOE index symbol ('^VIX' and 'vix' accepted), or None"""
    return _CSV_FILES.get(symbol.strip().upper().lstrip("^"))


@dataclass
class CboeRow:
    """One parsed row of a CBOE history CSV"""
    day: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal

    def to_candle(self) -> Candle:
        return Candle(
            timestamp=datetime.combine(self.day, DAILY_BAR_TIME_UTC, tzinfo=timezone.utc),
            open=self.open,
            high=self.high,
            low=self.low,
            close=self.close,
            volume=0,
        )


def parse_cboe_csv(text: str) -> List[CboeRow]:
    """
    Parse a CBOE history CSV.

    Header: DATE,OPEN,HIGH,LOW,CLOSE. Dates are MM/DD/YYYY. Blank lines are skipped.

    Raises:
        ParseError: Empty input, unexpected header, or a malformed row (with line number)
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header is None:
        raise ParseError("empty CSV")

    header_upper = "".join(header).upper().replace(" ", "")
    if "DATE" not in header_upper or "CLOSE" not in header_upper:
        raise ParseError(f"unexpected CSV header: '{','.join(header)}'")

    rows = []
    for line_num, fields in enumerate(reader, start=2):
        if not fields or all(not f.strip() for f in fields):
            continue
        if len(fields) < 5:
            raise ParseError(f"line {line_num}: expected 5 fields, got {len(fields)}")

        try:
            day = datetime.strptime(fields[0].strip(), "%m/%d/%Y").date()
        except ValueError as e:
            raise ParseError(f"line {line_num}: invalid date '{fields[0]}': {e}") from e

        prices = []
        for name, raw in zip(("open", "high", "low", "close"), fields[1:5]):
            try:
                value = Decimal(raw.strip())
            except InvalidOperation:
                raise ParseError(f"line {line_num}: invalid {name} '{raw}'") from None
            if not value.is_finite():
                raise ParseError(f"line {line_num}: invalid {name} '{raw}'")
            prices.append(value)

        rows.append(CboeRow(day, *prices))

    return rows


@register_provider("cboe")
class CboeProvider(CandleProvider):
    """CBOE daily index history (VIX, VVIX, VIX9D, OVX, GVZ)"""

    def __init__(
        self,
        base_url: str = CBOE_BASE_URL,
        timeout: float = 30.0,
        user_agent: str = "Mozilla/5.0",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "CboeProvider":
        return cls(
            base_url=settings.cboe_base_url,
            timeout=settings.timeout_seconds,
            user_agent=settings.user_agent,
        )

    @property
    def name(self) -> str:
        return "cboe"

    def _fetch_csv(self, symbol: str) -> List[CboeRow]:
        filename = csv_filename(symbol)
        if filename is None:
            raise ProviderConfigError(
                f"unsupported CBOE symbol: '{symbol}'. Supported: {', '.join(_CSV_FILES)}"
            )
        url = f"{self.base_url}/{filename}"
        logger.debug(f"Fetching CBOE CSV from {url}")
        response = http_get(self.session, url, timeout=self.timeout, provider=self.name)
        return parse_cboe_csv(response.text)

    def fetch_candles(self, symbol: str, day: date) -> List[Candle]:
        return [row.to_candle() for row in self._fetch_csv(symbol) if row.day == day]

    def fetch_candles_range(self, symbol: str, start: date, end: date) -> List[DayCandles]:
        """Download the CSV once and group all rows in [start, end] by date"""
        logger.info(f"{symbol}: fetching CBOE daily data (full CSV download)")
        by_date: Dict[date, List[Candle]] = defaultdict(list)
        for row in self._fetch_csv(symbol):
            if start <= row.day <= end:
                by_date[row.day].append(row.to_candle())

        logger.debug(f"{symbol}: {len(by_date)} trading day(s) in range {start} to {end}")
        return [(day, by_date[day]) for day in sorted(by_date)]
