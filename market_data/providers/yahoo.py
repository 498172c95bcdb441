"""
Yahoo Finance chart API provider.

No authentication required. Intraday (5m) history is limited to roughly the last
60 days; daily bars go back decades.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from ..config.schemas import ProviderSettings
from ..data.models import Candle
from .base import CandleProvider, DayCandles, group_by_utc_date, http_get, utc_midnight
from .errors import ApiError, ParseError
from .registry import register_provider

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"


def _to_decimal(value: Any) -> Decimal:
    # Floats (if any slipped through) go via their shortest repr
    return Decimal(repr(value)) if isinstance(value, float) else Decimal(value)


def parse_chart_response(body: Dict[str, Any]) -> List[Candle]:
    """
    Parse a chart API response body into candles sorted by timestamp.

    Rows with a missing open/high/low/close are skipped; a missing volume becomes 0.

    Raises:
        ApiError: The body carries chart.error
        ParseError: The body is not shaped like a chart response
    """
    try:
        chart = body["chart"]
    except (KeyError, TypeError) as e:
        raise ParseError(f"missing 'chart' in response: {e}") from e

    error = chart.get("error")
    if error:
        raise ApiError(0, f"{error.get('code')}: {error.get('description')}")

    results = chart.get("result")
    if results is None:
        raise ParseError("no results in response")
    if not results:
        return []

    result = results[0]
    timestamps = result.get("timestamp")
    if timestamps is None:
        raise ParseError("missing timestamps")

    quotes = result.get("indicators", {}).get("quote") or []
    if not quotes:
        return []
    quote = quotes[0]

    def column(name: str) -> List[Any]:
        return quote.get(name) or []

    opens, highs, lows, closes, volumes = (column(n) for n in ("open", "high", "low", "close", "volume"))

    candles = []
    for i, ts in enumerate(timestamps):
        values = [col[i] if i < len(col) else None for col in (opens, highs, lows, closes)]
        if any(v is None for v in values):
            continue
        volume = volumes[i] if i < len(volumes) and volumes[i] is not None else 0

        try:
            timestamp = datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, TypeError, ValueError) as e:
            raise ParseError(f"invalid unix timestamp: {ts}") from e

        try:
            open_, high, low, close = (_to_decimal(v) for v in values)
        except (ArithmeticError, TypeError, ValueError) as e:
            raise ParseError(f"invalid decimal value at index {i}: {e}") from e

        candles.append(Candle(timestamp=timestamp, open=open_, high=high, low=low, close=close, volume=int(volume)))

    candles.sort(key=lambda c: c.timestamp)
    return candles


@register_provider("yahoo")
class YahooProvider(CandleProvider):
    """Yahoo chart API (5m intraday, 1d daily)"""

    def __init__(
        self,
        base_url: str = YAHOO_CHART_URL,
        timeout: float = 30.0,
        user_agent: str = "Mozilla/5.0",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = user_agent

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "YahooProvider":
        return cls(
            base_url=settings.yahoo_base_url,
            timeout=settings.timeout_seconds,
            user_agent=settings.user_agent,
        )

    @property
    def name(self) -> str:
        return "yahoo"

    def _fetch_chart(self, symbol: str, start: date, end: date, interval: str) -> List[Candle]:
        """Fetch bars for [start 00:00 UTC, end+1 00:00 UTC)"""
        params = {
            "period1": int(utc_midnight(start).timestamp()),
            "period2": int(utc_midnight(end + timedelta(days=1)).timestamp()),
            "interval": interval,
        }
        response = http_get(
            self.session,
            f"{self.base_url}/{symbol}",
            params=params,
            timeout=self.timeout,
            provider=self.name,
            use_retry_after_header=False,
        )
        try:
            body = response.json(parse_float=Decimal)
        except ValueError as e:
            raise ParseError(f"failed to parse response: {e}") from e
        return parse_chart_response(body)

    def fetch_candles(self, symbol: str, day: date) -> List[Candle]:
        return self._fetch_chart(symbol, day, day, "5m")

    def fetch_candles_range(self, symbol: str, start: date, end: date) -> List[DayCandles]:
        """One chart request for the whole range, grouped by UTC date"""
        return group_by_utc_date(self._fetch_chart(symbol, start, end, "5m"))

    def fetch_daily_bars(self, symbol: str, start: date, end: date) -> List[Candle]:
        """
        Fetch split-adjusted daily OHLCV bars for [start, end].

        Returns:
            Candles sorted by timestamp (one per trading day)
        """
        return self._fetch_chart(symbol, start, end, "1d")
