"""
Alpaca market data provider.

Authenticates via APCA-API-KEY-ID and APCA-API-SECRET-KEY headers. Bars are requested
with split adjustment and paged with next_page_token.
"""

import logging
import os
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from ..config.schemas import ProviderSettings
from ..data.models import Candle
from .base import CandleProvider, DayCandles, group_by_utc_date, http_get, utc_midnight
from .errors import ParseError, ProviderConfigError
from .registry import register_provider

logger = logging.getLogger(__name__)

ALPACA_DATA_BASE_URL = "https://data.alpaca.markets/v2"
KEY_ID_ENV = "ALPACA_API_KEY_ID"
SECRET_KEY_ENV = "ALPACA_API_SECRET_KEY"
PAGE_LIMIT = 10000


def parse_alpaca_bar(bar: Dict[str, Any]) -> Candle:
    """
    Convert one Alpaca bar object into a Candle.

    Expects keys t (RFC3339), o, h, l, c, v. Prices should already be Decimal (the
    response is parsed with parse_float=Decimal); ints and strings are accepted too.
    """
    try:
        raw_ts = bar["t"]
        timestamp = datetime.fromisoformat(raw_ts.replace("Z", "+00:00")).astimezone(timezone.utc)
    except (KeyError, AttributeError, ValueError) as e:
        raise ParseError(f"invalid timestamp in bar {bar!r}: {e}") from e

    try:
        return Candle(
            timestamp=timestamp,
            open=Decimal(str(bar["o"])),
            high=Decimal(str(bar["h"])),
            low=Decimal(str(bar["l"])),
            close=Decimal(str(bar["c"])),
            volume=int(bar["v"]),
        )
    except (KeyError, ArithmeticError, TypeError, ValueError) as e:
        raise ParseError(f"invalid bar {bar!r}: {e}") from e


@register_provider("alpaca")
class AlpacaProvider(CandleProvider):
    """Alpaca v2 stock bars (5Min timeframe)"""

    def __init__(
        self,
        api_key_id: str,
        api_secret_key: str,
        base_url: str = ALPACA_DATA_BASE_URL,
        feed: str = "iex",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key_id = api_key_id
        self.api_secret_key = api_secret_key
        self.base_url = base_url.rstrip("/")
        self.feed = feed
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_env(cls, **kwargs) -> "AlpacaProvider":
        """Create from ALPACA_API_KEY_ID and ALPACA_API_SECRET_KEY"""
        api_key_id = os.environ.get(KEY_ID_ENV)
        if not api_key_id:
            raise ProviderConfigError(f"{KEY_ID_ENV} not set")
        api_secret_key = os.environ.get(SECRET_KEY_ENV)
        if not api_secret_key:
            raise ProviderConfigError(f"{SECRET_KEY_ENV} not set")
        return cls(api_key_id, api_secret_key, **kwargs)

    @classmethod
    def from_settings(cls, settings: ProviderSettings) -> "AlpacaProvider":
        """Credentials from settings, falling back to the environment"""
        kwargs = dict(
            base_url=settings.alpaca_base_url,
            feed=settings.alpaca_feed,
            timeout=settings.timeout_seconds,
        )
        if settings.alpaca_api_key_id and settings.alpaca_api_secret_key:
            return cls(settings.alpaca_api_key_id, settings.alpaca_api_secret_key, **kwargs)
        return cls.from_env(**kwargs)

    @property
    def name(self) -> str:
        return "alpaca"

    def _fetch_bars(self, symbol: str, start: datetime, end: datetime) -> List[Candle]:
        """Fetch all pages of bars in [start, end)"""
        url = f"{self.base_url}/stocks/{symbol}/bars"
        headers = {
            "APCA-API-KEY-ID": self.api_key_id,
            "APCA-API-SECRET-KEY": self.api_secret_key,
        }
        params = {
            "timeframe": "5Min",
            "start": start.isoformat(),
            "end": end.isoformat(),
            "adjustment": "split",
            "feed": self.feed,
            "limit": str(PAGE_LIMIT),
        }

        candles: List[Candle] = []
        page_token: Optional[str] = None

        while True:
            if page_token:
                params["page_token"] = page_token
            response = http_get(self.session, url, params=params, headers=headers, timeout=self.timeout, provider=self.name)

            try:
                body = response.json(parse_float=Decimal)
            except ValueError as e:
                raise ParseError(f"failed to parse response: {e}") from e
            if not isinstance(body, dict):
                raise ParseError(f"unexpected response body: {body!r}")

            for bar in body.get("bars") or []:
                candles.append(parse_alpaca_bar(bar))

            page_token = body.get("next_page_token")
            if not page_token:
                break

        candles.sort(key=lambda c: c.timestamp)
        return candles

    def fetch_candles(self, symbol: str, day: date) -> List[Candle]:
        return self._fetch_bars(symbol, utc_midnight(day), utc_midnight(day + timedelta(days=1)))

    def fetch_candles_range(self, symbol: str, start: date, end: date) -> List[DayCandles]:
        """Single paged request for the whole range, grouped by UTC date"""
        candles = self._fetch_bars(symbol, utc_midnight(start), utc_midnight(end + timedelta(days=1)))
        logger.debug(f"{symbol}: alpaca returned {len(candles)} bar(s) for {start} to {end}")
        return group_by_utc_date(candles)
