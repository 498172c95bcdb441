"""
Provider capability interface and shared HTTP helpers.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import requests

from ..data.calendars import weekdays
from ..data.models import Candle
from .errors import ApiError, RateLimitedError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60

DayCandles = Tuple[date, List[Candle]]


class CandleProvider(ABC):
    """
    Source of 5-minute candles.

    Subclasses implement fetch_candles for a single day. fetch_candles_range falls back to
    one fetch_candles call per weekday; providers with a bulk endpoint override it.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (for logging/display)"""

    @abstractmethod
    def fetch_candles(self, symbol: str, day: date) -> List[Candle]:
        """
        Fetch candles for a symbol on one date.

        Returns:
            Candles sorted by timestamp; empty if the date is not a trading day

        Raises:
            ProviderError: Any upstream failure
        """

    def fetch_candles_range(self, symbol: str, start: date, end: date) -> List[DayCandles]:
        """
        Fetch candles for every weekday in [start, end], grouped per day.

        Returns:
            List of (date, candles) in ascending date order
        """
        return [(day, self.fetch_candles(symbol, day)) for day in weekdays(start, end)]


def utc_midnight(day: date) -> datetime:
    return datetime.combine(day, time(0, 0), tzinfo=timezone.utc)


def group_by_utc_date(candles: Iterable[Candle]) -> List[DayCandles]:
    """Group candles by the UTC date of their timestamp, both levels sorted"""
    by_date: Dict[date, List[Candle]] = defaultdict(list)
    for candle in candles:
        by_date[candle.timestamp.astimezone(timezone.utc).date()].append(candle)
    return [
        (day, sorted(by_date[day], key=lambda c: c.timestamp))
        for day in sorted(by_date)
    ]


def http_get(
    session: requests.Session,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30.0,
    provider: Optional[str] = None,
    use_retry_after_header: bool = True,
) -> requests.Response:
    """
    GET with provider error mapping.

    Raises:
        RateLimitedError: HTTP 429
        ApiError: Any other non-2xx status
        TransportError: Connection/timeout failures
    """
    logger.debug(f"GET {url} params={params}")
    try:
        response = session.get(url, params=params, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"{provider or 'provider'}: request to {url} failed: {e}") from e

    if response.status_code == 429:
        retry_after = DEFAULT_RETRY_AFTER_SECONDS
        if use_retry_after_header:
            header = response.headers.get("Retry-After", "")
            if header.strip().isdigit():
                retry_after = int(header.strip())
        raise RateLimitedError(retry_after, provider=provider)

    if not response.ok:
        raise ApiError(response.status_code, response.text)

    return response
