"""
Errors raised by the candle store and codec.

Filesystem failures are not wrapped: they propagate as OSError.
"""

from datetime import date
from pathlib import Path
from typing import Any, Optional


class MarketDataError(Exception):
    """Base class for store and codec errors"""


class NoDataError(MarketDataError):
    """No day file exists for the requested symbol and date"""

    def __init__(self, symbol: str, day: date):
        super().__init__(f"No data found for {symbol} on {day.isoformat()}")
        self.symbol = symbol
        self.day = day


class DecodeError(MarketDataError):
    """Columnar content does not match the candle schema"""

    def __init__(
        self,
        message: str,
        column: Optional[str] = None,
        row: Optional[int] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.column = column
        self.row = row
        self.value = value


class CorruptFileError(MarketDataError):
    """A day file exists but is not readable as Parquet"""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Corrupt or unreadable file {path}: {reason}")
        self.path = path
        self.reason = reason
