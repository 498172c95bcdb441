"""
Data models for candles and trading sessions.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


@dataclass(frozen=True)
class Candle:
    """
    A single 5-minute OHLCV bar.

    Prices are Decimal (never float) so values round-trip through the store exactly.
    """
    timestamp: datetime  # Bar start in UTC (timezone-aware, microsecond resolution)
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int


class Session(Enum):
    """Trading session, classified in exchange local time"""
    PRE_MARKET = "pre_market"  # 04:00 - 09:30
    REGULAR = "regular"  # 09:30 - 16:00
    AFTER_HOURS = "after_hours"  # 16:00 - 20:00
