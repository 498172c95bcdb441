"""
Data layer: candle models, calendars, sessions, codec, store
"""

from .models import Candle, Session
from .errors import MarketDataError, NoDataError, DecodeError, CorruptFileError
from .calendars import weekdays, is_weekday
from .sessions import SessionClassifier, classify_session, DEFAULT_EXCHANGE_TZ
from .ranges import contiguous_ranges, DEFAULT_MAX_GAP_DAYS
from .codec import CANDLE_SCHEMA, encode, decode, persist, load, candles_to_frame
from .store import CandleStore, canonical_symbol

__all__ = [
    "Candle",
    "Session",
    "MarketDataError",
    "NoDataError",
    "DecodeError",
    "CorruptFileError",
    "weekdays",
    "is_weekday",
    "SessionClassifier",
    "classify_session",
    "DEFAULT_EXCHANGE_TZ",
    "contiguous_ranges",
    "DEFAULT_MAX_GAP_DAYS",
    "CANDLE_SCHEMA",
    "encode",
    "decode",
    "persist",
    "load",
    "candles_to_frame",
    "CandleStore",
    "canonical_symbol",
]
