"""
Trading session classification.

A UTC instant is converted to exchange local time (DST-aware) and bucketed by minute of day:

    PRE_MARKET   04:00 - 09:29
    REGULAR      09:30 - 15:59
    AFTER_HOURS  16:00 - 19:59

Anything else is unclassified (None).
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from .models import Session

DEFAULT_EXCHANGE_TZ = "America/New_York"

# Minute-of-day bounds, start inclusive / end exclusive
PRE_MARKET_START = 4 * 60
REGULAR_START = 9 * 60 + 30
AFTER_HOURS_START = 16 * 60
AFTER_HOURS_END = 20 * 60


class SessionClassifier:
    """Maps UTC instants to trading sessions for one exchange time zone"""

    def __init__(self, tz: tzinfo | str = DEFAULT_EXCHANGE_TZ):
        """
        Args:
            tz: Exchange time zone, either a tzinfo or an IANA name (default America/New_York)
        """
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def classify(self, ts: datetime) -> Optional[Session]:
        """
        Classify a timestamp into a trading session.

        Naive timestamps are treated as UTC.

        Returns:
            Session, or None outside 04:00-20:00 exchange time
        """
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        local = ts.astimezone(self.tz)
        minute_of_day = local.hour * 60 + local.minute

        if PRE_MARKET_START <= minute_of_day < REGULAR_START:
            return Session.PRE_MARKET
        if REGULAR_START <= minute_of_day < AFTER_HOURS_START:
            return Session.REGULAR
        if AFTER_HOURS_START <= minute_of_day < AFTER_HOURS_END:
            return Session.AFTER_HOURS
        return None


_default_classifier = SessionClassifier()


def classify_session(ts: datetime) -> Optional[Session]:
    """Classify using the default exchange time zone (America/New_York)"""
    return _default_classifier.classify(ts)
