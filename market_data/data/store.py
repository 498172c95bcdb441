"""
Filesystem-backed candle store.

One Parquet file per symbol per date:

    {root}/data/{SYMBOL}/{YYYY}/{MM}/{YYYY-MM-DD}.parquet

The store keeps no state besides its data directory. Every call goes back to the
filesystem, and the list of stored dates is rebuilt by scanning directories each time.
Writers to the same day file are not coordinated: the last write wins.
"""

import logging
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd

from .calendars import weekdays
from .codec import candles_to_frame, load, persist
from .errors import NoDataError
from .models import Candle, Session
from .sessions import SessionClassifier

logger = logging.getLogger(__name__)

FILE_EXTENSION = ".parquet"
DATA_SUBDIR = "data"


def canonical_symbol(symbol: str) -> str:
    """Symbols are stored upper case: 'aapl' and 'AAPL' share one directory"""
    return symbol.strip().upper()


class CandleStore:
    """
    Day-partitioned Parquet store for 5-minute candles.

    Symbols are upper-cased before any path is computed. Session queries use the
    injected SessionClassifier (America/New_York by default).
    """

    def __init__(self, root: Path | str, classifier: Optional[SessionClassifier] = None):
        """
        Initialize a store rooted at the given directory.

        Args:
            root: Root directory; day files live under root/data/
            classifier: Session classifier for read_range_by_session (default: New York)
        """
        self.data_dir = Path(root) / DATA_SUBDIR
        self.classifier = classifier or SessionClassifier()

    @classmethod
    def from_data_dir(cls, data_dir: Path | str, classifier: Optional[SessionClassifier] = None) -> "CandleStore":
        """Create a store pointing directly at the data directory (no data/ suffix)"""
        store = cls(data_dir, classifier)
        store.data_dir = Path(data_dir)
        return store

    def file_path(self, symbol: str, day: date) -> Path:
        """
        Path to the day file for a symbol and date.

        Example:
            >>> CandleStore("/srv/md").file_path("aapl", date(2025, 1, 15))
            PosixPath('/srv/md/data/AAPL/2025/01/2025-01-15.parquet')
        """
        return (
            self.data_dir
            / canonical_symbol(symbol)
            / f"{day.year:04d}"
            / f"{day.month:02d}"
            / f"{day.isoformat()}{FILE_EXTENSION}"
        )

    def has_data(self, symbol: str, day: date) -> bool:
        """Check if a day file exists (contents are not validated)"""
        return self.file_path(symbol, day).exists()

    def missing_dates(self, symbol: str, start: date, end: date) -> List[date]:
        """
        Find which weekdays in [start, end] have no day file.

        Returns:
            Ascending list of dates without data
        """
        return [d for d in weekdays(start, end) if not self.has_data(symbol, d)]

    def write_day(self, symbol: str, day: date, candles: List[Candle]) -> None:
        """
        Write candles for a single date, replacing any existing file.

        Existing content is never merged; an empty list writes a zero-row file.

        Raises:
            OSError: Directory creation or write failed
        """
        path = self.file_path(symbol, day)
        path.parent.mkdir(parents=True, exist_ok=True)
        persist(path, candles)

    def read_day(self, symbol: str, day: date) -> List[Candle]:
        """
        Read all candles for a symbol on one date.

        Raises:
            NoDataError: No day file exists
            CorruptFileError: The file is not readable Parquet
            DecodeError: The file content does not match the candle schema
        """
        path = self.file_path(symbol, day)
        if not path.exists():
            raise NoDataError(canonical_symbol(symbol), day)
        return load(path)

    def read_range(self, symbol: str, start: date, end: date) -> List[Candle]:
        """
        Read candles across a date range (inclusive).

        Dates without a day file are skipped. The combined result is sorted by timestamp.

        Returns:
            Candles ascending by timestamp
        """
        candles: List[Candle] = []
        for day in weekdays(start, end):
            path = self.file_path(symbol, day)
            if path.exists():
                candles.extend(load(path))

        candles.sort(key=lambda c: c.timestamp)
        return candles

    def read_range_by_session(self, symbol: str, start: date, end: date, session: Session) -> List[Candle]:
        """Read a date range keeping only candles in the given session (exchange local time)"""
        return [
            c for c in self.read_range(symbol, start, end)
            if self.classifier.classify(c.timestamp) == session
        ]

    def read_time_window(self, symbol: str, day: date, start_time: time, end_time: time) -> List[Candle]:
        """
        Read one date keeping candles whose UTC time of day is in [start_time, end_time].

        Note the window is UTC, unlike read_range_by_session which works in exchange
        local time.

        Raises:
            NoDataError: No day file exists
        """
        candles = self.read_day(symbol, day)
        return [
            c for c in candles
            if start_time <= _utc_time_of_day(c.timestamp) <= end_time
        ]

    def read_frame(self, symbol: str, start: date, end: date) -> pd.DataFrame:
        """Read a date range as a DataFrame indexed by timestamp"""
        return candles_to_frame(self.read_range(symbol, start, end))

    def list_symbols(self) -> List[str]:
        """
        List symbols with a directory in the store, sorted.

        Returns an empty list if the data directory does not exist yet.
        """
        if not self.data_dir.exists():
            return []
        return sorted(entry.name for entry in self.data_dir.iterdir() if entry.is_dir())

    def list_dates(self, symbol: str) -> List[date]:
        """
        List all dates with a day file for a symbol, sorted ascending.

        Walks year/month/file directories. Entries that are not YYYY-MM-DD.parquet
        files are ignored.
        """
        symbol_dir = self.data_dir / canonical_symbol(symbol)
        if not symbol_dir.exists():
            return []

        dates = []
        for year_dir in symbol_dir.iterdir():
            if not year_dir.is_dir():
                continue
            for month_dir in year_dir.iterdir():
                if not month_dir.is_dir():
                    continue
                for entry in month_dir.iterdir():
                    if not entry.name.endswith(FILE_EXTENSION):
                        continue
                    try:
                        dates.append(datetime.strptime(entry.name[:-len(FILE_EXTENSION)], "%Y-%m-%d").date())
                    except ValueError:
                        logger.debug(f"Ignoring unexpected file in store: {entry}")

        dates.sort()
        return dates

    def date_range(self, symbol: str) -> Optional[Tuple[date, date]]:
        """Earliest and latest stored dates for a symbol, or None if there are none"""
        dates = self.list_dates(symbol)
        if not dates:
            return None
        return dates[0], dates[-1]


def _utc_time_of_day(ts: datetime) -> time:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.time()
