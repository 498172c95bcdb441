"""
Columnar encoding of candles to Arrow record batches and Parquet day files.

Schema (all columns non-nullable):
- timestamp: timestamp[us, tz=UTC]
- open, high, low, close: string (canonical decimal text, exact round-trip)
- volume: int64

Prices are stored as decimal text rather than float so that values such as 0.0001 or
99999.9999 are read back exactly.
"""

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Sequence, Union

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from .errors import CorruptFileError, DecodeError
from .models import Candle

logger = logging.getLogger(__name__)

PRICE_FIELDS = ("open", "high", "low", "close")

CANDLE_SCHEMA = pa.schema([
    pa.field("timestamp", pa.timestamp("us", tz="UTC"), nullable=False),
    pa.field("open", pa.string(), nullable=False),
    pa.field("high", pa.string(), nullable=False),
    pa.field("low", pa.string(), nullable=False),
    pa.field("close", pa.string(), nullable=False),
    pa.field("volume", pa.int64(), nullable=False),
])

PARQUET_COMPRESSION = "snappy"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _to_micros(ts: datetime) -> int:
    """Microseconds since the Unix epoch; naive timestamps are taken as UTC"""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    delta = ts - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def _from_micros(micros: int) -> datetime:
    return _EPOCH + timedelta(microseconds=micros)


def encode(candles: Sequence[Candle]) -> pa.RecordBatch:
    """
    Encode candles into a record batch, preserving input order.

    An empty sequence encodes to a valid zero-row batch.
    """
    arrays = [
        pa.array([_to_micros(c.timestamp) for c in candles], type=pa.timestamp("us", tz="UTC")),
        *[
            pa.array([str(getattr(c, name)) for c in candles], type=pa.string())
            for name in PRICE_FIELDS
        ],
        pa.array([c.volume for c in candles], type=pa.int64()),
    ]
    return pa.RecordBatch.from_arrays(arrays, schema=CANDLE_SCHEMA)


def _check_schema(schema: pa.Schema) -> None:
    """Raise DecodeError if any candle column is absent or has the wrong type"""
    for expected in CANDLE_SCHEMA:
        idx = schema.get_field_index(expected.name)
        if idx < 0:
            raise DecodeError(f"missing column '{expected.name}'", column=expected.name)
        actual = schema.field(idx).type
        if actual != expected.type:
            raise DecodeError(
                f"column '{expected.name}' has type {actual}, expected {expected.type}",
                column=expected.name,
                value=str(actual),
            )


def _parse_price(column: str, row: int, text) -> Decimal:
    if text is None:
        raise DecodeError(f"null {column} at row {row}", column=column, row=row)
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise DecodeError(f"invalid {column} at row {row}: {text!r}", column=column, row=row, value=text) from None
    if not value.is_finite():
        raise DecodeError(f"invalid {column} at row {row}: {text!r}", column=column, row=row, value=text)
    return value


def decode(batch: Union[pa.RecordBatch, pa.Table]) -> List[Candle]:
    """
    Decode a record batch (or table) back into candles.

    Raises:
        DecodeError: Missing/mistyped column, null value, unparsable price, or a timestamp
            outside the representable datetime range
    """
    if isinstance(batch, pa.Table):
        candles = []
        for chunk in batch.to_batches():
            candles.extend(decode(chunk))
        if batch.num_rows == 0:
            _check_schema(batch.schema)
        return candles

    _check_schema(batch.schema)

    columns = {name: batch.column(batch.schema.get_field_index(name)) for name in CANDLE_SCHEMA.names}
    timestamps = columns["timestamp"].cast(pa.int64()).to_pylist()
    prices = {name: columns[name].to_pylist() for name in PRICE_FIELDS}
    volumes = columns["volume"].to_pylist()

    candles = []
    for row in range(batch.num_rows):
        micros = timestamps[row]
        if micros is None:
            raise DecodeError(f"null timestamp at row {row}", column="timestamp", row=row)
        try:
            timestamp = _from_micros(micros)
        except OverflowError:
            raise DecodeError(f"invalid timestamp at row {row}: {micros}", column="timestamp", row=row, value=micros) from None

        volume = volumes[row]
        if volume is None:
            raise DecodeError(f"null volume at row {row}", column="volume", row=row)

        candles.append(Candle(
            timestamp=timestamp,
            open=_parse_price("open", row, prices["open"][row]),
            high=_parse_price("high", row, prices["high"][row]),
            low=_parse_price("low", row, prices["low"][row]),
            close=_parse_price("close", row, prices["close"][row]),
            volume=volume,
        ))

    return candles


def persist(path: Path, candles: Sequence[Candle]) -> None:
    """
    Encode candles and write them as a snappy-compressed Parquet file.

    Parent directories are created as needed; an existing file is replaced.
    """
    path = Path(path)
    batch = encode(candles)
    path.parent.mkdir(parents=True, exist_ok=True)
    table = pa.Table.from_batches([batch], schema=CANDLE_SCHEMA)
    pq.write_table(table, str(path), compression=PARQUET_COMPRESSION)
    logger.debug(f"Wrote {len(candles)} candle(s) to {path}")


def load(path: Path) -> List[Candle]:
    """
    Read every record batch of a Parquet file, in on-disk order.

    Raises:
        FileNotFoundError: The file does not exist
        CorruptFileError: The file exists but is not readable Parquet
        DecodeError: The content does not match the candle schema
    """
    path = Path(path)
    candles: List[Candle] = []
    with open(path, "rb") as f:
        try:
            parquet_file = pq.ParquetFile(f)
            _check_schema(parquet_file.schema_arrow)
            for batch in parquet_file.iter_batches():
                candles.extend(decode(batch))
        except pa.ArrowInvalid as e:
            raise CorruptFileError(path, str(e)) from e
    return candles


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """
    Build a DataFrame view of candles.

    Returns:
        DataFrame indexed by UTC timestamp with columns: open, high, low, close (Decimal
        objects) and volume (int64)
    """
    if not candles:
        return pd.DataFrame(
            columns=["open", "high", "low", "close", "volume"],
            index=pd.DatetimeIndex([], name="timestamp", tz="UTC"),
        ).astype({"volume": "int64"})

    frame = pd.DataFrame(
        {
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        },
        index=pd.to_datetime([c.timestamp for c in candles], utc=True).rename("timestamp"),
    )
    return frame.astype({"volume": "int64"})
