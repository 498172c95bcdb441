"""
Market data store

Day-partitioned Parquet storage for 5-minute OHLCV candles, with missing-date detection
and batched fetching from external providers.
"""

__version__ = "0.1.0"
