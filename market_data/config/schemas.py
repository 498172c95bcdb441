"""
Configuration schemas using Pydantic for validation and type safety.
"""

from typing import Optional, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from pydantic import BaseModel, Field, field_validator

from ..data.ranges import DEFAULT_MAX_GAP_DAYS
from ..data.sessions import DEFAULT_EXCHANGE_TZ


class StoreConfig(BaseModel):
    """Candle store location"""
    root: str = Field(default=".", description="Store root directory (day files live under root/data)")


class ProviderSettings(BaseModel):
    """Settings shared by the data providers"""
    alpaca_api_key_id: Optional[str] = Field(default=None, description="Alpaca key id (falls back to ALPACA_API_KEY_ID)")
    alpaca_api_secret_key: Optional[str] = Field(default=None, description="Alpaca secret (falls back to ALPACA_API_SECRET_KEY)")
    alpaca_base_url: str = Field(default="https://data.alpaca.markets/v2", description="Alpaca market data base URL")
    alpaca_feed: Literal["iex", "sip"] = Field(default="iex", description="Alpaca bar feed")
    yahoo_base_url: str = Field(default="https://query1.finance.yahoo.com/v8/finance/chart", description="Yahoo chart API URL")
    cboe_base_url: str = Field(default="https://cdn.cboe.com/api/global/us_indices/daily_prices", description="CBOE daily CSV base URL")
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")
    user_agent: str = Field(default="Mozilla/5.0", description="User-Agent header for unauthenticated providers")


class PopulateConfig(BaseModel):
    """Populate (ingestion) behaviour"""
    provider: str = Field(default="alpaca", description="Provider name (must be registered)")
    max_gap_days: int = Field(default=DEFAULT_MAX_GAP_DAYS, ge=0, description="Largest gap merged into one fetch range")
    rate_limit_retries: int = Field(default=2, ge=0, description="Retries for a rate-limited range before giving up")
    max_retry_wait_seconds: float = Field(default=300.0, ge=0, description="Cap on the wait before a rate-limit retry")


class SessionConfig(BaseModel):
    """Session classification"""
    exchange_timezone: str = Field(default=DEFAULT_EXCHANGE_TZ, description="IANA time zone of the exchange")

    @field_validator("exchange_timezone")
    @classmethod
    def validate_timezone(cls, v):
        """Ensure the time zone name resolves"""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v


class AppConfig(BaseModel):
    """Complete application configuration"""
    store: StoreConfig = Field(default_factory=StoreConfig)
    providers: ProviderSettings = Field(default_factory=ProviderSettings)
    populate: PopulateConfig = Field(default_factory=PopulateConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Logging level")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v
