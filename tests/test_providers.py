"""
Tests for providers: HTTP error mapping, response parsing, and range fetching.

HTTP is faked with an in-memory session; no network access.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest
import requests

from market_data.data import Candle
from market_data.providers import (
    AlpacaProvider,
    ApiError,
    CandleProvider,
    CboeProvider,
    ParseError,
    ProviderConfigError,
    RateLimitedError,
    TransportError,
    YahooProvider,
)
from market_data.providers.alpaca import parse_alpaca_bar
from market_data.providers.base import group_by_utc_date, http_get
from market_data.providers.cboe import CboeRow, csv_filename, parse_cboe_csv
from market_data.providers.yahoo import parse_chart_response


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, status_code: int = 200, text: str = "", headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.text = text
        self.headers = headers or {}

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self, **kwargs):
        return json.loads(self.text, **kwargs)


class FakeSession:
    """Returns queued responses and records each request"""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.headers: Dict[str, str] = {}
        self.calls: List[Dict[str, Any]] = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def json_response(body: Any, status_code: int = 200) -> FakeResponse:
    return FakeResponse(status_code, json.dumps(body))


# ---------------------------------------------------------------------------
# http_get
# ---------------------------------------------------------------------------


def test_http_get_ok():
    session = FakeSession([FakeResponse(200, "hello")])
    response = http_get(session, "https://example.test/x", params={"a": 1}, timeout=5)
    assert response.text == "hello"
    assert session.calls[0]["params"] == {"a": 1}
    assert session.calls[0]["timeout"] == 5


def test_http_get_rate_limited_uses_retry_after():
    session = FakeSession([FakeResponse(429, "slow down", {"Retry-After": "7"})])
    with pytest.raises(RateLimitedError) as exc_info:
        http_get(session, "https://example.test/x", provider="test")
    assert exc_info.value.retry_after_seconds == 7
    assert exc_info.value.provider == "test"


def test_http_get_rate_limited_default_wait():
    session = FakeSession([FakeResponse(429, "", {"Retry-After": "soon"})])
    with pytest.raises(RateLimitedError) as exc_info:
        http_get(session, "https://example.test/x")
    assert exc_info.value.retry_after_seconds == 60


def test_http_get_rate_limited_header_ignored():
    session = FakeSession([FakeResponse(429, "", {"Retry-After": "3"})])
    with pytest.raises(RateLimitedError) as exc_info:
        http_get(session, "https://example.test/x", use_retry_after_header=False)
    assert exc_info.value.retry_after_seconds == 60


def test_http_get_api_error():
    session = FakeSession([FakeResponse(403, "forbidden")])
    with pytest.raises(ApiError, match=r"API error \(403\): forbidden") as exc_info:
        http_get(session, "https://example.test/x")
    assert exc_info.value.status == 403


def test_http_get_transport_error():
    session = FakeSession([requests.ConnectionError("refused")])
    with pytest.raises(TransportError, match="refused"):
        http_get(session, "https://example.test/x")


# ---------------------------------------------------------------------------
# Base provider
# ---------------------------------------------------------------------------


class CountingProvider(CandleProvider):
    """Single-day provider that records which days were requested"""

    def __init__(self):
        self.requested: List[date] = []

    @property
    def name(self) -> str:
        return "counting"

    def fetch_candles(self, symbol: str, day: date) -> List[Candle]:
        self.requested.append(day)
        ts = datetime(day.year, day.month, day.day, 14, 30, tzinfo=timezone.utc)
        return [Candle(ts, Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1"), 10)]


def test_default_range_calls_fetch_candles_per_weekday():
    provider = CountingProvider()
    groups = provider.fetch_candles_range("AAPL", date(2025, 1, 13), date(2025, 1, 19))
    assert provider.requested == [date(2025, 1, d) for d in (13, 14, 15, 16, 17)]
    assert [d for d, _ in groups] == provider.requested
    assert all(len(candles) == 1 for _, candles in groups)


def test_group_by_utc_date():
    late = datetime(2025, 1, 15, 23, 55, tzinfo=timezone.utc)
    early = datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)
    next_day = datetime(2025, 1, 16, 0, 0, tzinfo=timezone.utc)
    candles = [
        Candle(next_day, Decimal("3"), Decimal("3"), Decimal("3"), Decimal("3"), 3),
        Candle(late, Decimal("2"), Decimal("2"), Decimal("2"), Decimal("2"), 2),
        Candle(early, Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1"), 1),
    ]
    groups = group_by_utc_date(candles)
    assert [d for d, _ in groups] == [date(2025, 1, 15), date(2025, 1, 16)]
    assert [c.timestamp for c in groups[0][1]] == [early, late]


# ---------------------------------------------------------------------------
# Alpaca
# ---------------------------------------------------------------------------


def alpaca_bar(t: str, o, h, l, c, v) -> Dict[str, Any]:
    return {"t": t, "o": o, "h": h, "l": l, "c": c, "v": v, "n": 10, "vw": o}


def test_parse_alpaca_bar():
    candle = parse_alpaca_bar(alpaca_bar("2025-01-15T14:30:00Z", Decimal("185.12"), 186, Decimal("184.5"), "185.9", 1200))
    assert candle.timestamp == datetime(2025, 1, 15, 14, 30, tzinfo=timezone.utc)
    assert candle.open == Decimal("185.12")
    assert candle.high == Decimal("186")
    assert candle.close == Decimal("185.9")
    assert candle.volume == 1200


def test_parse_alpaca_bar_invalid():
    with pytest.raises(ParseError):
        parse_alpaca_bar({"t": "yesterday", "o": 1, "h": 1, "l": 1, "c": 1, "v": 1})
    with pytest.raises(ParseError):
        parse_alpaca_bar({"t": "2025-01-15T14:30:00Z", "o": 1})


def make_alpaca(session: FakeSession) -> AlpacaProvider:
    return AlpacaProvider("key", "secret", session=session)


def test_alpaca_fetch_candles_paged():
    """Pages are followed via next_page_token and prices keep full precision"""
    session = FakeSession([
        FakeResponse(200, '{"bars": [{"t": "2025-01-15T14:35:00Z", "o": 185.12, "h": 185.5, '
                          '"l": 185.0, "c": 185.3, "v": 900}], "next_page_token": "abc"}'),
        FakeResponse(200, '{"bars": [{"t": "2025-01-15T14:30:00Z", "o": 184.1234, "h": 185.2, '
                          '"l": 184.0, "c": 185.12, "v": 1000}], "next_page_token": null}'),
    ])
    provider = make_alpaca(session)

    candles = provider.fetch_candles("AAPL", date(2025, 1, 15))

    assert [c.timestamp.minute for c in candles] == [30, 35]
    assert candles[0].open == Decimal("184.1234")
    assert len(session.calls) == 2
    first, second = session.calls
    assert first["url"] == "https://data.alpaca.markets/v2/stocks/AAPL/bars"
    assert first["params"]["timeframe"] == "5Min"
    assert first["params"]["adjustment"] == "split"
    assert first["params"]["start"] == "2025-01-15T00:00:00+00:00"
    assert first["params"]["end"] == "2025-01-16T00:00:00+00:00"
    assert "page_token" not in first["params"]
    assert second["params"]["page_token"] == "abc"
    assert first["headers"]["APCA-API-KEY-ID"] == "key"
    assert first["headers"]["APCA-API-SECRET-KEY"] == "secret"


def test_alpaca_no_bars():
    session = FakeSession([json_response({"bars": None, "next_page_token": None})])
    assert make_alpaca(session).fetch_candles("AAPL", date(2025, 1, 18)) == []


def test_alpaca_range_groups_by_day():
    session = FakeSession([json_response({
        "bars": [
            alpaca_bar("2025-01-15T14:30:00Z", 1, 1, 1, 1, 10),
            alpaca_bar("2025-01-15T14:35:00Z", 1, 1, 1, 1, 10),
            alpaca_bar("2025-01-16T14:30:00Z", 1, 1, 1, 1, 10),
        ],
    })])
    groups = make_alpaca(session).fetch_candles_range("AAPL", date(2025, 1, 15), date(2025, 1, 16))
    assert len(session.calls) == 1
    assert session.calls[0]["params"]["end"] == "2025-01-17T00:00:00+00:00"
    assert [(d, len(c)) for d, c in groups] == [(date(2025, 1, 15), 2), (date(2025, 1, 16), 1)]


def test_alpaca_invalid_json():
    session = FakeSession([FakeResponse(200, "<html>")])
    with pytest.raises(ParseError):
        make_alpaca(session).fetch_candles("AAPL", date(2025, 1, 15))


def test_alpaca_rate_limited():
    session = FakeSession([FakeResponse(429, "", {"Retry-After": "12"})])
    with pytest.raises(RateLimitedError) as exc_info:
        make_alpaca(session).fetch_candles("AAPL", date(2025, 1, 15))
    assert exc_info.value.retry_after_seconds == 12


# ---------------------------------------------------------------------------
# Yahoo
# ---------------------------------------------------------------------------


def chart_body(timestamps, opens, highs, lows, closes, volumes) -> Dict[str, Any]:
    return {
        "chart": {
            "result": [{
                "meta": {"symbol": "SPY"},
                "timestamp": timestamps,
                "indicators": {"quote": [{
                    "open": opens,
                    "high": highs,
                    "low": lows,
                    "close": closes,
                    "volume": volumes,
                }]},
            }],
            "error": None,
        }
    }


def test_parse_chart_response_skips_null_rows():
    body = chart_body(
        [1736942400, 1736942700, 1736943000],
        [Decimal("1.5"), None, Decimal("2.5")],
        [Decimal("1.6"), Decimal("2.1"), Decimal("2.6")],
        [Decimal("1.4"), Decimal("1.9"), Decimal("2.4")],
        [Decimal("1.55"), Decimal("2.05"), Decimal("2.55")],
        [100, 200, None],
    )
    candles = parse_chart_response(body)
    assert len(candles) == 2
    assert candles[0].timestamp == datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
    assert candles[0].close == Decimal("1.55")
    assert candles[1].timestamp == datetime(2025, 1, 15, 12, 10, tzinfo=timezone.utc)
    # Missing volume becomes 0
    assert candles[1].volume == 0


def test_parse_chart_response_float_values():
    """Plain floats convert via their shortest repr"""
    body = chart_body([1736942400], [185.12], [186.0], [184.5], [185.3], [10])
    candle = parse_chart_response(body)[0]
    assert candle.open == Decimal("185.12")
    assert candle.low == Decimal("184.5")


def test_parse_chart_response_sorted():
    body = chart_body([1736942700, 1736942400], [2, 1], [2, 1], [2, 1], [2, 1], [2, 1])
    candles = parse_chart_response(body)
    assert [c.open for c in candles] == [Decimal(1), Decimal(2)]


def test_parse_chart_response_error():
    body = {"chart": {"result": None, "error": {"code": "Not Found", "description": "No data found, symbol may be delisted"}}}
    with pytest.raises(ApiError, match="Not Found: No data found") as exc_info:
        parse_chart_response(body)
    assert exc_info.value.status == 0


def test_parse_chart_response_no_result():
    with pytest.raises(ParseError, match="no results"):
        parse_chart_response({"chart": {"result": None, "error": None}})


def test_parse_chart_response_empty_result():
    assert parse_chart_response({"chart": {"result": [], "error": None}}) == []


def test_parse_chart_response_missing_timestamps():
    body = {"chart": {"result": [{"indicators": {"quote": [{}]}}], "error": None}}
    with pytest.raises(ParseError, match="missing timestamps"):
        parse_chart_response(body)


def test_yahoo_fetch_candles_request():
    body = chart_body([1736951400], [1], [1], [1], [1], [5])
    session = FakeSession([json_response(body)])
    provider = YahooProvider(session=session)

    candles = provider.fetch_candles("SPY", date(2025, 1, 15))

    assert len(candles) == 1
    call = session.calls[0]
    assert call["url"] == "https://query1.finance.yahoo.com/v8/finance/chart/SPY"
    assert call["params"] == {"period1": 1736899200, "period2": 1736985600, "interval": "5m"}
    assert session.headers["User-Agent"] == "Mozilla/5.0"


def test_yahoo_daily_bars_interval():
    session = FakeSession([json_response(chart_body([], [], [], [], [], []))])
    YahooProvider(session=session).fetch_daily_bars("SPY", date(2025, 1, 1), date(2025, 1, 31))
    assert session.calls[0]["params"]["interval"] == "1d"


def test_yahoo_rate_limit_ignores_retry_after():
    session = FakeSession([FakeResponse(429, "", {"Retry-After": "5"})])
    with pytest.raises(RateLimitedError) as exc_info:
        YahooProvider(session=session).fetch_candles("SPY", date(2025, 1, 15))
    assert exc_info.value.retry_after_seconds == 60


def test_yahoo_range_single_request():
    body = chart_body([1736951400, 1737037800], [1, 2], [1, 2], [1, 2], [1, 2], [5, 6])
    session = FakeSession([json_response(body)])
    groups = YahooProvider(session=session).fetch_candles_range("SPY", date(2025, 1, 15), date(2025, 1, 16))
    assert len(session.calls) == 1
    assert [d for d, _ in groups] == [date(2025, 1, 15), date(2025, 1, 16)]


# ---------------------------------------------------------------------------
# CBOE
# ---------------------------------------------------------------------------

SAMPLE_CSV = """DATE,OPEN,HIGH,LOW,CLOSE
01/02/1990,17.240000,17.240000,17.240000,17.240000
01/03/1990,18.190000,18.190000,18.190000,18.190000
01/04/1990,19.220000,19.220000,19.220000,19.220000
02/21/2025,15.500000,16.750000,14.250000,15.820000"""


def test_parse_cboe_csv():
    rows = parse_cboe_csv(SAMPLE_CSV)
    assert len(rows) == 4
    assert rows[0].day == date(1990, 1, 2)
    assert rows[0].open == Decimal("17.240000")
    assert rows[3].day == date(2025, 2, 21)
    assert rows[3].high == Decimal("16.750000")
    assert rows[3].low == Decimal("14.250000")
    assert rows[3].close == Decimal("15.820000")


def test_parse_cboe_csv_preserves_scale():
    rows = parse_cboe_csv("DATE,OPEN,HIGH,LOW,CLOSE\n01/02/2025,17.240000,18.190000,16.500000,17.890000")
    assert str(rows[0].open) == "17.240000"


def test_parse_cboe_csv_blank_lines():
    rows = parse_cboe_csv("DATE,OPEN,HIGH,LOW,CLOSE\n01/02/2025,20.00,21.00,19.00,20.50\n\n")
    assert len(rows) == 1


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "empty CSV"),
        ("bad header\n01/02/2025,20.00,21.00,19.00,20.50", "unexpected CSV header"),
        ("DATE,OPEN,HIGH,LOW,CLOSE\nNOT_A_DATE,20.00,21.00,19.00,20.50", "line 2: invalid date"),
        ("DATE,OPEN,HIGH,LOW,CLOSE\n01/02/2025,abc,21.00,19.00,20.50", "line 2: invalid open"),
        ("DATE,OPEN,HIGH,LOW,CLOSE\n01/02/2025,20,21,19,20\n01/03/2025,20,21", "line 3: expected 5 fields"),
    ],
)
def test_parse_cboe_csv_errors(text, message):
    with pytest.raises(ParseError, match=message):
        parse_cboe_csv(text)


def test_cboe_row_to_candle():
    row = CboeRow(date(2025, 2, 21), Decimal("15.50"), Decimal("16.75"), Decimal("14.25"), Decimal("15.82"))
    candle = row.to_candle()
    assert candle.timestamp == datetime(2025, 2, 21, 14, 30, tzinfo=timezone.utc)
    assert candle.close == Decimal("15.82")
    assert candle.volume == 0


def test_csv_filename():
    assert csv_filename("VIX") == "VIX_History.csv"
    assert csv_filename("^VIX") == "VIX_History.csv"
    assert csv_filename("vix") == "VIX_History.csv"
    assert csv_filename("VVIX") == "VVIX_History.csv"
    assert csv_filename("VIX9D") == "VIX9D_History.csv"
    assert csv_filename("OVX") == "OVX_History.csv"
    assert csv_filename("GVZ") == "GVZ_History.csv"
    assert csv_filename("AAPL") is None


def test_cboe_unsupported_symbol():
    session = FakeSession([])
    with pytest.raises(ProviderConfigError, match="unsupported CBOE symbol"):
        CboeProvider(session=session).fetch_candles("AAPL", date(2025, 1, 15))
    assert session.calls == []


def test_cboe_range_single_download():
    session = FakeSession([FakeResponse(200, SAMPLE_CSV)])
    provider = CboeProvider(session=session)

    groups = provider.fetch_candles_range("^VIX", date(1990, 1, 3), date(1990, 1, 31))

    assert len(session.calls) == 1
    assert session.calls[0]["url"].endswith("/VIX_History.csv")
    assert [d for d, _ in groups] == [date(1990, 1, 3), date(1990, 1, 4)]
    assert groups[0][1][0].close == Decimal("18.190000")


def test_cboe_fetch_candles_single_day():
    session = FakeSession([FakeResponse(200, SAMPLE_CSV)])
    candles = CboeProvider(session=session).fetch_candles("VIX", date(2025, 2, 21))
    assert len(candles) == 1
    assert candles[0].open == Decimal("15.500000")


def test_cboe_http_error():
    session = FakeSession([FakeResponse(404, "not found")])
    with pytest.raises(ApiError) as exc_info:
        CboeProvider(session=session).fetch_candles("VIX", date(2025, 2, 21))
    assert exc_info.value.status == 404
