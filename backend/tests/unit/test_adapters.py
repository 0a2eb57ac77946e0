"""
Unit tests for the HTTP history adapters.

Each adapter gets a MagicMock session returning canned provider payloads.
"""

import threading

import pytest
import requests
from decimal import Decimal
from unittest.mock import MagicMock, patch

from quotehub.services.market_data.adapters import (
    AlphaVantageAdapter, FinnhubAdapter, TwelveDataAdapter, MassiveAdapter, YahooQuoteAdapter,
)
from quotehub.services.market_data.adapters.base import classify_error, parse_point
from quotehub.services.market_data.exceptions import ProviderResponseError, ProviderRateLimitedError
from quotehub.services.market_data.interfaces import StockPrice
from quotehub.services.market_data.quotes import LivePriceService


def _session(payload, status_code=200):
    session = MagicMock()
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Client Error", response=response
        )
    session.get.return_value = response
    return session


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:

    def test_parse_point_rejects_malformed_rows(self):
        assert parse_point("2024-01-02", "1", "2", None, "1.5") is None
        assert parse_point("2024-01-02", "abc", "2", "1", "1.5") is None
        assert parse_point("2024-01-02", "NaN", "2", "1", "1.5") is None

    def test_parse_point_quantizes(self):
        point = parse_point("2024-01-02", "187.1549", 188, 186.5, "187.005")
        assert point.open == Decimal("187.15")
        assert point.high == Decimal("188.00")
        assert point.close == Decimal("187.01")

    def test_classify_error(self):
        assert classify_error(ProviderRateLimitedError("X", "slow down")) == "rate_limited"
        assert classify_error(requests.exceptions.Timeout("read timed out")) == "network"
        assert classify_error(ValueError("bad float")) == "parse"
        assert classify_error(RuntimeError("other")) == "error"

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("MASSIVE_API_KEY", "from-env")
        assert MassiveAdapter().is_configured() is True

    def test_blank_key_is_not_configured(self):
        assert FinnhubAdapter(api_key="   ").is_configured() is False


# ---------------------------------------------------------------------------
# Alpha Vantage
# ---------------------------------------------------------------------------

class TestAlphaVantage:

    def test_daily_series(self):
        session = _session({
            "Meta Data": {},
            "Time Series (Daily)": {
                "2024-01-03": {"1. open": "184.22", "2. high": "185.88", "3. low": "183.43", "4. close": "184.25"},
                "2024-01-02": {"1. open": "187.15", "2. high": "188.44", "3. low": "183.89", "4. close": "185.64"},
                "2024-01-01": {"1. open": "bad"},
            },
        })
        adapter = AlphaVantageAdapter(api_key="k", session=session, timeout=5)

        points = adapter.fetch_history("AAPL", "daily")

        assert len(points) == 2
        params = session.get.call_args.kwargs["params"]
        assert params["function"] == "TIME_SERIES_DAILY"
        assert params["outputsize"] == "full"
        assert session.get.call_args.kwargs["timeout"] == 5

    def test_weekly_uses_weekly_function(self):
        session = _session({"Weekly Time Series": {}})
        AlphaVantageAdapter(api_key="k", session=session).fetch_history("AAPL", "weekly")
        assert session.get.call_args.kwargs["params"]["function"] == "TIME_SERIES_WEEKLY"

    def test_note_is_rate_limited(self):
        session = _session({"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute"})
        with pytest.raises(ProviderRateLimitedError):
            AlphaVantageAdapter(api_key="k", session=session).fetch_history("AAPL", "daily")

    def test_error_message(self):
        session = _session({"Error Message": "Invalid API call."})
        with pytest.raises(ProviderResponseError):
            AlphaVantageAdapter(api_key="k", session=session).fetch_history("ZZZZ", "daily")

    def test_global_quote(self):
        session = _session({"Global Quote": {"05. price": "190.1234", "03. high": "", "04. low": "188.00"}})
        quote = AlphaVantageAdapter(api_key="k", session=session).fetch_quote("AAPL")

        assert quote.price == Decimal("190.12")
        assert quote.high == Decimal("193.92")
        assert quote.low == Decimal("188.00")
        assert quote.source == "ALPHA_VANTAGE"

    def test_global_quote_without_key(self):
        session = _session({})
        assert AlphaVantageAdapter(api_key="", session=session).fetch_quote("AAPL") is None
        session.get.assert_not_called()


# ---------------------------------------------------------------------------
# Finnhub
# ---------------------------------------------------------------------------

class TestFinnhub:

    def test_candles(self):
        session = _session({
            "s": "ok",
            "t": [1704153600, 1704240000],
            "o": [187.15, 184.22],
            "h": [188.44, 185.88],
            "l": [183.89, 183.43],
            "c": [185.64, 184.25],
        })
        points = FinnhubAdapter(api_key="k", session=session).fetch_history("AAPL", "daily")

        assert [p.timestamp for p in points] == ["2024-01-02", "2024-01-03"]
        assert points[0].close == Decimal("185.64")
        params = session.get.call_args.kwargs["params"]
        assert params["resolution"] == "D"
        assert params["token"] == "k"

    def test_no_data(self):
        session = _session({"s": "no_data"})
        assert FinnhubAdapter(api_key="k", session=session).fetch_history("ZZZZ", "daily") == []

    def test_daily_only(self):
        adapter = FinnhubAdapter(api_key="k")
        assert adapter.supports_interval("daily") is True
        assert adapter.supports_interval("weekly") is False

    def test_http_429(self):
        session = _session({}, status_code=429)
        with pytest.raises(requests.exceptions.HTTPError) as exc_info:
            FinnhubAdapter(api_key="k", session=session).fetch_history("AAPL", "daily")
        assert classify_error(exc_info.value) == "rate_limited"


# ---------------------------------------------------------------------------
# Twelve Data
# ---------------------------------------------------------------------------

class TestTwelveData:

    def test_values(self):
        session = _session({
            "meta": {"symbol": "AAPL"},
            "values": [
                {"datetime": "2024-01-03", "open": "184.22", "high": "185.88", "low": "183.43", "close": "184.25"},
                {"datetime": "2024-01-02", "open": "187.15", "high": "188.44", "low": "183.89", "close": "185.64"},
            ],
            "status": "ok",
        })
        points = TwelveDataAdapter(api_key="k", session=session).fetch_history("AAPL", "weekly")

        assert len(points) == 2
        params = session.get.call_args.kwargs["params"]
        assert params["interval"] == "1week"
        assert params["outputsize"] == 1500

    def test_error_status(self):
        session = _session({"status": "error", "code": 400, "message": "symbol not found"})
        with pytest.raises(ProviderResponseError):
            TwelveDataAdapter(api_key="k", session=session).fetch_history("ZZZZ", "daily")

    def test_credit_exhaustion_is_rate_limited(self):
        session = _session({"status": "error", "code": 429, "message": "run out of API credits"})
        with pytest.raises(ProviderRateLimitedError):
            TwelveDataAdapter(api_key="k", session=session).fetch_history("AAPL", "daily")


# ---------------------------------------------------------------------------
# Massive
# ---------------------------------------------------------------------------

class TestMassive:

    def test_rows(self):
        session = _session({"data": [
            {"timestamp": "2024-01-02", "open": 187.15, "high": 188.44, "low": 183.89, "close": 185.64},
            {"timestamp": "2024-01-03", "open": 184.22, "high": 185.88, "low": 183.43},
        ]})
        points = MassiveAdapter(api_key="k", session=session).fetch_history("AAPL", "monthly")

        assert len(points) == 1
        assert session.get.call_args.kwargs["params"]["interval"] == "monthly"

    def test_error_key(self):
        session = _session({"error": "invalid key"})
        with pytest.raises(ProviderResponseError):
            MassiveAdapter(api_key="k", session=session).fetch_history("AAPL", "daily")


# ---------------------------------------------------------------------------
# Yahoo (quotes only)
# ---------------------------------------------------------------------------

class TestYahooQuote:

    @patch('quotehub.services.market_data.adapters.yahoo_adapter.yf.Ticker')
    def test_quote_from_info(self, mock_ticker):
        mock_ticker.return_value.info = {'currentPrice': 191.555, 'dayHigh': 192.0}
        quote = YahooQuoteAdapter().fetch_quote("AAPL")

        assert quote.price == Decimal("191.56")
        assert quote.high == Decimal("192.00")
        assert quote.low == Decimal("191.56")
        assert quote.source == "YAHOO"

    @patch('quotehub.services.market_data.adapters.yahoo_adapter.yf.Ticker')
    def test_no_price(self, mock_ticker):
        mock_ticker.return_value.info = {'shortName': 'Apple Inc.'}
        assert YahooQuoteAdapter().fetch_quote("AAPL") is None

    @patch('quotehub.services.market_data.adapters.yahoo_adapter.yf.Ticker')
    def test_slow_lookup_times_out(self, mock_ticker):
        release = threading.Event()

        class SlowTicker:
            @property
            def info(self):
                release.wait(5)
                return {'currentPrice': 1.0}

        mock_ticker.return_value = SlowTicker()
        try:
            with pytest.raises(TimeoutError):
                YahooQuoteAdapter(timeout=0.05).fetch_quote("AAPL")
        finally:
            release.set()

    @patch('quotehub.services.market_data.adapters.yahoo_adapter.yf.Ticker')
    def test_timeout_falls_through_to_next_quote_source(self, mock_ticker):
        release = threading.Event()

        class SlowTicker:
            @property
            def info(self):
                release.wait(5)
                return {}

        mock_ticker.return_value = SlowTicker()
        backup = MagicMock()
        backup.name = "ALPHA_VANTAGE"
        backup.fetch_quote.return_value = StockPrice(
            "AAPL", Decimal("190.00"), Decimal("191.00"), Decimal("189.00"), "2026-03-02", "ALPHA_VANTAGE",
        )
        service = LivePriceService([YahooQuoteAdapter(timeout=0.05), backup])
        try:
            assert service.get_current_price("AAPL").source == "ALPHA_VANTAGE"
        finally:
            release.set()
