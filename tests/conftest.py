"""
Shared fixtures: an in-memory stand-in for BinanceAPIClient and record builders.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import NetworkError
from core.schemas import OpenInterestSample, PremiumSnapshot, RatioSample, SymbolMetadata

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(BASE_TIME.timestamp() * 1000)


def meta(symbol, status="TRADING"):
    return SymbolMetadata(symbol=symbol, status=status, contract_type="PERPETUAL")


def premium(symbol, rate, next_funding_time=1704124800000):
    return PremiumSnapshot(symbol=symbol, last_funding_rate=rate, next_funding_time=next_funding_time)


def oi_series(symbol, values, quantity=1.0):
    """Hourly samples, oldest first, the last one at BASE_TIME."""
    count = len(values)
    return [
        OpenInterestSample(
            symbol=symbol,
            sum_open_interest=quantity,
            sum_open_interest_value=value,
            timestamp=BASE_TIME - timedelta(hours=count - 1 - index)
        )
        for index, value in enumerate(values)
    ]


class FakeBinanceClient:
    """
    Serves canned data through the BinanceAPIClient interface.

    oi maps symbol -> list of samples or an exception to raise.
    ratios maps symbol -> (position, account, global) or an exception;
    unknown symbols get empty ratio responses.
    """

    def __init__(self, exchange_info=None, premium_index=None, oi=None, ratios=None):
        self.exchange_info = exchange_info or []
        self.premium_index = premium_index or []
        self.oi = oi or {}
        self.ratios = ratios or {}
        self.calls = []
        self.entered = False
        self.closed = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.closed = True

    async def ping(self):
        return True

    async def get_exchange_info(self):
        self.calls.append(("exchangeInfo",))
        if isinstance(self.exchange_info, Exception):
            raise self.exchange_info
        return self.exchange_info

    async def get_premium_index(self):
        self.calls.append(("premiumIndex",))
        if isinstance(self.premium_index, Exception):
            raise self.premium_index
        return self.premium_index

    async def get_open_interest_hist(self, symbol, period="1h", start_time=None, limit=None):
        self.calls.append(("openInterestHist", symbol, period, start_time, limit))
        data = self.oi.get(symbol, [])
        if isinstance(data, Exception):
            raise data
        return list(data)

    def _ratio(self, kind, index, symbol, period, start_time, limit):
        self.calls.append((kind, symbol, period, start_time, limit))
        data = self.ratios.get(symbol)
        if isinstance(data, Exception):
            raise data
        if data is None:
            return []
        return [RatioSample(symbol=symbol, long_short_ratio=data[index], timestamp=BASE_TIME)]

    async def get_top_long_short_position_ratio(self, symbol, period="1h", start_time=None, limit=1):
        return self._ratio("topLongShortPositionRatio", 0, symbol, period, start_time, limit)

    async def get_top_long_short_account_ratio(self, symbol, period="1h", start_time=None, limit=1):
        return self._ratio("topLongShortAccountRatio", 1, symbol, period, start_time, limit)

    async def get_global_long_short_account_ratio(self, symbol, period="1h", start_time=None, limit=1):
        return self._ratio("globalLongShortAccountRatio", 2, symbol, period, start_time, limit)


@pytest.fixture
def fake_client():
    """A client serving three eligible symbols with full enrichment data."""
    return FakeBinanceClient(
        exchange_info=[meta("BTCUSDT"), meta("ETHUSDT"), meta("SOLUSDT"), meta("BTCUSDC"), meta("OLDUSDT", "SETTLING")],
        premium_index=[
            premium("BTCUSDT", "0.00010000"),
            premium("ETHUSDT", "-0.00050000"),
            premium("SOLUSDT", "0.00020000"),
            premium("BTCUSDC", "0.00900000"),
            premium("OLDUSDT", "0.00800000"),
        ],
        oi={
            "BTCUSDT": oi_series("BTCUSDT", [100.0, 110.0, 120.0, 150.0]),
            "ETHUSDT": oi_series("ETHUSDT", [50.0, 50.0, 40.0, 60.0]),
            "SOLUSDT": NetworkError("HTTP 503 on /futures/data/openInterestHist"),
        },
        ratios={
            "BTCUSDT": (1.0, 4.0, 1.5),
            "ETHUSDT": NetworkError("connection reset"),
            "SOLUSDT": (2.0, 0.5, 3.0),
        },
    )
