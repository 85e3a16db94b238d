"""
Binance Exchange Connector

REST access to the Binance Futures (USD-M) public market-data endpoints
used by the funding board.

Endpoints Used:
    - GET /fapi/v1/exchangeInfo - Contract metadata and status
    - GET /fapi/v1/premiumIndex - Last funding rate and next funding time
    - GET /futures/data/openInterestHist - Historical open interest
    - GET /futures/data/topLongShortPositionRatio - Top trader position ratio
    - GET /futures/data/topLongShortAccountRatio - Top trader account ratio
    - GET /futures/data/globalLongShortAccountRatio - Global account ratio
"""

from .api_client import BinanceAPIClient

__all__ = ["BinanceAPIClient"]
