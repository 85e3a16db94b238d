"""
Binance REST API Client

This module provides an async HTTP client for the Binance Futures (USD-M)
public market-data endpoints used by the funding board.

It handles:
- One GET per call, no retries (callers decide recovery)
- Mapping transport/status failures to NetworkError
- Mapping undecodable or malformed payloads to ParseError
- Data normalization to our schemas

API Documentation:
    https://binance-docs.github.io/apidocs/futures/en/

Usage:
    async with BinanceAPIClient() as client:
        info = await client.get_exchange_info()
        premium = await client.get_premium_index()
"""

import asyncio
import time

import aiohttp
from pydantic import ValidationError
from typing import Any, Callable, Dict, List, Optional, TypeVar

from core.exceptions import NetworkError, ParseError
from core.logging import get_logger, log_api_request, log_api_response
from core.schemas import OpenInterestSample, PremiumSnapshot, RatioSample, SymbolMetadata
from core.utils.time import to_utc_datetime

T = TypeVar("T")

TOP_POSITION_RATIO_PATH = "/futures/data/topLongShortPositionRatio"
TOP_ACCOUNT_RATIO_PATH = "/futures/data/topLongShortAccountRatio"
GLOBAL_ACCOUNT_RATIO_PATH = "/futures/data/globalLongShortAccountRatio"


class BinanceAPIClient:
    """
    Async HTTP client for Binance Futures REST API

    All methods return normalized data using our Pydantic schemas.

    Attributes:
        BASE_URL: Default Binance Futures API base URL
        base_url: Base URL used by this instance
        timeout: Optional session-wide total timeout in seconds
        session: aiohttp ClientSession for HTTP requests

    Example:
        >>> async with BinanceAPIClient() as client:
        ...     oi = await client.get_open_interest_hist("BTCUSDT", "1h", limit=4)
        ...     print(f"Fetched {len(oi)} samples")

    Notes:
        - Uses context manager for automatic session cleanup
        - No retries and no timeout unless the owner passes one
        - No API key needed for these public endpoints
    """

    BASE_URL = "https://fapi.binance.com"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Initialize the Binance API client.

        Args:
            base_url: Override for the API base URL
            timeout: Total timeout per request in seconds (None = unbounded)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        """Enter async context - creates HTTP session."""
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        self.logger.debug("BinanceAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context - closes HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None
            self.logger.debug("BinanceAPIClient session closed")

    # ============================================
    # HTTP Request Handler
    # ============================================

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Make a single GET request to the Binance API.

        Args:
            path: API endpoint path (e.g., "/fapi/v1/premiumIndex")
            params: Optional query parameters

        Returns:
            Decoded JSON response

        Raises:
            RuntimeError: If the session was not opened with 'async with'
            NetworkError: On transport errors, timeouts or non-200 status
            ParseError: If the body is not valid JSON
        """
        if not self.session:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")

        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        log_api_request("binance", path, params)
        started = time.monotonic()

        try:
            async with self.session.get(url, params=params, headers=headers) as resp:
                log_api_response("binance", path, resp.status, time.monotonic() - started)

                if resp.status != 200:
                    text = await resp.text()
                    raise NetworkError(f"HTTP {resp.status} on {path}: {text}")

                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise ParseError(f"Invalid JSON from {path}: {e}") from e

        except asyncio.TimeoutError as e:
            raise NetworkError(f"Timeout on {path}") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request failed on {path}: {e}") from e

    def _parse(self, path: str, data: Any, build: Callable[[Any], T]) -> T:
        """Normalize a payload, turning shape errors into ParseError."""
        try:
            return build(data)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise ParseError(f"Malformed payload from {path}: {e}") from e

    # ============================================
    # Market Metadata
    # ============================================

    async def ping(self) -> bool:
        """
        Test connectivity to the REST API.

        Binance Endpoint:
            GET /fapi/v1/ping
        """
        await self._get("/fapi/v1/ping")
        return True

    async def get_exchange_info(self) -> List[SymbolMetadata]:
        """
        Fetch contract metadata for every listed symbol.

        Binance Endpoint:
            GET /fapi/v1/exchangeInfo

        Response Format (trimmed):
            {
              "symbols": [
                {"symbol": "BTCUSDT", "status": "TRADING", "contractType": "PERPETUAL", ...}
              ]
            }
        """
        path = "/fapi/v1/exchangeInfo"
        self.logger.info("Fetching exchange info")
        data = await self._get(path)

        symbols = self._parse(path, data, lambda payload: [
            SymbolMetadata(
                symbol=item["symbol"],
                status=item["status"],
                contract_type=item.get("contractType")
            )
            for item in payload["symbols"]
        ])

        self.logger.info(f"Fetched metadata for {len(symbols)} symbols")
        return symbols

    async def get_premium_index(self) -> List[PremiumSnapshot]:
        """
        Fetch mark price and funding data for every symbol.

        Binance Endpoint:
            GET /fapi/v1/premiumIndex

        Response Format (trimmed):
            [
              {
                "symbol": "BTCUSDT",
                "lastFundingRate": "0.00010000",
                "nextFundingTime": 1597392000000
              }
            ]
        """
        path = "/fapi/v1/premiumIndex"
        self.logger.info("Fetching premium index")
        data = await self._get(path)

        snapshots = self._parse(path, data, lambda payload: [
            PremiumSnapshot(
                symbol=item["symbol"],
                last_funding_rate=str(item["lastFundingRate"]),
                next_funding_time=int(item["nextFundingTime"])
            )
            for item in payload
        ])

        self.logger.info(f"Fetched premium index for {len(snapshots)} symbols")
        return snapshots

    # ============================================
    # Open Interest
    # ============================================

    async def get_open_interest_hist(
        self,
        symbol: str,
        period: str = "1h",
        start_time: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[OpenInterestSample]:
        """
        Fetch historical open interest samples.

        Args:
            symbol: Trading pair (e.g., "BTCUSDT")
            period: Sample period ("5m", "15m", "30m", "1h", ... "1d")
            start_time: Window start in epoch milliseconds
            limit: Number of samples (Binance max 500)

        Binance Endpoint:
            GET /futures/data/openInterestHist

        Response Format:
            [
              {
                "symbol": "BTCUSDT",
                "sumOpenInterest": "10659.509",
                "sumOpenInterestValue": "532974500.23",
                "timestamp": 1589437530011
              }
            ]
        """
        path = "/futures/data/openInterestHist"
        params = self._window_params(symbol, period, start_time, limit)

        self.logger.debug(f"Fetching OI history: {symbol} {period} (startTime={start_time}, limit={limit})")
        data = await self._get(path, params)

        return self._parse(path, data, lambda payload: [
            OpenInterestSample(
                symbol=item["symbol"],
                sum_open_interest=float(item["sumOpenInterest"]),
                sum_open_interest_value=float(item["sumOpenInterestValue"]),
                timestamp=to_utc_datetime(int(item["timestamp"]))
            )
            for item in payload
        ])

    # ============================================
    # Long/Short Ratios
    # ============================================

    async def get_top_long_short_position_ratio(
        self, symbol: str, period: str = "1h", start_time: Optional[int] = None, limit: int = 1
    ) -> List[RatioSample]:
        """Top traders' long/short ratio by position size."""
        return await self._get_ratio(TOP_POSITION_RATIO_PATH, symbol, period, start_time, limit)

    async def get_top_long_short_account_ratio(
        self, symbol: str, period: str = "1h", start_time: Optional[int] = None, limit: int = 1
    ) -> List[RatioSample]:
        """Top traders' long/short ratio by account count."""
        return await self._get_ratio(TOP_ACCOUNT_RATIO_PATH, symbol, period, start_time, limit)

    async def get_global_long_short_account_ratio(
        self, symbol: str, period: str = "1h", start_time: Optional[int] = None, limit: int = 1
    ) -> List[RatioSample]:
        """Long/short ratio across all accounts."""
        return await self._get_ratio(GLOBAL_ACCOUNT_RATIO_PATH, symbol, period, start_time, limit)

    async def _get_ratio(
        self,
        path: str,
        symbol: str,
        period: str,
        start_time: Optional[int],
        limit: Optional[int]
    ) -> List[RatioSample]:
        """
        Shared fetcher for the three long/short ratio endpoints.

        Response Format:
            [
              {
                "symbol": "BTCUSDT",
                "longShortRatio": "1.4342",
                "longAccount": "0.5891",
                "shortAccount": "0.4108",
                "timestamp": 1583139600000
              }
            ]
        """
        params = self._window_params(symbol, period, start_time, limit)
        data = await self._get(path, params)

        return self._parse(path, data, lambda payload: [
            RatioSample(
                symbol=item["symbol"],
                long_short_ratio=float(item["longShortRatio"]),
                long_account=float(item["longAccount"]) if "longAccount" in item else None,
                short_account=float(item["shortAccount"]) if "shortAccount" in item else None,
                timestamp=to_utc_datetime(int(item["timestamp"]))
            )
            for item in payload
        ])

    @staticmethod
    def _window_params(
        symbol: str, period: str, start_time: Optional[int], limit: Optional[int]
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"symbol": symbol.upper(), "period": period}
        if start_time is not None:
            params["startTime"] = start_time
        if limit is not None:
            params["limit"] = min(limit, 500)  # Binance max is 500
        return params
