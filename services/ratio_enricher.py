"""
Sentiment Ratio Enricher

Attaches the latest long/short ratios to each board record:
    - top_position_ratio: top traders, by position size
    - top_account_ratio: top traders, by account count
    - global_account_ratio: all accounts

The three series are requested concurrently per symbol (limit=1 over a
one-hour lookback) and all symbols are processed concurrently. Any failure
for a symbol, including an empty response, zeroes its three ratios.
"""

import asyncio
from typing import Dict, List, Optional, Sequence

from core.logging import get_logger
from core.schemas import EnrichedRecord, RatioSample
from core.utils.time import current_utc_timestamp, window_start_ms

logger = get_logger(__name__)

RATIO_FALLBACK = {
    "top_position_ratio": 0.0,
    "top_account_ratio": 0.0,
    "global_account_ratio": 0.0,
}


def latest_ratio(samples: Sequence[RatioSample]) -> float:
    """
    Long/short ratio of the most recent sample.

    Raises:
        IndexError: If the response was empty
    """
    ordered = sorted(samples, key=lambda sample: sample.timestamp)
    return ordered[-1].long_short_ratio


async def fetch_ratios(client, symbol: str, period: str, start_time: int) -> Dict[str, float]:
    """Fetch the three ratio series for one symbol and keep the latest value of each."""
    position, account, global_account = await asyncio.gather(
        client.get_top_long_short_position_ratio(symbol, period=period, start_time=start_time, limit=1),
        client.get_top_long_short_account_ratio(symbol, period=period, start_time=start_time, limit=1),
        client.get_global_long_short_account_ratio(symbol, period=period, start_time=start_time, limit=1),
    )
    return {
        "top_position_ratio": latest_ratio(position),
        "top_account_ratio": latest_ratio(account),
        "global_account_ratio": latest_ratio(global_account),
    }


async def _enrich_one(client, record: EnrichedRecord, period: str, start_time: int) -> EnrichedRecord:
    try:
        ratios = await fetch_ratios(client, record.symbol, period, start_time)
    except Exception as e:
        logger.error(f"Failed to fetch long/short ratios for {record.symbol}: {e}")
        ratios = dict(RATIO_FALLBACK)
    return record.model_copy(update=ratios)


async def enrich_long_short_ratios(
    client,
    records: Sequence[EnrichedRecord],
    period: str = "1h",
    lookback_hours: int = 1,
    now_ms: Optional[int] = None
) -> List[EnrichedRecord]:
    """
    Attach long/short ratios to every record, preserving order.

    Args:
        client: BinanceAPIClient (or anything exposing the three ratio getters)
        records: Records after open-interest enrichment
        period: Ratio sample period
        lookback_hours: Window start offset from now
        now_ms: Reference time in epoch milliseconds (defaults to now)
    """
    if now_ms is None:
        now_ms = current_utc_timestamp(milliseconds=True)
    start_time = window_start_ms(lookback_hours, now_ms)
    return list(await asyncio.gather(*(
        _enrich_one(client, record, period, start_time) for record in records
    )))
