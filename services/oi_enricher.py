"""
Open-Interest Enricher

For every ranked symbol, fetches a short window of hourly open-interest
history and attaches derived fields to the record. Symbols are processed
concurrently; a failure for one symbol is logged and replaced by a
zero-valued fallback so the rest of the board is unaffected.

Modes:
    POINTS            - current, ~1h-ago and ~3h-ago notional values plus
                        their percentage changes (default)
    AVERAGE           - mean of value/quantity over the last 5 samples
    INTERVAL_AVERAGE  - the same mean over the latest 1, 3 and 10 samples
"""

import asyncio
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from core.logging import get_logger
from core.schemas import EnrichedRecord, OpenInterestSample, RankedRate
from core.utils.numbers import round_half_up
from core.utils.time import current_utc_timestamp, period_ms

logger = get_logger(__name__)


class OIMode(str, Enum):
    POINTS = "points"
    AVERAGE = "average"
    INTERVAL_AVERAGE = "interval_average"


# Number of samples requested per mode
WINDOW_SIZES = {
    OIMode.POINTS: 4,
    OIMode.AVERAGE: 5,
    OIMode.INTERVAL_AVERAGE: 10,
}

INTERVAL_PREFIXES = (1, 3, 10)


# ============================================
# Math
# ============================================

def _unit_value(sample: OpenInterestSample) -> float:
    """Notional per contract; a zero quantity gives +/-Infinity or NaN."""
    value, quantity = sample.sum_open_interest_value, sample.sum_open_interest
    if quantity == 0:
        if value > 0:
            return math.inf
        if value < 0:
            return -math.inf
        return math.nan
    return value / quantity


def average_unit_value(samples: Sequence[OpenInterestSample]) -> float:
    """Mean of value/quantity over `samples`, 2 decimals; 0 when empty."""
    if not samples:
        return 0.0
    total = sum(_unit_value(sample) for sample in samples)
    return round_half_up(total / len(samples), 2)


def interval_averages(samples: Sequence[OpenInterestSample]) -> List[float]:
    """Average unit value over the 1, 3 and 10 most recent samples."""
    return [average_unit_value(samples[:size]) for size in INTERVAL_PREFIXES]


def oi_change_rate(current: float, previous: float) -> float:
    """
    Percentage change from previous to current, 2 decimals.

    A zero previous value yields +Infinity if current is positive, else 0.
    """
    if previous == 0:
        return math.inf if current > 0 else 0.0
    return round_half_up((current - previous) / previous * 100, 2)


def point_values(samples: Sequence[OpenInterestSample]) -> List[float]:
    """
    Current, ~1h-ago and ~3h-ago open interest values (newest first input).

    Index 1 falls back to index 0 and index 3 falls back to index 2 (or the
    oldest sample available) when the window is short.
    """
    if not samples:
        return [0.0, 0.0, 0.0]
    values = [sample.sum_open_interest_value for sample in samples]
    current = values[0]
    hour_ago = values[1] if len(values) > 1 else current
    three_hours_ago = values[3] if len(values) > 3 else values[min(2, len(values) - 1)]
    return [current, hour_ago, three_hours_ago]


def derive_fields(samples: Sequence[OpenInterestSample], mode: OIMode) -> Dict[str, Any]:
    """
    Compute the record fields for `mode` from an unsorted sample window.
    """
    ordered = sorted(samples, key=lambda sample: sample.timestamp, reverse=True)

    if mode is OIMode.AVERAGE:
        return {"avg_oi_price": average_unit_value(ordered)}

    if mode is OIMode.INTERVAL_AVERAGE:
        return {"oi_interval_averages": interval_averages(ordered)}

    values = point_values(ordered)
    return {
        "oi_values": values,
        "oi_change_rates": [
            oi_change_rate(values[0], values[1]),
            oi_change_rate(values[0], values[2]),
        ],
    }


def fallback_fields(mode: OIMode) -> Dict[str, Any]:
    """Zero-valued fields attached when a symbol's history cannot be fetched."""
    if mode is OIMode.AVERAGE:
        return {"avg_oi_price": 0.0}
    if mode is OIMode.INTERVAL_AVERAGE:
        return {"oi_interval_averages": [0.0, 0.0, 0.0]}
    return {"oi_values": [0.0, 0.0, 0.0], "oi_change_rates": [0.0, 0.0]}


# ============================================
# Enrichment
# ============================================

async def _enrich_one(
    client,
    rate: RankedRate,
    mode: OIMode,
    period: str,
    now_ms: int
) -> EnrichedRecord:
    window = WINDOW_SIZES[mode]
    base = EnrichedRecord(**rate.model_dump())
    try:
        samples = await client.get_open_interest_hist(
            rate.symbol,
            period=period,
            start_time=now_ms - window * period_ms(period),
            limit=window
        )
        fields = derive_fields(samples, mode)
    except Exception as e:
        logger.error(f"Failed to fetch OI for {rate.symbol}: {e}")
        fields = fallback_fields(mode)
    return base.model_copy(update=fields)


async def enrich_open_interest(
    client,
    rates: Sequence[RankedRate],
    mode: OIMode = OIMode.POINTS,
    period: str = "1h",
    now_ms: Optional[int] = None
) -> List[EnrichedRecord]:
    """
    Attach open-interest fields to every ranked rate.

    Args:
        client: BinanceAPIClient (or anything with get_open_interest_hist)
        rates: Ranked rates, board order
        mode: Which derived fields to compute
        period: History sample period
        now_ms: Reference time for the window start (defaults to now)

    Returns:
        EnrichedRecords in the same order as `rates`
    """
    mode = OIMode(mode)
    if now_ms is None:
        now_ms = current_utc_timestamp(milliseconds=True)
    return list(await asyncio.gather(*(
        _enrich_one(client, rate, mode, period, now_ms) for rate in rates
    )))
