"""
Presentation Formatter

Pure numeric transforms used to render the funding table. Nothing here
performs I/O.
"""

import math
from datetime import tzinfo
from typing import List, Optional, Tuple

from core.schemas import EnrichedRecord, FormattedRow
from core.utils.numbers import round_half_up, to_fixed
from core.utils.time import to_utc_datetime


def ratio_to_percent_pair(ratio: float) -> Tuple[float, float]:
    """
    Split a long/short ratio into (long %, short %).

    Non-positive or non-finite ratios give (50, 50). Both sides are rounded
    from the unrounded long share, so their sum may be off 100 by 0.01.

    Examples:
        >>> ratio_to_percent_pair(4)
        (80.0, 20.0)
        >>> ratio_to_percent_pair(0)
        (50.0, 50.0)
    """
    if not math.isfinite(ratio) or ratio <= 0:
        return 50.0, 50.0
    long_share = ratio / (ratio + 1) * 100
    return round_half_up(long_share, 2), round_half_up(100 - long_share, 2)


def format_magnitude(value: float) -> str:
    """
    Compact notional value.

    Examples:
        >>> format_magnitude(1.5e9)
        '1.5B'
        >>> format_magnitude(2.3e6)
        '2.3M'
        >>> format_magnitude(500)
        '1K'
    """
    if value >= 1e9:
        return f"{to_fixed(value / 1e9, 1)}B"
    if value >= 1e6:
        return f"{to_fixed(value / 1e6, 1)}M"
    return f"{to_fixed(value / 1e3, 0)}K"


def format_funding_rate(rate: float) -> str:
    """Funding rate as a percentage with 4 decimals, e.g. 0.0001 -> '0.0100%'."""
    return f"{to_fixed(rate * 100, 4)}%"


def funding_direction(rate: float) -> str:
    """'positive' when longs pay shorts, otherwise 'negative'."""
    return "positive" if rate > 0 else "negative"


def format_funding_time(timestamp_ms: int, tz: Optional[tzinfo] = None) -> str:
    """
    Clock time of the next funding, HH:MM:SS.

    Args:
        timestamp_ms: Funding time in epoch milliseconds
        tz: Display timezone (defaults to the server's local zone)
    """
    return to_utc_datetime(timestamp_ms).astimezone(tz).strftime("%H:%M:%S")


def _fixed_list(values: Optional[List[float]], digits: int = 2) -> Optional[List[str]]:
    if values is None:
        return None
    return [to_fixed(value, digits) for value in values]


def _pair(ratio: Optional[float]) -> Optional[Tuple[float, float]]:
    return None if ratio is None else ratio_to_percent_pair(ratio)


def format_record(record: EnrichedRecord, rank: int, tz: Optional[tzinfo] = None) -> FormattedRow:
    """
    Build the display row for a board record.

    Args:
        record: Enriched record
        rank: 1-based position on the board
        tz: Display timezone for the next funding time
    """
    return FormattedRow(
        rank=rank,
        symbol=record.symbol,
        funding_rate=format_funding_rate(record.last_funding_rate),
        direction=funding_direction(record.last_funding_rate),
        next_funding=format_funding_time(record.next_funding_time, tz),
        change_percent=f"{to_fixed(record.change_percent, 2)}%",
        oi_values=None if record.oi_values is None else [format_magnitude(v) for v in record.oi_values],
        oi_change_rates=_fixed_list(record.oi_change_rates),
        avg_oi_price=None if record.avg_oi_price is None else to_fixed(record.avg_oi_price, 2),
        oi_interval_averages=_fixed_list(record.oi_interval_averages),
        top_position=_pair(record.top_position_ratio),
        top_account=_pair(record.top_account_ratio),
        global_account=_pair(record.global_account_ratio),
    )


def format_board(records: List[EnrichedRecord], tz: Optional[tzinfo] = None) -> List[FormattedRow]:
    """Display rows for the whole board, ranked from 1."""
    return [format_record(record, index + 1, tz) for index, record in enumerate(records)]
