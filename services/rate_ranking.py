"""
Funding Rate Ranking

Joins premium-index snapshots with the eligible symbol set, derives the
cycle-over-cycle change of each funding rate and keeps the top symbols by
absolute funding rate.

The previous cycle's rates live in a RankingContext that the caller owns
and passes in, so two pipelines never share history and tests can seed it.
"""

import math
from typing import Dict, Iterable, List, Optional

from core.config import MAX_TOP_N
from core.logging import get_logger
from core.schemas import PremiumSnapshot, RankedRate
from core.utils.numbers import percent_change, round_half_up

logger = get_logger(__name__)


class RankingContext:
    """
    Funding-rate history keyed by symbol.

    The map only grows: every symbol ever ranked keeps its last observed
    rate for the lifetime of the context.
    """

    def __init__(self, history: Optional[Dict[str, float]] = None) -> None:
        self.history: Dict[str, float] = dict(history or {})

    def previous_rate(self, symbol: str) -> Optional[float]:
        return self.history.get(symbol)

    def record(self, symbol: str, rate: float) -> None:
        self.history[symbol] = rate

    def __len__(self) -> int:
        return len(self.history)

    def __repr__(self) -> str:
        return f"<RankingContext symbols={len(self.history)}>"


def parse_rate(raw: str) -> float:
    """
    Parse a decimal funding-rate string.

    Unparseable input (e.g. the empty string Binance sends for delisted
    contracts) becomes NaN instead of raising.
    """
    try:
        return float(raw)
    except (TypeError, ValueError):
        return math.nan


def rank_funding_rates(
    snapshots: Iterable[PremiumSnapshot],
    eligible: Iterable[str],
    context: RankingContext,
    limit: int = MAX_TOP_N
) -> List[RankedRate]:
    """
    Rank eligible symbols by absolute funding rate.

    Steps:
        1. Drop snapshots whose symbol is not eligible
        2. Parse the funding rate (NaN on bad input)
        3. Compare with the previous rate in `context` (first sighting = 0% change)
        4. Store the current rate in `context`
        5. Stable sort by |rate| descending, NaN rates last, and keep the first `limit` (max 10)

    Args:
        snapshots: Premium index entries
        eligible: Symbols allowed on the board
        context: Rate history, updated in place
        limit: Board size, clamped to 10

    Returns:
        At most `limit` RankedRate records

    Example:
        >>> ctx = RankingContext({"BTCUSDT": 0.0002})
        >>> rank_funding_rates([PremiumSnapshot(symbol="BTCUSDT", last_funding_rate="0.0001",
        ...                     next_funding_time=0)], {"BTCUSDT"}, ctx)[0].change_percent
        -50.0
    """
    eligible_set = set(eligible)
    limit = max(0, min(limit, MAX_TOP_N))
    rates: List[RankedRate] = []

    for snapshot in snapshots:
        if snapshot.symbol not in eligible_set:
            continue

        current = parse_rate(snapshot.last_funding_rate)
        previous = context.previous_rate(snapshot.symbol)

        if previous is None:
            change = 0.0
        else:
            change = round_half_up(percent_change(current, previous), 2)

        context.record(snapshot.symbol, current)

        rates.append(RankedRate(
            symbol=snapshot.symbol,
            last_funding_rate=current,
            next_funding_time=snapshot.next_funding_time,
            change_percent=change
        ))

    # NaN rates sort last; ties keep input order
    rates.sort(key=lambda rate: (math.isnan(rate.last_funding_rate), -abs(rate.last_funding_rate)))
    logger.debug(f"Ranked {len(rates)} eligible symbols, keeping {min(limit, len(rates))}")
    return rates[:limit]
