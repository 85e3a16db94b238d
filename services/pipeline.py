"""
Funding Board Pipeline

One refresh cycle of the board:

    exchangeInfo + premiumIndex (concurrently)
        -> symbol filter
        -> rate ranking (top N by |funding rate|)
        -> open-interest enrichment (per symbol, fault tolerant)
        -> long/short ratio enrichment (per symbol, fault tolerant)

Failures of the two initial fetches propagate to the caller and abort the
cycle. Enrichment failures never do.
"""

import asyncio
from typing import List, Optional

from core.config import MAX_TOP_N, Settings
from core.logging import get_logger
from core.schemas import EnrichedRecord
from core.utils.time import current_utc_timestamp
from services.oi_enricher import OIMode, enrich_open_interest
from services.rate_ranking import RankingContext, rank_funding_rates
from services.ratio_enricher import enrich_long_short_ratios
from services.symbol_filter import filter_trading_symbols


class FundingPipeline:
    """
    Fetch, rank and enrich the funding board.

    The pipeline owns the RankingContext, so funding-rate history survives
    from one `run()` to the next for as long as the pipeline instance lives.

    Example:
        >>> pipeline = FundingPipeline()
        >>> async with BinanceAPIClient() as client:
        ...     records = await pipeline.run(client)
    """

    def __init__(
        self,
        context: Optional[RankingContext] = None,
        top_n: int = MAX_TOP_N,
        quote_suffix: str = "USDT",
        oi_mode: OIMode = OIMode.POINTS,
        oi_period: str = "1h",
        ratio_lookback_hours: int = 1
    ) -> None:
        self.context = context if context is not None else RankingContext()
        self.top_n = top_n
        self.quote_suffix = quote_suffix
        self.oi_mode = OIMode(oi_mode)
        self.oi_period = oi_period
        self.ratio_lookback_hours = ratio_lookback_hours
        self._logger = get_logger(__name__)

    @classmethod
    def from_settings(cls, config: Settings, context: Optional[RankingContext] = None) -> "FundingPipeline":
        """Build a pipeline from application settings."""
        return cls(
            context=context,
            top_n=config.top_n,
            quote_suffix=config.quote_asset_suffix,
            oi_mode=OIMode(config.oi_mode),
            oi_period=config.oi_period,
            ratio_lookback_hours=config.ratio_lookback_hours,
        )

    async def run(self, client, now_ms: Optional[int] = None) -> List[EnrichedRecord]:
        """
        Run one cycle against `client`.

        Args:
            client: Open BinanceAPIClient
            now_ms: Reference time for history windows (defaults to now)

        Returns:
            Up to `top_n` enriched records, highest |funding rate| first

        Raises:
            ExchangeError: If exchange info or the premium index cannot be fetched
        """
        if now_ms is None:
            now_ms = current_utc_timestamp(milliseconds=True)

        metadata, snapshots = await asyncio.gather(
            client.get_exchange_info(),
            client.get_premium_index(),
        )

        eligible = filter_trading_symbols(metadata, self.quote_suffix)
        ranked = rank_funding_rates(snapshots, eligible, self.context, limit=self.top_n)
        self._logger.info(
            f"Ranked {len(ranked)} of {len(eligible)} eligible symbols "
            f"(history size={len(self.context)})"
        )

        records = await enrich_open_interest(
            client, ranked, mode=self.oi_mode, period=self.oi_period, now_ms=now_ms
        )
        return await enrich_long_short_ratios(
            client,
            records,
            lookback_hours=self.ratio_lookback_hours,
            now_ms=now_ms
        )
