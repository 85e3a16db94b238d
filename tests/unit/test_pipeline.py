"""
Unit Tests for the Funding Pipeline

Exercises one full cycle against the in-memory client: filtering, ranking,
open-interest and ratio enrichment with per-symbol failures.

Run with:
    pytest tests/unit/test_pipeline.py -v
"""

import pytest

from core.config import Settings
from core.exceptions import NetworkError, ParseError
from services.oi_enricher import OIMode
from services.pipeline import FundingPipeline
from services.rate_ranking import RankingContext
from tests.conftest import NOW_MS, FakeBinanceClient, meta, premium


class TestFundingPipeline:
    """Tests for FundingPipeline.run"""

    @pytest.mark.asyncio
    async def test_full_cycle(self, fake_client):
        """Verify ranking order, enrichment and per-symbol fallbacks"""
        records = await FundingPipeline().run(fake_client, now_ms=NOW_MS)

        assert [r.symbol for r in records] == ["ETHUSDT", "SOLUSDT", "BTCUSDT"]

        eth, sol, btc = records
        assert eth.last_funding_rate == -0.0005
        assert eth.oi_values == [60.0, 40.0, 50.0]
        assert eth.oi_change_rates == [50.0, 20.0]
        assert (eth.top_position_ratio, eth.top_account_ratio, eth.global_account_ratio) == (0.0, 0.0, 0.0)

        assert sol.oi_values == [0.0, 0.0, 0.0]
        assert sol.oi_change_rates == [0.0, 0.0]
        assert (sol.top_position_ratio, sol.top_account_ratio, sol.global_account_ratio) == (2.0, 0.5, 3.0)

        assert btc.oi_values == [150.0, 120.0, 100.0]
        assert (btc.top_position_ratio, btc.top_account_ratio, btc.global_account_ratio) == (1.0, 4.0, 1.5)

    @pytest.mark.asyncio
    async def test_ineligible_symbols_never_enriched(self, fake_client):
        await FundingPipeline().run(fake_client, now_ms=NOW_MS)

        enriched_symbols = {call[1] for call in fake_client.calls if len(call) > 1}
        assert enriched_symbols == {"BTCUSDT", "ETHUSDT", "SOLUSDT"}

    @pytest.mark.asyncio
    async def test_change_percent_across_cycles(self, fake_client):
        """Verify the pipeline's context carries rates from one run to the next"""
        pipeline = FundingPipeline()
        first = await pipeline.run(fake_client, now_ms=NOW_MS)
        assert all(r.change_percent == 0.0 for r in first)

        fake_client.premium_index = [premium("BTCUSDT", "0.00005000")]
        second = await pipeline.run(fake_client, now_ms=NOW_MS)

        assert [(r.symbol, r.change_percent) for r in second] == [("BTCUSDT", -50.0)]

    @pytest.mark.asyncio
    async def test_seeded_context(self):
        client = FakeBinanceClient(exchange_info=[meta("BTCUSDT")], premium_index=[premium("BTCUSDT", "0.0001")])
        pipeline = FundingPipeline(context=RankingContext({"BTCUSDT": 0.0002}))

        records = await pipeline.run(client, now_ms=NOW_MS)

        assert records[0].change_percent == -50.0

    @pytest.mark.asyncio
    async def test_top_n_limits_board(self, fake_client):
        records = await FundingPipeline(top_n=2).run(fake_client, now_ms=NOW_MS)
        assert [r.symbol for r in records] == ["ETHUSDT", "SOLUSDT"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,error", [
        ("exchange_info", NetworkError("HTTP 418 on /fapi/v1/exchangeInfo")),
        ("premium_index", ParseError("Malformed payload from /fapi/v1/premiumIndex")),
    ])
    async def test_metadata_failures_abort_cycle(self, fake_client, field, error):
        """Verify exchange info / premium index failures propagate"""
        setattr(fake_client, field, error)

        with pytest.raises(type(error)):
            await FundingPipeline().run(fake_client, now_ms=NOW_MS)

    def test_from_settings(self):
        config = Settings(_env_file=None, top_n=3, oi_mode="interval_average", quote_asset_suffix="USDC")
        pipeline = FundingPipeline.from_settings(config)

        assert pipeline.top_n == 3
        assert pipeline.oi_mode is OIMode.INTERVAL_AVERAGE
        assert pipeline.quote_suffix == "USDC"
