"""
Funding Board Schemas

This module defines Pydantic models for every record that flows through the
aggregation pipeline, from raw exchange payloads to the board published to
the view layer.

Models:
    - SymbolMetadata: Contract metadata from /fapi/v1/exchangeInfo
    - PremiumSnapshot: Current funding data from /fapi/v1/premiumIndex
    - RankedRate: Funding rate with its cycle-over-cycle change
    - OpenInterestSample: One point of /futures/data/openInterestHist
    - RatioSample: One point of the long/short ratio endpoints
    - EnrichedRecord: RankedRate plus open-interest and sentiment fields
    - FundingBoard: Ordered records plus loading/error flags
    - FormattedRow: Display-ready projection of an EnrichedRecord

Notes:
    Float fields may legitimately hold NaN or +/-Infinity (unparseable rates,
    zero denominators). They are serialised as the JSON constants NaN and
    Infinity instead of being replaced.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator, ConfigDict


# ============================================
# Base Model
# ============================================

class SymbolModel(BaseModel):
    """
    Base model for all per-symbol records.

    Normalizes the symbol to uppercase and serialises non-finite floats as
    JSON constants.
    """

    symbol: str = Field(
        ...,
        description="Trading pair symbol in uppercase",
        examples=["BTCUSDT", "ETHUSDT", "SOLUSDT"]
    )

    model_config = ConfigDict(ser_json_inf_nan="constants")

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v: str) -> str:
        """Ensure symbol is uppercase"""
        return v.upper()


# ============================================
# Exchange Payloads
# ============================================

class SymbolMetadata(SymbolModel):
    """
    Contract metadata for one symbol.

    Only `symbol` and `status` take part in eligibility; `contract_type`
    is carried for completeness (e.g., "PERPETUAL", "CURRENT_QUARTER").
    """

    status: str = Field(
        ...,
        description="Contract status",
        examples=["TRADING", "SETTLING", "PENDING_TRADING"]
    )

    contract_type: Optional[str] = Field(
        None,
        description="Contract type",
        examples=["PERPETUAL"]
    )


class PremiumSnapshot(SymbolModel):
    """
    Premium index entry for one symbol.

    The funding rate is kept as the decimal string Binance sends; parsing
    happens in the ranking step so that unparseable values surface as NaN
    rather than failing the whole payload.
    """

    last_funding_rate: str = Field(
        ...,
        description="Last funding rate as a decimal string",
        examples=["0.00010000"]
    )

    next_funding_time: int = Field(
        ...,
        description="Next funding time in epoch milliseconds"
    )


class OpenInterestSample(SymbolModel):
    """
    Historical open interest point.

    Attributes:
        sum_open_interest: Open interest in base asset (contracts)
        sum_open_interest_value: Open interest notional in USDT
        timestamp: Sample time in UTC
    """

    sum_open_interest: float = Field(..., description="Total open interest in base asset")
    sum_open_interest_value: float = Field(..., description="Total open interest value in USDT")
    timestamp: datetime = Field(..., description="Sample timestamp in UTC")


class RatioSample(SymbolModel):
    """
    Long/short ratio point.

    The three ratio endpoints (top trader positions, top trader accounts,
    global accounts) share this shape.
    """

    long_short_ratio: float = Field(..., description="Long exposure divided by short exposure")
    long_account: Optional[float] = Field(None, description="Long share (0-1)")
    short_account: Optional[float] = Field(None, description="Short share (0-1)")
    timestamp: datetime = Field(..., description="Sample timestamp in UTC")


# ============================================
# Pipeline Records
# ============================================

class RankedRate(SymbolModel):
    """
    Funding rate ranked by magnitude.

    Attributes:
        last_funding_rate: Parsed funding rate (0.0001 = 0.01%), NaN if unparseable
        next_funding_time: Next funding time in epoch milliseconds
        change_percent: Change against the previous cycle's rate, 2 decimals
    """

    last_funding_rate: float
    next_funding_time: int
    change_percent: float

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "symbol": "BTCUSDT",
                "last_funding_rate": 0.0001,
                "next_funding_time": 1704124800000,
                "change_percent": -50.0
            }
        }
    )


class EnrichedRecord(RankedRate):
    """
    Ranked rate plus the derived open-interest and sentiment fields.

    Which open-interest fields are populated depends on the enrichment mode:
        - points: oi_values [current, ~1h ago, ~3h ago] and oi_change_rates [1h %, 3h %]
        - average: avg_oi_price (mean value/quantity over the window)
        - interval_average: oi_interval_averages over the 1/3/10 latest samples
    """

    oi_values: Optional[List[float]] = None
    oi_change_rates: Optional[List[float]] = None
    avg_oi_price: Optional[float] = None
    oi_interval_averages: Optional[List[float]] = None
    top_position_ratio: Optional[float] = None
    top_account_ratio: Optional[float] = None
    global_account_ratio: Optional[float] = None


class FundingBoard(BaseModel):
    """
    What the view layer receives: the ordered records and the loading/error flags.

    Attributes:
        records: At most 10 enriched records, highest |funding rate| first
        loading: True until the first cycle has finished
        error: Message of the last failed cycle, None after a successful one
        updated_at: Completion time of the last successful cycle
        cycle: Number of cycles run so far
    """

    records: List[EnrichedRecord] = Field(default_factory=list)
    loading: bool = True
    error: Optional[str] = None
    updated_at: Optional[datetime] = None
    cycle: int = 0

    model_config = ConfigDict(ser_json_inf_nan="constants")


# ============================================
# Presentation
# ============================================

class FormattedRow(BaseModel):
    """
    One display row of the funding table.

    Percentage pairs are (long %, short %).
    """

    rank: int
    symbol: str
    funding_rate: str = Field(..., examples=["0.0100%"])
    direction: str = Field(..., examples=["positive", "negative"])
    next_funding: str = Field(..., examples=["16:00:00"])
    change_percent: str
    oi_values: Optional[List[str]] = None
    oi_change_rates: Optional[List[str]] = None
    avg_oi_price: Optional[str] = None
    oi_interval_averages: Optional[List[str]] = None
    top_position: Optional[Tuple[float, float]] = None
    top_account: Optional[Tuple[float, float]] = None
    global_account: Optional[Tuple[float, float]] = None
