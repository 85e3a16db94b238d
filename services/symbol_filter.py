"""
Symbol Filter

Determines the eligible trading universe from exchange metadata: symbols
quoted in USDT whose contract is currently trading.
"""

from typing import Iterable, List

from core.schemas import SymbolMetadata

TRADING_STATUS = "TRADING"


def filter_trading_symbols(metadata: Iterable[SymbolMetadata], quote_suffix: str = "USDT") -> List[str]:
    """
    Return symbols ending with `quote_suffix` whose status is TRADING.

    Input order is preserved.

    Example:
        >>> filter_trading_symbols([SymbolMetadata(symbol="BTCUSDT", status="TRADING")])
        ['BTCUSDT']
    """
    return [
        item.symbol
        for item in metadata
        if item.symbol.endswith(quote_suffix) and item.status == TRADING_STATUS
    ]
