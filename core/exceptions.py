"""
Exchange Exceptions

Errors raised by the exchange client. Callers decide recovery:
the pipeline treats failures of the metadata/premium fetches as fatal for
the cycle, while per-symbol enrichment failures are caught and replaced
with zero-valued fallbacks.
"""


class ExchangeError(Exception):
    """Base exception for all exchange client errors."""


class NetworkError(ExchangeError):
    """Raised when the transport fails, times out or returns a non-200 status."""


class ParseError(ExchangeError):
    """Raised when a response payload cannot be decoded into our schemas."""
