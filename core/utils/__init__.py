"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp conversion and normalization utilities
    - numbers: Fixed-point rounding helpers
"""

from core.utils.time import to_utc_datetime, current_utc_timestamp
from core.utils.numbers import round_half_up, to_fixed, percent_change

__all__ = ["to_utc_datetime", "current_utc_timestamp", "round_half_up", "to_fixed", "percent_change"]
