"""
Unified Logging Configuration

Sets up one logging configuration for the whole service. Modules import
`logger` (the application root logger) or call `get_logger(__name__)` for a
child logger instead of using print().

Usage:
    from core.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Refresh cycle finished")

Log Levels used across the service:
    DEBUG    - Raw request/response traces from the exchange client
    INFO     - Cycle start/finish, monitor lifecycle
    WARNING  - Skipped ticks, dropped events
    ERROR    - Failed cycles and per-symbol enrichment failures

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional

APP_LOGGER_NAME = "fundingboard"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Service started")
        2024-01-01 12:00:00 [INFO] fundingboard Service started
    """
    if log_format is None:
        format_parts = []
        if include_timestamp:
            format_parts.append("%(asctime)s")
        format_parts.append("[%(levelname)s]")
        if include_module:
            format_parts.append("%(name)s")
        format_parts.append("%(message)s")
        log_format = " ".join(format_parts)

    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    logger = logging.getLogger(APP_LOGGER_NAME)
    logger.setLevel(level)
    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child of the application logger for a module.

    Example:
        logger = get_logger(__name__)  # "fundingboard.services.pipeline"
    """
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def log_api_request(exchange: str, endpoint: str, params: Optional[dict] = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("binance", "/futures/data/openInterestHist", {"symbol": "BTCUSDT"})
        [DEBUG] API Request: binance /futures/data/openInterestHist | Params: {'symbol': 'BTCUSDT'}
    """
    if params:
        logger.debug(f"API Request: {exchange} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {exchange} {endpoint}")


def log_api_response(exchange: str, endpoint: str, status: int, response_time: Optional[float] = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("binance", "/fapi/v1/premiumIndex", 200, 0.342)
        [DEBUG] API Response: binance /fapi/v1/premiumIndex | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {exchange} {endpoint} | Status: {status}{time_str}")


logger.debug("Logging system initialized")
