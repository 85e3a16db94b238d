"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates ranking, refresh and enrichment settings on startup
- Provides type-safe access to configuration values
- Converts comma-separated strings to lists (CORS origins)

Usage:
    from core.config import settings

    print(settings.binance_base_url)
    print(settings.refresh_interval_seconds)
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


# Hard ceiling on the size of the ranked board
MAX_TOP_N = 10

OI_MODES = ("points", "average", "interval_average")
VALID_PERIODS = ("5m", "15m", "30m", "1h", "2h", "4h", "6h", "12h", "1d")


class Settings(BaseSettings):
    """
    Application Settings

    Values are automatically loaded from environment variables or .env file.

    Attributes:
        binance_base_url: Base URL for Binance Futures API
        quote_asset_suffix: Symbol suffix that marks the eligible universe
        top_n: Number of symbols kept on the board (at most 10)
        refresh_interval_seconds: Period of the refresh timer
        oi_mode: Open-interest enrichment variant
        oi_period: Sample period for open-interest history
        ratio_lookback_hours: Lookback window for long/short ratio requests
        request_timeout: Session-wide HTTP timeout in seconds (0 disables it)
        app_host: Host address for FastAPI server
        app_port: Port number for FastAPI server
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
        log_level: Logging level
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # Binance API Configuration
    # ============================================

    binance_base_url: str = Field(
        default="https://fapi.binance.com",
        description="Binance Futures API base URL"
    )

    request_timeout: float = Field(
        default=30,
        description="HTTP request timeout in seconds (0 = no timeout)"
    )

    # ============================================
    # Funding Board Configuration
    # ============================================

    quote_asset_suffix: str = Field(
        default="USDT",
        description="Only symbols ending with this suffix are ranked"
    )

    top_n: int = Field(
        default=MAX_TOP_N,
        description="Number of symbols kept on the board (1-10)"
    )

    refresh_interval_seconds: float = Field(
        default=30,
        description="Seconds between two refresh cycles"
    )

    oi_mode: str = Field(
        default="points",
        description="Open-interest enrichment: points, average or interval_average"
    )

    oi_period: str = Field(
        default="1h",
        description="Open-interest history sample period"
    )

    ratio_lookback_hours: int = Field(
        default=1,
        description="Lookback window (hours) for long/short ratio requests"
    )

    # ============================================
    # Application Configuration
    # ============================================

    app_host: str = Field(
        default="0.0.0.0",
        description="FastAPI server host address"
    )

    app_port: int = Field(
        default=8000,
        description="FastAPI server port"
    )

    environment: str = Field(
        default="development",
        description="Application environment (development, production)"
    )

    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Convert comma-separated CORS origins string to a list.

        Example:
            >>> settings.cors_origins_list
            ['http://localhost:3000', 'http://localhost:5173']
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def http_timeout(self) -> Optional[float]:
        """Session timeout handed to the exchange client; None when disabled."""
        return self.request_timeout if self.request_timeout > 0 else None


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Optional[Settings] = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to check (defaults to the global instance)

    Raises:
        ValueError: If a setting is missing or invalid
    """
    # logging.py imports config.py, so the logger is imported lazily
    from core.logging import logger

    config = config or settings

    if not config.binance_base_url.startswith("http"):
        raise ValueError(f"Invalid BINANCE_BASE_URL: '{config.binance_base_url}'")

    if not config.quote_asset_suffix:
        raise ValueError("QUOTE_ASSET_SUFFIX must not be empty")

    if not (1 <= config.top_n <= MAX_TOP_N):
        raise ValueError(f"Invalid TOP_N: {config.top_n}. Must be between 1 and {MAX_TOP_N}")

    if config.refresh_interval_seconds <= 0:
        raise ValueError(
            f"Invalid REFRESH_INTERVAL_SECONDS: {config.refresh_interval_seconds}. Must be positive"
        )

    if config.oi_mode not in OI_MODES:
        raise ValueError(
            f"Invalid OI_MODE: '{config.oi_mode}'. "
            f"Must be one of: {', '.join(OI_MODES)}"
        )

    if config.oi_period not in VALID_PERIODS:
        raise ValueError(
            f"Invalid OI_PERIOD: '{config.oi_period}'. "
            f"Must be one of: {', '.join(VALID_PERIODS)}"
        )

    if config.ratio_lookback_hours < 1:
        raise ValueError(f"Invalid RATIO_LOOKBACK_HOURS: {config.ratio_lookback_hours}")

    if config.request_timeout < 0:
        raise ValueError(f"Invalid REQUEST_TIMEOUT: {config.request_timeout}")

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Binance API: {config.binance_base_url}")
    logger.info(f"Board: top {config.top_n} *{config.quote_asset_suffix} symbols, "
                f"refresh every {config.refresh_interval_seconds}s")
    logger.info(f"OI mode: {config.oi_mode} ({config.oi_period})")
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
