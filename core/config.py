"""
Configuration Management Module

This module handles loading, validating, and providing access to application configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file
- Validates all required settings
- Provides type-safe access to configuration values
- Builds the rate endpoint URLs from a single API base
- Handles optional settings with sensible defaults

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.api_base)
    print(settings.history_url)  # http://localhost:8080/rate/history
"""

from datetime import tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Application Settings

    This class defines all configuration parameters for the application.
    Values are automatically loaded from environment variables or .env file.

    Attributes:
        api_base: Base URL of the rate backend (history, latest and SSE endpoints)
        request_timeout: Timeout for history/latest HTTP requests in seconds
        stream_connect_timeout: Timeout for establishing the live SSE connection
        history_max_attempts: Attempts for a history request answered with 429/503
        chart_max_points: Maximum number of points in a chart series
        display_timezone: IANA zone for chart labels (empty = system local zone)
        app_host: Host address for the FastAPI host shell
        app_port: Port number for the FastAPI host shell
        environment: Current environment (development, production)
        debug: Enable debug mode with verbose logging
        log_level: Logging level
        cors_origins: Comma-separated list of allowed CORS origins
    """

    # ============================================
    # Rate Backend Configuration
    # ============================================

    api_base: str = Field(
        default="http://localhost:8080",
        description="Base URL of the rate backend"
    )

    request_timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds for history/latest requests"
    )

    stream_connect_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for opening the live SSE connection"
    )

    history_max_attempts: int = Field(
        default=3,
        description="Attempts for a history request rejected with 429/503"
    )

    # ============================================
    # Presentation Configuration
    # ============================================

    chart_max_points: int = Field(
        default=24,
        description="Maximum number of points in a downsampled chart series"
    )

    display_timezone: str = Field(
        default="",
        description="IANA timezone for chart labels (empty = system local zone)"
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

    # ============================================
    # CORS Configuration
    # ============================================

    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        # Look for .env file in the project root
        env_file=".env",
        # Ignore extra fields in .env that aren't defined here
        extra="ignore",
        # Case-insensitive environment variable matching
        case_sensitive=False
    )

    # ============================================
    # Custom Properties
    # ============================================

    @property
    def base_url(self) -> str:
        """API base without a trailing slash."""
        return self.api_base.rstrip("/")

    @property
    def history_url(self) -> str:
        """
        Full URL of the historical series endpoint.

        Example:
            >>> settings.history_url
            'http://localhost:8080/rate/history'
        """
        return f"{self.base_url}/rate/history"

    @property
    def latest_url(self) -> str:
        """Full URL of the single latest-value endpoint."""
        return f"{self.base_url}/rate"

    @property
    def live_url(self) -> str:
        """
        Full URL of the Server-Sent Events stream.

        Example:
            >>> settings.live_url
            'http://localhost:8080/sse/rate'
        """
        return f"{self.base_url}/sse/rate"

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
    def display_tz(self) -> Optional[tzinfo]:
        """
        Timezone used for chart labels.

        Returns:
            ZoneInfo for display_timezone, or None for the system local zone

        Raises:
            ValueError: If display_timezone is not a known IANA zone
        """
        if not self.display_timezone.strip():
            return None
        try:
            return ZoneInfo(self.display_timezone.strip())
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown DISPLAY_TIMEZONE: '{self.display_timezone}'") from e


# ============================================
# Global Settings Instance
# ============================================

# Create a single instance of settings to be imported throughout the application
settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Optional[Settings] = None) -> None:
    """
    Validate critical configuration settings on application startup.

    Args:
        config: Settings to validate (defaults to the global settings)

    Raises:
        ValueError: If required configuration is missing or invalid
    """
    # Import logger here to avoid circular import
    # (logging.py imports config.py, so we can't import at module level)
    from core.logging import logger

    config = config or settings

    if not config.api_base.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API_BASE: '{config.api_base}'. "
            f"Must start with http:// or https://"
        )

    if config.chart_max_points < 1:
        raise ValueError(f"CHART_MAX_POINTS must be at least 1, got {config.chart_max_points}")

    if config.request_timeout <= 0 or config.stream_connect_timeout <= 0:
        raise ValueError("REQUEST_TIMEOUT and STREAM_CONNECT_TIMEOUT must be positive")

    if config.history_max_attempts < 1:
        raise ValueError(f"HISTORY_MAX_ATTEMPTS must be at least 1, got {config.history_max_attempts}")

    if not (1 <= config.app_port <= 65535):
        raise ValueError(f"Invalid port number: {config.app_port}. Must be between 1 and 65535")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    # Raises ValueError for unknown zones
    tz = config.display_tz

    logger.info("Configuration validated successfully")
    logger.info(f"Rate backend: {config.base_url}")
    logger.info(f"Chart points: {config.chart_max_points}")
    logger.info(f"Label timezone: {tz if tz is not None else 'system local'}")
    logger.info(f"Server: {config.app_host}:{config.app_port}")
    logger.info(f"Log level: {config.log_level.upper()}")
