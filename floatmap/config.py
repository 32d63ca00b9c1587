"""
FloatMap Application Configuration

Uses pydantic-settings to load configuration from environment variables and .env file.
All settings are validated on application startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Data Roots
    # =========================================================================
    BGC_DATA_DIR: str = "data/bgc"  # Files found here are tagged 'bgc'
    CORE_DATA_DIR: str = "data/core"  # Files found here are tagged 'core'
    DATA_FILE_EXTENSIONS: str = ".csv"  # Comma-separated, case-insensitive

    # =========================================================================
    # Cycle Segmentation
    # =========================================================================
    CYCLE_TIME_GAP_DAYS: float = 1.0
    CYCLE_PRESSURE_GAP_DBAR: float = 50.0

    # =========================================================================
    # API Transport Caps (bulk view only, the cached aggregate is never capped)
    # =========================================================================
    API_HISTORY_LIMIT: int = 200
    API_CYCLES_LIMIT: int = 10
    API_CYCLE_POINTS_LIMIT: int = 50
    CORS_ORIGINS: str = "http://localhost:3000"  # Comma-separated allowed origins

    # =========================================================================
    # Monitoring
    # =========================================================================
    SENTRY_DSN: Optional[str] = None  # Optional - disabled if not set

    # =========================================================================
    # Application
    # =========================================================================
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    @property
    def data_file_extensions(self) -> frozenset[str]:
        """Normalized set of accepted file extensions (lowercase, leading dot)."""
        extensions = set()
        for raw in self.DATA_FILE_EXTENSIONS.split(","):
            ext = raw.strip().lower()
            if not ext:
                continue
            extensions.add(ext if ext.startswith(".") else f".{ext}")
        return frozenset(extensions)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Export singleton instance for convenience
settings = get_settings()
