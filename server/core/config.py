"""
Centralized configuration for the ledger service.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8090,http://localhost:5173,http://127.0.0.1:8090"
    ).split(",")

    # Troop data directory (sync/ and in/ live here)
    DATA_DIR: str = os.environ.get("LEDGER_DATA_DIR", "data")

    # Where unified.json is written; empty means inside DATA_DIR
    SNAPSHOT_PATH: str = os.environ.get("LEDGER_SNAPSHOT_PATH", "")

    # Ledger config JSON; empty means the packaged default
    CONFIG_PATH: str = os.environ.get("LEDGER_CONFIG_PATH", "")

    # Scheduled rebuild interval, 0 disables the job
    REBUILD_MINUTES: int = int(os.environ.get("LEDGER_REBUILD_MINUTES", "15"))

    # Raise on allocation invariant violations
    STRICT_INVARIANTS: bool = os.environ.get("LEDGER_STRICT_INVARIANTS", "").lower() in ("1", "true", "yes")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
