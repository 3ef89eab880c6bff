"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Atlas dosing server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: dose history is personal data and there is no auth layer.
    atlas_host: str = "127.0.0.1"
    atlas_port: int = 8001
    atlas_log_level: str = "info"
    atlas_allow_insecure_bind: bool = False

    # Scheduling
    default_dose_hour: int = 8
    default_dose_minute: int = 0
    upcoming_dose_count: int = 7

    # Injection site rotation
    rotation_lookback: int = 20
    rotation_stats_lookback: int = 50
    rotation_time_decay: float = 1.0

    # Inventory
    default_low_stock_threshold: int = 2

    # Reconstitution
    max_vial_size: float = 100000.0


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
