# inventory_sync/core/config.py

import os
from functools import lru_cache
from typing import Optional

from pydantic import ConfigDict, ValidationError
from pydantic_settings import BaseSettings

from inventory_sync.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    """
    Job settings.
    Loads values from environment variables (.env file)
    """
    # Google Sheets (row store)
    SPREADSHEET_ID: Optional[str] = None
    SHEET_NAME: str = "Truth_Table"
    SHEET_COLUMNS: str = "A:Z"

    # Per-job override; each job falls back to its own default when unset
    MAX_ROWS_PER_RUN: Optional[int] = None

    # Shopify Admin API
    SHOPIFY_STORE_DOMAIN: Optional[str] = None  # e.g. my-store.myshopify.com
    SHOPIFY_ADMIN_TOKEN: Optional[str] = None
    SHOPIFY_LOCATION_ID: Optional[str] = None   # gid://shopify/Location/...
    SHOPIFY_API_VERSION: str = "2025-10"
    SHOPIFY_REQUEST_TIMEOUT: float = 30.0

    # Reverse sync
    REVERSE_SYNC_REFERENCE_URI: str = "inventory-sync://reverse-sync/google-sheets"
    REVERSE_SYNC_LEASE_RANGE: Optional[str] = None  # e.g. Sync_Lease!A1
    REVERSE_SYNC_LEASE_TTL_SECONDS: int = 900

    # Forward sync (Pub/Sub)
    PUBSUB_PROJECT_ID: Optional[str] = None
    PUBSUB_SUBSCRIPTION: Optional[str] = None
    PUBSUB_MAX_MESSAGES: int = 10

    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    def require(self, *names: str) -> None:
        """Raise ConfigurationError naming every option in ``names`` that is unset or blank."""
        missing = []
        for name in names:
            value = getattr(self, name, None)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        if missing:
            raise ConfigurationError(f"Missing env var(s): {', '.join(missing)}")

    def max_rows(self, default: int, override: Optional[int] = None) -> int:
        """Resolve the per-run row cap: CLI override, then MAX_ROWS_PER_RUN, then the job default."""
        value = override if override is not None else self.MAX_ROWS_PER_RUN
        if value is None:
            return default
        if value < 1:
            raise ConfigurationError(f"MAX_ROWS_PER_RUN must be a positive integer, got {value}")
        return value


@lru_cache()
def get_settings() -> Settings:
    """Cached settings to avoid re-reading the environment for every job step"""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()
