"""
Settings and environment management module for the sales CRM backend.

This module provides centralized configuration management using pydantic-settings,
which automatically loads settings from environment variables and .env files.

Key Features:
- Environment variable validation and type coercion
- Sensible defaults for development (local JSON file store)
- Singleton pattern via @lru_cache for efficient access
- Recommendation urgency thresholds used by the KPI analytics

Environment Variables:
- STORE_BACKEND: "file" (local JSON document) or "rest" (remote json-server)
- DB_JSON_PATH: Path of the JSON document for the file store (default: db.json)
- STORE_BASE_URL: Base URL of the remote json-server for the rest store
- STORE_TIMEOUT_SECONDS: HTTP timeout for the rest store
- CORS_ORIGINS: Allowed browser origins for the single-page front end

Usage:
    from salescrm.core.config import get_settings

    settings = get_settings()
    store_path = settings.db_json_path
"""

from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        store_backend: Which collection store implementation to use.
        db_json_path: Location of the flat JSON document backing the file store.
        store_base_url: json-server base URL used when store_backend is "rest".
        store_timeout_seconds: Per-request timeout for the rest store.
        cors_origins: Origins allowed by the CORS middleware.
        cp_onboarding_urgent_daily: CPs/day above which onboarding is urgent.
        active_cp_urgent_daily: Activations/day above which activation is urgent.
        meetings_urgent_daily: Meetings/day above which meetings are urgent.
        revenue_urgent_daily: Revenue/day above which revenue is urgent.
        recent_items_limit: Number of recent meetings/sales on the RM dashboard.
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    # =========================================================================
    # Collection Store
    # =========================================================================

    store_backend: Literal['file', 'rest'] = 'file'

    db_json_path: str = 'db.json'

    # Only used by the rest store; matches the json-server default port
    store_base_url: str = 'http://localhost:3002'

    store_timeout_seconds: float = 30.0

    # =========================================================================
    # HTTP
    # =========================================================================

    cors_origins: List[str] = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ]

    # =========================================================================
    # KPI Recommendation Thresholds
    # A required daily rate above the threshold produces the urgent message.
    # =========================================================================

    cp_onboarding_urgent_daily: float = 2.0

    active_cp_urgent_daily: float = 2.0

    meetings_urgent_daily: float = 3.0

    revenue_urgent_daily: float = 100000.0

    # =========================================================================
    # RM Dashboard
    # =========================================================================

    recent_items_limit: int = 5


@lru_cache()
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Returns:
        Settings: The cached settings instance.

    Note:
        To refresh settings in tests, clear the cache:
        >>> get_settings.cache_clear()
    """
    return Settings()
