"""
FastAPI dependency injection module for the sales CRM backend.

Provides the reusable dependencies endpoint handlers declare for configuration
and collection-store access. Tests replace either one through
`app.dependency_overrides`.

Usage Examples:
    @router.get("/analytics/kpis")
    async def team_kpis(store: StoreDep, settings: SettingsDep) -> KpiAnalytics:
        snapshot = await store.load_snapshot()
        ...
"""

from datetime import datetime
from typing import Annotated

from fastapi import Depends

from salescrm.core.config import Settings, get_settings
from salescrm.core.store import CollectionStore, create_store


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    A thin wrapper around get_settings() so tests can do:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Store Dependency
# =============================================================================

def get_store(settings: Annotated[Settings, Depends(get_settings_dependency)]) -> CollectionStore:
    """
    Return the collection store selected by the settings.

    Stores are cheap to construct and hold no connections, so one is built
    per request.
    """
    return create_store(settings)


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

StoreDep = Annotated[CollectionStore, Depends(get_store)]


# =============================================================================
# Clock Dependency
# =============================================================================

def get_now() -> datetime:
    """
    Wall-clock evaluation instant for analytics and record workflows.

    Overridden in tests to pin the clock.
    """
    return datetime.now()


NowDep = Annotated[datetime, Depends(get_now)]
