"""
Core infrastructure package for the sales CRM backend.

Provides:
- Configuration management via pydantic-settings
- The collection store (local JSON document or remote json-server)
- FastAPI dependency injection utilities

Re-exports the key components so other modules can write:

    from salescrm.core import get_settings, StoreDep
"""

from salescrm.core.config import Settings, get_settings

from salescrm.core.store import (
    CollectionStore,
    DuplicateRecordError,
    JsonFileStore,
    RecordNotFoundError,
    RestCollectionStore,
    StoreError,
    StoreUnavailableError,
    UnknownCollectionError,
    create_store,
)

from salescrm.core.dependencies import (
    NowDep,
    SettingsDep,
    StoreDep,
    get_now,
    get_settings_dependency,
    get_store,
)


__all__ = [
    'Settings',
    'get_settings',
    'CollectionStore',
    'DuplicateRecordError',
    'JsonFileStore',
    'RecordNotFoundError',
    'RestCollectionStore',
    'StoreError',
    'StoreUnavailableError',
    'UnknownCollectionError',
    'create_store',
    'NowDep',
    'SettingsDep',
    'StoreDep',
    'get_now',
    'get_settings_dependency',
    'get_store',
]
