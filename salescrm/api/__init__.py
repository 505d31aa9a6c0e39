"""
Sales CRM API package initialization.

Router modules:
- analytics: Team KPI analytics and RM dashboards
- records: RM record workflows (onboarding, meeting log, sale)
- collections: json-server compatible CRUD over the five collections

The collections router is included last: its /{collection}/{record_id}
pattern would otherwise shadow the more specific routes.
"""

from fastapi import APIRouter

from salescrm.api.analytics import router as analytics_router
from salescrm.api.records import router as records_router
from salescrm.api.collections import router as collections_router

api_router = APIRouter()

api_router.include_router(analytics_router, tags=["analytics"])
api_router.include_router(records_router, tags=["records"])
api_router.include_router(collections_router, tags=["collections"])

__all__ = [
    "api_router",
    "analytics_router",
    "records_router",
    "collections_router",
]
