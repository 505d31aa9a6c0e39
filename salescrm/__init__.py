"""
Sales CRM Backend Package.

FastAPI service layer for the relationship-manager (RM) sales CRM.
Serves the channel-partner, meeting, sale and target collections and computes
the KPI analytics shown on the RM and admin dashboards.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, collection store, and dependencies
    - models: Pydantic schemas and enums
    - services: KPI aggregation engine and record workflows
"""

__version__ = "1.0.0"
