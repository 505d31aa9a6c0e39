"""
Pytest Configuration and Shared Fixtures for the Sales CRM Backend Tests.

This module provides:
- A fixed evaluation instant (Sunday 2026-03-15 00:00) so every window is known
- A sample CRM document with three RMs covering the interesting cases:
    RM 1 (Asha): target row, activity spread across the month and week
    RM 2 (Bilal): target row, ahead on revenue, one pending follow-up
    RM 3 (Chitra): no target row, malformed onboarding date
- A JsonFileStore seeded with that document in a temporary directory
- A FastAPI TestClient with the store and clock dependencies overridden

Numeric and string ids are mixed on purpose: the store and models must treat
1 and "1" as the same record.
"""

import copy
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient

from salescrm.core.config import Settings
from salescrm.core.dependencies import get_now, get_settings_dependency, get_store
from salescrm.core.store import JsonFileStore
from salescrm.main import app
from salescrm.models.schemas import KpiSnapshot


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        'markers',
        'properties: marks tests asserting engine-wide properties (idempotence, monotonicity)'
    )


# ============================================================
# SAMPLE DATA
# ============================================================

# Sunday. Week window starts Monday 2026-03-09, month window 2026-03-01.
NOW = datetime(2026, 3, 15, 0, 0, 0)

SAMPLE_DB: Dict[str, List[Dict[str, Any]]] = {
    'rms': [
        {'id': 1, 'name': 'Asha', 'phone': '9000000001', 'status': 'active'},
        {'id': '2', 'name': 'Bilal', 'phone': '9000000002', 'status': 'active'},
        {'id': 3, 'name': 'Chitra', 'phone': '9000000003', 'status': 'active'},
    ],
    'channel_partners': [
        {'id': 10, 'rm_id': 1, 'cp_name': 'Sharma Realty', 'onboard_date': '2026-03-02'},
        {'id': 11, 'rm_id': '1', 'cp_name': 'Verma Estates', 'onboard_date': '2026-03-10'},
        {'id': 12, 'rm_id': 2, 'cp_name': 'Gupta Homes', 'onboard_date': '2026-02-20'},
        {'id': 13, 'rm_id': 2, 'cp_name': 'Kapoor Land', 'onboard_date': None},
        {'id': 14, 'rm_id': 3, 'cp_name': 'Nair Plots', 'onboard_date': 'not-a-date'},
    ],
    'meetings': [
        {'id': 20, 'rm_id': 1, 'cp_id': 10, 'meeting_date': '2026-03-10T11:30',
         'outcome': 'interested', 'status': 'completed'},
        {'id': 21, 'rm_id': 1, 'cp_id': 11, 'meeting_date': '2026-03-03T09:00',
         'outcome': 'deal_win', 'status': 'completed'},
        {'id': 22, 'rm_id': 1, 'cp_id': 10, 'meeting_date': 'garbage',
         'outcome': 'interested', 'status': 'completed'},
        {'id': 23, 'rm_id': 2, 'cp_id': 12, 'meeting_date': '2026-03-12T10:00',
         'outcome': 'follow_up', 'status': 'follow_up_pending'},
    ],
    'sales': [
        {'id': 30, 'rm_id': 1, 'cp_id': 10, 'sale_amount': 50000,
         'commission_amount': 2500, 'sale_date': '2026-03-10'},
        {'id': 31, 'rm_id': 1, 'cp_id': 10, 'sale_amount': 25000,
         'commission_amount': '1250', 'sale_date': '2026-03-04'},
        {'id': 32, 'rm_id': 1, 'cp_id': 11, 'sale_amount': None, 'sale_date': '2026-03-05'},
        {'id': 33, 'rm_id': 2, 'cp_id': 12, 'sale_amount': 120000, 'sale_date': '2026-03-11'},
        {'id': 34, 'rm_id': 2, 'cp_id': '', 'sale_amount': 10000, 'sale_date': '2026-03-12'},
        {'id': 35, 'rm_id': 1, 'cp_id': 11, 'sale_amount': 99999, 'sale_date': '2026-02-28'},
    ],
    'targets': [
        {'id': 40, 'rm_id': 1, 'period': 'march-2026', 'cp_onboarding_target': 4,
         'active_cp_target': 4, 'meetings_target': 8, 'revenue_target': 200000},
        {'id': 41, 'rm_id': 2, 'period': 'march-2026', 'cp_onboarding_target': 2,
         'active_cp_target': 1, 'meetings_target': 2, 'revenue_target': 100000},
        {'id': 42, 'rm_id': 1, 'period': 'february-2026', 'cp_onboarding_target': 50,
         'active_cp_target': 50, 'meetings_target': 50, 'revenue_target': 5000000},
    ],
}


def sample_records() -> Dict[str, List[Dict[str, Any]]]:
    """A fresh deep copy of the sample document."""
    return copy.deepcopy(SAMPLE_DB)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def now() -> datetime:
    """The fixed evaluation instant used throughout the suite."""
    return NOW


@pytest.fixture
def records() -> Dict[str, List[Dict[str, Any]]]:
    """A fresh copy of the sample document."""
    return sample_records()


@pytest.fixture
def snapshot() -> KpiSnapshot:
    """The sample document as a validated KpiSnapshot."""
    return KpiSnapshot.model_validate(sample_records())


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path of a JSON document seeded with the sample records."""
    path = tmp_path / 'db.json'
    path.write_text(json.dumps(sample_records()), encoding='utf-8')
    return path


@pytest.fixture
def store(db_path: Path) -> JsonFileStore:
    """JsonFileStore over the seeded document."""
    return JsonFileStore(str(db_path))


@pytest.fixture
def settings(db_path: Path) -> Settings:
    """Settings pointing the file store at the seeded document."""
    return Settings(store_backend='file', db_json_path=str(db_path))


@pytest.fixture
def client(
    store: JsonFileStore,
    settings: Settings,
    now: datetime,
) -> Generator[TestClient, None, None]:
    """
    TestClient with the store, settings and clock dependencies overridden.

    Overrides are cleared after each test so they never leak between tests.
    """
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings_dependency] = lambda: settings
    app.dependency_overrides[get_now] = lambda: now
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
