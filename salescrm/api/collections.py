"""
FastAPI router for generic collection CRUD.

Mirrors the json-server REST surface the front end was built against, so the
single-page app can point at this service unchanged:

- GET    /{collection}              list, filtered by query-string equality (?rm_id=1)
                                    and full-text search (?q=sharma)
- POST   /{collection}              create (id assigned when absent)
- GET    /{collection}/{record_id}  fetch one
- PUT    /{collection}/{record_id}  replace
- DELETE /{collection}/{record_id}  delete

Collections: rms, channel_partners, meetings, sales, targets.

This router must be included after the analytics and record routers because
its two-segment path also matches /analytics/kpis.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, HTTPException, Request

from salescrm.api.errors import http_error_for
from salescrm.core.dependencies import StoreDep
from salescrm.core.store import StoreError
from salescrm.models.enums import Collection


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{collection}", response_model=List[Dict[str, Any]])
async def list_records(
    collection: Collection,
    request: Request,
    store: StoreDep,
) -> List[Dict[str, Any]]:
    """List a collection; query parameters filter by equality, `q` searches every field."""
    filters = dict(request.query_params)
    try:
        return await store.list(collection.value, filters)
    except StoreError as e:
        raise http_error_for(e) from e


@router.post("/{collection}", response_model=Dict[str, Any], status_code=201)
async def create_record(
    collection: Collection,
    store: StoreDep,
    payload: Dict[str, Any] = Body(...),
) -> Dict[str, Any]:
    """Create a record. An id is assigned when the payload has none."""
    try:
        return await store.create(collection.value, payload)
    except StoreError as e:
        raise http_error_for(e) from e


@router.get("/{collection}/{record_id}", response_model=Dict[str, Any])
async def get_record(
    collection: Collection,
    record_id: str,
    store: StoreDep,
) -> Dict[str, Any]:
    try:
        return await store.get(collection.value, record_id)
    except StoreError as e:
        raise http_error_for(e) from e


@router.put("/{collection}/{record_id}", response_model=Dict[str, Any])
async def replace_record(
    collection: Collection,
    record_id: str,
    store: StoreDep,
    payload: Dict[str, Any] = Body(...),
) -> Dict[str, Any]:
    """Replace a record. An id in the body must match the path id."""
    body_id = payload.get("id")
    if body_id is not None and str(body_id) != record_id:
        logger.warning(f"PUT /{collection.value}/{record_id} rejected: body id {body_id} differs")
        raise HTTPException(status_code=400, detail="Body id does not match path id")
    try:
        return await store.update(collection.value, record_id, payload)
    except StoreError as e:
        raise http_error_for(e) from e


@router.delete("/{collection}/{record_id}", response_model=Dict[str, Any])
async def delete_record(
    collection: Collection,
    record_id: str,
    store: StoreDep,
) -> Dict[str, Any]:
    """Delete a record and return it."""
    try:
        return await store.delete(collection.value, record_id)
    except StoreError as e:
        raise http_error_for(e) from e
