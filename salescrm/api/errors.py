"""
Translation of store and workflow errors into HTTP errors.

Routers catch StoreError and re-raise the HTTPException built here so every
endpoint reports the same status codes:

| Error                   | Status |
|-------------------------|--------|
| UnknownCollectionError  | 404    |
| RecordNotFoundError     | 404    |
| DuplicateRecordError    | 409    |
| RecordValidationError   | 400    |
| StoreUnavailableError   | 503    |
"""

from fastapi import HTTPException

from salescrm.core.store import (
    DuplicateRecordError,
    RecordNotFoundError,
    StoreError,
    StoreUnavailableError,
    UnknownCollectionError,
)
from salescrm.services.records import RecordValidationError


def http_error_for(error: StoreError) -> HTTPException:
    if isinstance(error, (UnknownCollectionError, RecordNotFoundError)):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, DuplicateRecordError):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, RecordValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, StoreUnavailableError):
        return HTTPException(status_code=503, detail="Collection store unavailable")
    return HTTPException(status_code=500, detail=str(error))
