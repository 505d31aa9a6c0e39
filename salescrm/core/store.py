"""
Collection store for the sales CRM backend.

The CRM keeps five flat collections (rms, channel_partners, meetings, sales,
targets) in a json-server style document: one JSON object whose keys are the
collection names and whose values are arrays of records. This module is the
single point through which the API reads and writes them.

Two implementations share the CollectionStore interface:
- JsonFileStore: reads and writes a local JSON document (default)
- RestCollectionStore: talks to a remote json-server over HTTP using httpx

Records are plain dicts at this layer. Identifiers are always returned and
compared as strings; new records get the next integer id (as a string).

Exceptions:
    StoreError: Base class for store failures
    UnknownCollectionError: Collection name is not one of the five
    RecordNotFoundError: No record with the requested id
    DuplicateRecordError: A record with the requested id already exists
    StoreUnavailableError: The backing document or server cannot be read/written

Usage:
    store = create_store(get_settings())
    sales = await store.list("sales", {"rm_id": "1"})
    snapshot = await store.load_snapshot()
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import httpx

from salescrm.core.config import Settings
from salescrm.models.enums import Collection
from salescrm.models.schemas import KpiSnapshot


logger = logging.getLogger(__name__)

Record = Dict[str, Any]

# Full-text search parameter understood by json-server
SEARCH_PARAM: str = "q"


# =============================================================================
# Exceptions
# =============================================================================


class StoreError(Exception):
    """Base class for collection store failures."""


class UnknownCollectionError(StoreError):
    def __init__(self, collection: str):
        super().__init__(f"Unknown collection: {collection}")
        self.collection = collection


class RecordNotFoundError(StoreError):
    def __init__(self, collection: str, record_id: Any):
        super().__init__(f"{collection}/{record_id} not found")
        self.collection = collection
        self.record_id = str(record_id)


class DuplicateRecordError(StoreError):
    def __init__(self, collection: str, record_id: Any):
        super().__init__(f"{collection}/{record_id} already exists")
        self.collection = collection
        self.record_id = str(record_id)


class StoreUnavailableError(StoreError):
    """The backing document or remote server could not be reached or parsed."""


# =============================================================================
# Helpers
# =============================================================================


def resolve_collection(name: str) -> Collection:
    """Validate a collection name."""
    try:
        return Collection(name)
    except ValueError:
        raise UnknownCollectionError(name) from None


def canonical_id(value: Any) -> Optional[str]:
    """String form of a record id; integral floats lose their ".0"."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _with_canonical_id(record: Record) -> Record:
    if "id" in record:
        return {**record, "id": canonical_id(record["id"])}
    return dict(record)


def matches_search(record: Record, term: Any) -> bool:
    """Case-insensitive substring match of `term` against any field value."""
    needle = str(term).lower()
    return any(
        needle in str(value).lower()
        for value in record.values()
        if value is not None
    )


def matches_filters(record: Record, filters: Optional[Mapping[str, Any]]) -> bool:
    """
    json-server style filtering.

    Every field is an equality filter with values compared as strings, except
    `q`, which searches all field values (?q=sharma).
    """
    if not filters:
        return True
    for field, expected in filters.items():
        if field == SEARCH_PARAM:
            if not matches_search(record, expected):
                return False
        elif canonical_id(record.get(field)) != canonical_id(expected):
            return False
    return True


def next_record_id(records: List[Record]) -> str:
    """One past the largest integer id in the collection."""
    numeric = []
    for record in records:
        try:
            numeric.append(int(str(record.get("id"))))
        except (TypeError, ValueError):
            continue
    return str(max(numeric, default=0) + 1)


# =============================================================================
# Store Interface
# =============================================================================


class CollectionStore:
    """Interface shared by the file and REST stores."""

    description: str = "store"

    async def list(self, collection: str, filters: Optional[Mapping[str, Any]] = None) -> List[Record]:
        raise NotImplementedError

    async def get(self, collection: str, record_id: Any) -> Record:
        raise NotImplementedError

    async def create(self, collection: str, payload: Mapping[str, Any]) -> Record:
        raise NotImplementedError

    async def update(self, collection: str, record_id: Any, payload: Mapping[str, Any]) -> Record:
        raise NotImplementedError

    async def delete(self, collection: str, record_id: Any) -> Record:
        raise NotImplementedError

    async def load_snapshot(self) -> KpiSnapshot:
        """Read all five collections for one KPI evaluation."""
        raise NotImplementedError


# =============================================================================
# Local JSON Document
# =============================================================================


class JsonFileStore(CollectionStore):
    """
    Store backed by a local JSON document.

    The file is read on every call and rewritten on every mutation. A missing
    file behaves as an empty database and is created on the first write.
    File access is synchronous and blocks the event loop for the duration of
    each read or write, which is acceptable for a small single-user document.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.description = f"file:{self.path}"

    def _read(self) -> Dict[str, List[Record]]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read {self.path}: {e}")
            raise StoreUnavailableError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreUnavailableError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, List[Record]]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write {self.path}: {e}")
            raise StoreUnavailableError(f"Cannot write {self.path}: {e}") from e

    def _records(self, data: Dict[str, List[Record]], collection: Collection) -> List[Record]:
        records = data.get(collection.value) or []
        return [record for record in records if isinstance(record, dict)]

    @staticmethod
    def _index_of(records: List[Record], record_id: Any) -> Optional[int]:
        wanted = canonical_id(record_id)
        for index, record in enumerate(records):
            if canonical_id(record.get("id")) == wanted:
                return index
        return None

    async def list(self, collection: str, filters: Optional[Mapping[str, Any]] = None) -> List[Record]:
        resolved = resolve_collection(collection)
        records = self._records(self._read(), resolved)
        return [_with_canonical_id(record) for record in records if matches_filters(record, filters)]

    async def get(self, collection: str, record_id: Any) -> Record:
        resolved = resolve_collection(collection)
        records = self._records(self._read(), resolved)
        index = self._index_of(records, record_id)
        if index is None:
            raise RecordNotFoundError(resolved.value, record_id)
        return _with_canonical_id(records[index])

    async def create(self, collection: str, payload: Mapping[str, Any]) -> Record:
        resolved = resolve_collection(collection)
        data = self._read()
        records = self._records(data, resolved)

        record = dict(payload)
        if record.get("id") in (None, ""):
            record["id"] = next_record_id(records)
        else:
            record["id"] = canonical_id(record["id"])
            if self._index_of(records, record["id"]) is not None:
                raise DuplicateRecordError(resolved.value, record["id"])

        records.append(record)
        data[resolved.value] = records
        self._write(data)
        logger.info(f"Created {resolved.value}/{record['id']}")
        return record

    async def update(self, collection: str, record_id: Any, payload: Mapping[str, Any]) -> Record:
        resolved = resolve_collection(collection)
        data = self._read()
        records = self._records(data, resolved)
        index = self._index_of(records, record_id)
        if index is None:
            raise RecordNotFoundError(resolved.value, record_id)

        record = {**dict(payload), "id": canonical_id(record_id)}
        records[index] = record
        data[resolved.value] = records
        self._write(data)
        logger.info(f"Updated {resolved.value}/{record['id']}")
        return record

    async def delete(self, collection: str, record_id: Any) -> Record:
        resolved = resolve_collection(collection)
        data = self._read()
        records = self._records(data, resolved)
        index = self._index_of(records, record_id)
        if index is None:
            raise RecordNotFoundError(resolved.value, record_id)

        removed = records.pop(index)
        data[resolved.value] = records
        self._write(data)
        logger.info(f"Deleted {resolved.value}/{canonical_id(record_id)}")
        return _with_canonical_id(removed)

    async def load_snapshot(self) -> KpiSnapshot:
        data = self._read()
        return KpiSnapshot.model_validate({
            collection.value: self._records(data, collection) for collection in Collection
        })


# =============================================================================
# Remote json-server
# =============================================================================


class RestCollectionStore(CollectionStore):
    """
    Store backed by a remote json-server.

    Each call opens a short-lived httpx.AsyncClient. load_snapshot fetches the
    five collections concurrently and joins before returning.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.description = f"rest:{self.base_url}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        *,
        collection: Collection,
        record_id: Any = None,
        **kwargs,
    ) -> Any:
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout on {method} {path}: {e}")
            raise StoreUnavailableError(f"Timeout contacting {self.base_url}") from e
        except httpx.HTTPError as e:
            logger.error(f"Connection error on {method} {path}: {e}")
            raise StoreUnavailableError(f"Cannot reach {self.base_url}: {e}") from e

        if response.status_code == 404 and record_id is not None:
            raise RecordNotFoundError(collection.value, record_id)
        if response.status_code >= 400:
            logger.error(f"{method} {path} returned {response.status_code}: {response.text[:200]}")
            raise StoreUnavailableError(f"{method} {path} returned {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"{method} {path} returned invalid JSON") from e

    def _expect_object(self, body: Any, method: str, path: str) -> Record:
        if not isinstance(body, dict):
            raise StoreUnavailableError(f"{method} {path} did not return a JSON object")
        return body

    async def _fetch_collection(self, client: httpx.AsyncClient, collection: Collection) -> List[Record]:
        body = await self._request(client, "GET", f"/{collection.value}", collection=collection)
        if not isinstance(body, list):
            raise StoreUnavailableError(f"/{collection.value} did not return a JSON array")
        return body

    async def list(self, collection: str, filters: Optional[Mapping[str, Any]] = None) -> List[Record]:
        resolved = resolve_collection(collection)
        params = {field: str(value) for field, value in (filters or {}).items()}
        async with self._client() as client:
            body = await self._request(client, "GET", f"/{resolved.value}", collection=resolved, params=params)
        if not isinstance(body, list):
            raise StoreUnavailableError(f"/{resolved.value} did not return a JSON array")
        return [_with_canonical_id(record) for record in body if isinstance(record, dict)]

    async def get(self, collection: str, record_id: Any) -> Record:
        resolved = resolve_collection(collection)
        async with self._client() as client:
            body = await self._request(
                client, "GET", f"/{resolved.value}/{canonical_id(record_id)}",
                collection=resolved, record_id=record_id,
            )
        return _with_canonical_id(self._expect_object(body, "GET", f"/{resolved.value}"))

    async def create(self, collection: str, payload: Mapping[str, Any]) -> Record:
        resolved = resolve_collection(collection)
        async with self._client() as client:
            body = await self._request(
                client, "POST", f"/{resolved.value}", collection=resolved, json=dict(payload),
            )
        record = self._expect_object(body, "POST", f"/{resolved.value}")
        logger.info(f"Created {resolved.value}/{record.get('id')} on {self.base_url}")
        return _with_canonical_id(record)

    async def update(self, collection: str, record_id: Any, payload: Mapping[str, Any]) -> Record:
        resolved = resolve_collection(collection)
        async with self._client() as client:
            body = await self._request(
                client, "PUT", f"/{resolved.value}/{canonical_id(record_id)}",
                collection=resolved, record_id=record_id, json=dict(payload),
            )
        record = self._expect_object(body, "PUT", f"/{resolved.value}")
        logger.info(f"Updated {resolved.value}/{canonical_id(record_id)} on {self.base_url}")
        return _with_canonical_id(record)

    async def delete(self, collection: str, record_id: Any) -> Record:
        resolved = resolve_collection(collection)
        async with self._client() as client:
            existing = await self._request(
                client, "GET", f"/{resolved.value}/{canonical_id(record_id)}",
                collection=resolved, record_id=record_id,
            )
            existing = self._expect_object(existing, "GET", f"/{resolved.value}")
            await self._request(
                client, "DELETE", f"/{resolved.value}/{canonical_id(record_id)}",
                collection=resolved, record_id=record_id,
            )
        logger.info(f"Deleted {resolved.value}/{canonical_id(record_id)} on {self.base_url}")
        return _with_canonical_id(existing)

    async def load_snapshot(self) -> KpiSnapshot:
        collections = list(Collection)
        async with self._client() as client:
            results = await asyncio.gather(
                *(self._fetch_collection(client, collection) for collection in collections)
            )
        return KpiSnapshot.model_validate({
            collection.value: [record for record in records if isinstance(record, dict)]
            for collection, records in zip(collections, results)
        })


# =============================================================================
# Factory
# =============================================================================


def create_store(settings: Settings) -> CollectionStore:
    """Build the store selected by settings.store_backend."""
    if settings.store_backend == "rest":
        return RestCollectionStore(settings.store_base_url, timeout=settings.store_timeout_seconds)
    return JsonFileStore(settings.db_json_path)
