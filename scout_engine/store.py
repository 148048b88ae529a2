"""
Record Store
============
Async key/record store used by the pipeline, the weight adapter and the API.

Records are plain JSON-compatible dicts (pydantic model_dump(mode="json")).
Each table maps a string key to one record:
- upsert: write or overwrite by key
- insert: append-only, duplicate keys are rejected
- query: equality filters over record fields, insertion order
- compare_and_set: write only if the stored "version" matches

InMemoryRecordStore is the default. JsonFileRecordStore persists every
table to <data_dir>/<table>.json after each write; a failed write leaves
the table as it was.
"""

import asyncio
import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import PersistenceError

logger = logging.getLogger(__name__)

# =============================================================================
# TABLES
# =============================================================================

PROSPECTS = "prospects"
FEATURE_VECTORS = "feature_vectors"
SCOUT_SCORES = "scout_scores"
SCANS = "scans"
SCORING_PROFILES = "scoring_profiles"
PROSPECT_PROFILES = "prospect_profiles"
PROSPECT_EVENTS = "prospect_events"
SCORING_HISTORY = "scoring_history"


def make_key(*parts: str) -> str:
    """Composite key, e.g. make_key(prospect_id, user_id)"""
    return ":".join(str(p) for p in parts)


class RecordStore(ABC):
    """Interface every store backend implements"""

    @abstractmethod
    async def upsert(self, table: str, key: str, record: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def insert(self, table: str, key: str, record: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def get(self, table: str, key: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def query(self, table: str, **filters: Any) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def compare_and_set(
        self,
        table: str,
        key: str,
        record: Dict[str, Any],
        expected_version: Optional[int],
    ) -> bool:
        """
        Write record only if the stored record's "version" equals
        expected_version (None means the key must not exist yet).

        Returns:
            True if the write happened
        """


class InMemoryRecordStore(RecordStore):
    """Dict-backed store; returns copies so callers never share state"""

    def __init__(self):
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.lock = asyncio.Lock()

    def _table(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self.tables.setdefault(table, {})

    async def upsert(self, table, key, record):
        async with self.lock:
            self._write(table, key, record)

    async def insert(self, table, key, record):
        async with self.lock:
            rows = self._table(table)
            if key in rows:
                raise PersistenceError(f"Duplicate key in {table}", detail=key)
            self._write(table, key, record)

    async def get(self, table, key):
        async with self.lock:
            record = self._table(table).get(key)
            return copy.deepcopy(record) if record is not None else None

    async def query(self, table, **filters):
        async with self.lock:
            return [
                copy.deepcopy(record)
                for record in self._table(table).values()
                if all(record.get(field) == value for field, value in filters.items())
            ]

    async def compare_and_set(self, table, key, record, expected_version):
        async with self.lock:
            rows = self._table(table)
            current = rows.get(key)

            if expected_version is None:
                if current is not None:
                    return False
            elif current is None or current.get("version") != expected_version:
                return False

            self._write(table, key, record)
            return True

    def _write(self, table: str, key: str, record: Dict[str, Any]) -> None:
        """Set one row and persist; the row is restored if persisting fails"""
        rows = self._table(table)
        missing = key not in rows
        previous = rows.get(key)
        rows[key] = copy.deepcopy(record)

        try:
            self._persist(table)
        except PersistenceError:
            if missing:
                del rows[key]
            else:
                rows[key] = previous
            raise

    def _persist(self, table: str) -> None:
        """Hook for durable subclasses; called with the lock held"""

    def count(self, table: str) -> int:
        return len(self._table(table))


class JsonFileRecordStore(InMemoryRecordStore):
    """In-memory store mirrored to one JSON file per table"""

    def __init__(self, data_dir: str):
        super().__init__()
        self.data_dir = Path(data_dir)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Cannot create data dir {data_dir}", detail=str(e)) from e
        self._load_data()

    def _load_data(self):
        """Load every <table>.json file found in data_dir"""
        for path in sorted(self.data_dir.glob("*.json")):
            try:
                with open(path, encoding="utf-8") as f:
                    self.tables[path.stem] = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                raise PersistenceError(f"Cannot load {path}", detail=str(e)) from e
        logger.info("Loaded %d tables from %s", len(self.tables), self.data_dir)

    def _persist(self, table: str) -> None:
        path = self.data_dir / f"{table}.json"
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.tables[table], f, indent=2, default=str)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot write {path}", detail=str(e)) from e


def create_store(data_dir: Optional[str] = None) -> RecordStore:
    """JSON file store when a data dir is configured, otherwise in-memory"""
    if data_dir:
        return JsonFileRecordStore(data_dir)
    return InMemoryRecordStore()
