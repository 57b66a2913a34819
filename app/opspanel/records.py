"""
Generic record store.

Every domain module (customers, quotes, sales, products) keeps its records
as one JSON array per collection name in a key-value `Storage`. Each
operation reads the whole collection, mutates it and writes it back.

Writes are serialized within one process. There is no cross-process
locking: two processes writing the same collection race and the last
write wins.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from app.opspanel.storage import Storage, StorageError

logger = logging.getLogger(__name__)

Record = dict[str, Any]

ID_FIELD = "id"
CREATED_AT = "createdAt"
UPDATED_AT = "updatedAt"


class RecordNotFound(LookupError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection}/{record_id} not found")
        self.collection = collection
        self.record_id = record_id


class DuplicateRecordId(ValueError):
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"{collection} already contains id {record_id!r}")
        self.collection = collection
        self.record_id = record_id


class CorruptCollection(StorageError):
    pass


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _new_id() -> str:
    return str(uuid.uuid4())


class RecordStore:
    def __init__(
        self,
        storage: Storage,
        *,
        clock: Callable[[], str] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self.storage = storage
        self._clock = clock or _utcnow_iso
        self._new_id = id_factory or _new_id
        self._lock = threading.RLock()

    # ---------- substrate ----------
    def _load(self, collection: str) -> list[Record]:
        raw = self.storage.read(collection)
        if raw is None:
            return []
        try:
            items = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptCollection(f"Collection {collection!r} is not valid JSON: {e}") from e
        if not isinstance(items, list):
            raise CorruptCollection(f"Collection {collection!r} is not a JSON array")
        return items

    def _save(self, collection: str, items: list[Record]) -> None:
        data = json.dumps(items, default=str, separators=(",", ":")).encode("utf-8")
        self.storage.write(collection, data)

    @staticmethod
    def _index_of(items: list[Record], record_id: str) -> int | None:
        for i, item in enumerate(items):
            if item.get(ID_FIELD) == record_id:
                return i
        return None

    # ---------- reads ----------
    def get_all(self, collection: str) -> list[Record]:
        return self._load(collection)

    def get_by_id(self, collection: str, record_id: str) -> Record | None:
        items = self._load(collection)
        idx = self._index_of(items, record_id)
        return items[idx] if idx is not None else None

    def require(self, collection: str, record_id: str) -> Record:
        rec = self.get_by_id(collection, record_id)
        if rec is None:
            raise RecordNotFound(collection, record_id)
        return rec

    # ---------- writes ----------
    def add(self, collection: str, record: Mapping[str, Any]) -> Record:
        new = dict(record)
        if not new.get(ID_FIELD):
            new[ID_FIELD] = self._new_id()
        else:
            new[ID_FIELD] = str(new[ID_FIELD])
        with self._lock:
            items = self._load(collection)
            if self._index_of(items, new[ID_FIELD]) is not None:
                raise DuplicateRecordId(collection, new[ID_FIELD])
            new.setdefault(CREATED_AT, self._clock())
            items.append(new)
            self._save(collection, items)
        logger.debug("record add collection=%s id=%s", collection, new[ID_FIELD])
        return new

    def update(self, collection: str, record_id: str, partial: Mapping[str, Any]) -> Record:
        changes = {k: v for k, v in partial.items() if k not in (ID_FIELD, UPDATED_AT)}
        with self._lock:
            items = self._load(collection)
            idx = self._index_of(items, record_id)
            if idx is None:
                raise RecordNotFound(collection, record_id)

            current = items[idx]
            # Nothing would change: leave updatedAt and storage alone.
            if all(k in current and current[k] == v for k, v in changes.items()):
                return current

            merged = {**current, **changes, UPDATED_AT: self._clock()}
            items[idx] = merged
            self._save(collection, items)
        logger.debug("record update collection=%s id=%s fields=%s", collection, record_id, sorted(changes))
        return merged

    def delete(self, collection: str, record_id: str) -> None:
        with self._lock:
            items = self._load(collection)
            remaining = [item for item in items if item.get(ID_FIELD) != record_id]
            self._save(collection, remaining)
        if len(remaining) != len(items):
            logger.debug("record delete collection=%s id=%s", collection, record_id)

    def replace_all(self, collection: str, records: Iterable[Mapping[str, Any]]) -> None:
        items = [dict(r) for r in records]
        seen: set[str] = set()
        for item in items:
            if not item.get(ID_FIELD):
                item[ID_FIELD] = self._new_id()
            if item[ID_FIELD] in seen:
                raise DuplicateRecordId(collection, item[ID_FIELD])
            seen.add(item[ID_FIELD])
        with self._lock:
            self._save(collection, items)

    def clear(self, collection: str) -> None:
        with self._lock:
            self._save(collection, [])
