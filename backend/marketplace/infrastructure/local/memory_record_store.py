"""In-memory record store implementation."""

import asyncio
import copy
from typing import Any, Optional

from marketplace.core.exceptions import ConcurrentModificationError
from marketplace.interfaces.record_store import IRecordStore, VersionedRecord


class InMemoryRecordStore(IRecordStore):
    """In-memory implementation of the record store.

    Stores documents in a dictionary. Suitable for development and testing.
    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._records: dict[str, VersionedRecord] = {}
        self._lock = asyncio.Lock()

    def _copy(self, record: VersionedRecord) -> VersionedRecord:
        return VersionedRecord(key=record.key, value=copy.deepcopy(record.value), version=record.version)

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        record = self._records.get(key)
        return copy.deepcopy(record.value) if record else None

    async def get_versioned(self, key: str) -> Optional[VersionedRecord]:
        record = self._records.get(key)
        return self._copy(record) if record else None

    async def set(self, key: str, value: dict[str, Any]) -> int:
        async with self._lock:
            current = self._records.get(key)
            version = current.version + 1 if current else 1
            self._records[key] = VersionedRecord(key=key, value=copy.deepcopy(value), version=version)
            return version

    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: Optional[int],
    ) -> int:
        async with self._lock:
            current = self._records.get(key)
            actual = current.version if current else None
            if actual != expected_version:
                raise ConcurrentModificationError(key, expected_version, actual)
            version = (actual or 0) + 1
            self._records[key] = VersionedRecord(key=key, value=copy.deepcopy(value), version=version)
            return version

    async def delete(self, key: str, expected_version: Optional[int] = None) -> bool:
        async with self._lock:
            current = self._records.get(key)
            if current is None:
                return False
            if expected_version is not None and current.version != expected_version:
                raise ConcurrentModificationError(key, expected_version, current.version)
            del self._records[key]
            return True

    async def list_by_prefix(self, prefix: str) -> list[VersionedRecord]:
        return [
            self._copy(self._records[key])
            for key in sorted(self._records)
            if key.startswith(prefix)
        ]
