"""
Record store interface.

Key/value document store backing every entity in the workflow. Each key
carries a version that starts at 1 and increments on every write, which is
what optimistic concurrency control is built on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class VersionedRecord:
    """A stored document with its current version."""

    key: str
    value: dict[str, Any]
    version: int


class IRecordStore(ABC):
    """Interface for key/value record storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[dict[str, Any]]:
        """Get the document stored at key, or None."""
        pass

    @abstractmethod
    async def get_versioned(self, key: str) -> Optional[VersionedRecord]:
        """Get the document stored at key together with its version."""
        pass

    @abstractmethod
    async def set(self, key: str, value: dict[str, Any]) -> int:
        """Write unconditionally. Returns the new version."""
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: Optional[int],
    ) -> int:
        """
        Write only if the stored version matches.

        Args:
            key: Record key
            value: Document to store
            expected_version: Version read by the caller, or None when the
                key must not exist yet

        Returns:
            The new version

        Raises:
            ConcurrentModificationError: If the stored version differs
        """
        pass

    @abstractmethod
    async def delete(self, key: str, expected_version: Optional[int] = None) -> bool:
        """
        Delete a record. Returns True if deleted, False if not found.

        Raises:
            ConcurrentModificationError: If expected_version is given and differs
        """
        pass

    @abstractmethod
    async def list_by_prefix(self, prefix: str) -> list[VersionedRecord]:
        """List records whose key starts with prefix, ordered by key."""
        pass
