"""
SQLite implementation of the record store.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from marketplace.core.exceptions import ConcurrentModificationError, UpstreamError
from marketplace.core.logger import setup_logger
from marketplace.infrastructure.local.database import RecordORM, get_session_factory
from marketplace.interfaces.record_store import IRecordStore, VersionedRecord

logger = setup_logger(__name__)

# Attempts for unconditional writes racing with other writers
MAX_SET_ATTEMPTS = 5


class SqliteRecordStore(IRecordStore):
    """SQLite implementation of the key/value record store."""

    def __init__(self, session_factory=None):
        """
        Initialize store.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_record(self, orm: RecordORM) -> VersionedRecord:
        return VersionedRecord(key=orm.key, value=dict(orm.value), version=orm.version)

    async def _current_version(self, key: str) -> Optional[int]:
        async with self._session_factory() as session:
            result = await session.execute(select(RecordORM.version).where(RecordORM.key == key))
            return result.scalar_one_or_none()

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        record = await self.get_versioned(key)
        return record.value if record else None

    async def get_versioned(self, key: str) -> Optional[VersionedRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(RecordORM).where(RecordORM.key == key))
                orm = result.scalar_one_or_none()
                return self._orm_to_record(orm) if orm else None
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Record store read failed for {key}") from exc

    async def set(self, key: str, value: dict[str, Any]) -> int:
        for _ in range(MAX_SET_ATTEMPTS):
            current = await self._current_version(key)
            try:
                return await self.compare_and_set(key, value, current)
            except ConcurrentModificationError:
                logger.debug(f"Retrying unconditional write for {key}")
        raise UpstreamError(f"Record {key} is under heavy contention")

    async def compare_and_set(
        self,
        key: str,
        value: dict[str, Any],
        expected_version: Optional[int],
    ) -> int:
        async with self._session_factory() as session:
            if expected_version is None:
                session.add(RecordORM(key=key, value=value, version=1))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    raise ConcurrentModificationError(key, None, await self._current_version(key))
                except SQLAlchemyError as exc:
                    await session.rollback()
                    raise UpstreamError(f"Record store write failed for {key}") from exc
                return 1

            try:
                result = await session.execute(
                    update(RecordORM)
                    .where(and_(RecordORM.key == key, RecordORM.version == expected_version))
                    .values(
                        value=value,
                        version=expected_version + 1,
                        updated_at=datetime.utcnow(),
                    )
                )
                if result.rowcount != 1:
                    await session.rollback()
                    raise ConcurrentModificationError(
                        key, expected_version, await self._current_version(key)
                    )
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise UpstreamError(f"Record store write failed for {key}") from exc
            return expected_version + 1

    async def delete(self, key: str, expected_version: Optional[int] = None) -> bool:
        conditions = [RecordORM.key == key]
        if expected_version is not None:
            conditions.append(RecordORM.version == expected_version)
        async with self._session_factory() as session:
            try:
                result = await session.execute(delete(RecordORM).where(and_(*conditions)))
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise UpstreamError(f"Record store delete failed for {key}") from exc
        if result.rowcount == 1:
            return True
        if expected_version is not None:
            actual = await self._current_version(key)
            if actual is not None:
                raise ConcurrentModificationError(key, expected_version, actual)
        return False

    async def list_by_prefix(self, prefix: str) -> list[VersionedRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(RecordORM)
                    .where(RecordORM.key.startswith(prefix, autoescape=True))
                    .order_by(RecordORM.key)
                )
                return [self._orm_to_record(orm) for orm in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise UpstreamError(f"Record store scan failed for prefix {prefix}") from exc
