"""Persisted key-value store backed by the key_values table."""

import logging

from sqlalchemy import delete, select

from novelsync.domain.ports import IKeyValueStore
from novelsync.infrastructure.persistence.database import Database
from novelsync.infrastructure.persistence.models import KeyValueModel, utc_now
from novelsync.infrastructure.persistence.retry import with_db_retry

logger = logging.getLogger(__name__)


class SqlKeyValueStore(IKeyValueStore):
    """String key-value store; every set() replaces the whole value atomically."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def get(self, key: str) -> str | None:
        async with self._db.session_scope() as session:
            result = await session.execute(
                select(KeyValueModel.value).where(KeyValueModel.key == key)
            )
            return result.scalar_one_or_none()

    @with_db_retry()
    async def set(self, key: str, value: str) -> None:
        # merge() = select + insert-or-update inside one transaction.
        async with self._db.session_scope() as session:
            await session.merge(KeyValueModel(key=key, value=value, updated_at=utc_now()))

    @with_db_retry()
    async def delete(self, key: str) -> None:
        async with self._db.session_scope() as session:
            await session.execute(delete(KeyValueModel).where(KeyValueModel.key == key))
