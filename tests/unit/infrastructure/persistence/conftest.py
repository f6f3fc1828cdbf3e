"""Real SQLite database per test, in tmp_path."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from novelsync.config import DatabaseSettings, Settings
from novelsync.infrastructure.persistence import (
    Database,
    SqlKeyValueStore,
    SqlLibraryDatastore,
)


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    settings = Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'library.db'}")
    )
    db = Database(settings)
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def datastore(database: Database) -> SqlLibraryDatastore:
    return SqlLibraryDatastore(database)


@pytest.fixture
def sql_kv_store(database: Database) -> SqlKeyValueStore:
    return SqlKeyValueStore(database)
