"""Pytest config and fixtures for db-backed tests."""
import os
import tempfile

import pytest
import pytest_asyncio

from cvextract.db.base import Base
from cvextract.db.config import DBConfig
from cvextract.db.engine import create_async_engine_from_config, create_engine_from_config
from cvextract.db.session import dispose_db, init_db

# Import models so Base.metadata has all tables
import cvextract.db.models  # noqa: F401


@pytest.fixture
def temp_db_url() -> str:
    """SQLite URL for a temporary file (WAL-friendly)."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield f"sqlite:///{path}"
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture
def db_config(temp_db_url: str) -> DBConfig:
    """DBConfig pointing to temp SQLite file."""
    return DBConfig(db_url=temp_db_url, echo_sql=False)


@pytest.fixture
def sync_engine(db_config: DBConfig):
    """Sync engine for temp DB."""
    engine = create_engine_from_config(db_config)
    yield engine
    engine.dispose()


@pytest.fixture
def async_engine(db_config: DBConfig):
    """Async engine for temp DB (not connected until used)."""
    return create_async_engine_from_config(db_config)


@pytest.fixture
def db_with_tables(sync_engine):
    """Create all tables on the engine (for tests that need schema)."""
    Base.metadata.create_all(sync_engine)
    return sync_engine


@pytest_asyncio.fixture
async def sql_db(db_config: DBConfig):
    """Module-level session factories bound to a fresh temp DB with tables; disposed in the test's loop."""
    init_db(db_config, create_tables=True)
    yield db_config
    await dispose_db()
