"""Session factories and context managers (async-first)."""
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncGenerator, Generator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session, sessionmaker

from cvextract.db.config import DBConfig
from cvextract.db.engine import create_async_engine_from_config, create_engine_from_config

logger = logging.getLogger(__name__)

# Module-level engines/session factories, set by init_db()
_async_engine = None
_sync_engine = None
AsyncSessionLocal = None
SessionLocal = None


def init_db(cfg: DBConfig | None = None, *, create_tables: bool | None = None) -> None:
    """Initialize engines and session factories. Call once at startup.

    With create_tables (default: cfg.create_tables) missing tables are created
    through the sync engine; existing tables are left alone.
    """
    global _async_engine, _sync_engine, AsyncSessionLocal, SessionLocal
    cfg = cfg or DBConfig()
    _async_engine = create_async_engine_from_config(cfg)
    _sync_engine = create_engine_from_config(cfg)
    AsyncSessionLocal = async_sessionmaker(
        bind=_async_engine,
        class_=AsyncSession,
        autoflush=True,
        expire_on_commit=False,
    )
    SessionLocal = sessionmaker(
        bind=_sync_engine,
        autoflush=True,
        expire_on_commit=False,
    )
    if cfg.create_tables if create_tables is None else create_tables:
        # Importing models registers their tables on Base.metadata.
        from cvextract.db import models  # noqa: F401
        from cvextract.db.base import Base

        Base.metadata.create_all(_sync_engine)
        logger.info("db tables ensured", extra={"tables": sorted(Base.metadata.tables)})


async def dispose_db() -> None:
    """Dispose engines; safe to call when init_db was never called."""
    global _async_engine, _sync_engine, AsyncSessionLocal, SessionLocal
    if _async_engine is not None:
        await _async_engine.dispose()
    if _sync_engine is not None:
        _sync_engine.dispose()
    _async_engine = _sync_engine = AsyncSessionLocal = SessionLocal = None


def get_async_engine():
    return _async_engine


def get_sync_engine():
    return _sync_engine


@asynccontextmanager
async def async_session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Primary async session context: commit on success, rollback + re-raise on exception."""
    if AsyncSessionLocal is None:
        init_db()
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Sync session context for CLI reads: commit on success, rollback on exception."""
    if SessionLocal is None:
        init_db()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
