"""Engine creation with SQLite PRAGMAs."""
from sqlalchemy import event
from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from cvextract.db.config import DBConfig


def _apply_sqlite_pragmas(dbapi_conn, connection_record, cfg: DBConfig):
    # PRAGMA journal_mode cannot run inside a transaction. Engine is created
    # with isolation_level=None so we're in autocommit here.
    cursor = dbapi_conn.cursor()
    try:
        cursor.execute(f"PRAGMA journal_mode={cfg.sqlite_journal_mode};")
        cursor.execute(f"PRAGMA foreign_keys={'ON' if cfg.sqlite_foreign_keys else 'OFF'};")
        cursor.execute(f"PRAGMA synchronous={cfg.sqlite_synchronous};")
        cursor.execute(f"PRAGMA busy_timeout={cfg.sqlite_busy_timeout_ms};")
        if cfg.sqlite_journal_mode.upper() == "WAL":
            cursor.execute(f"PRAGMA wal_autocheckpoint={cfg.sqlite_wal_autocheckpoint};")
    finally:
        cursor.close()


def _sqlite_connect_args() -> dict:
    # Autocommit: each guarded UPDATE is its own atomic statement.
    return {"isolation_level": None, "check_same_thread": False}


def create_engine_from_config(cfg: DBConfig) -> Engine:
    """Create sync SQLAlchemy engine with SQLite PRAGMAs."""
    is_sqlite = cfg.db_url.startswith("sqlite")
    engine = create_engine(
        cfg.db_url,
        echo=cfg.echo_sql,
        connect_args=_sqlite_connect_args() if is_sqlite else {},
    )
    if is_sqlite:
        event.listens_for(engine, "connect")(
            lambda c, cr: _apply_sqlite_pragmas(c, cr, cfg)
        )
    return engine


def to_async_url(url: str) -> str:
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def create_async_engine_from_config(cfg: DBConfig) -> AsyncEngine:
    """Create async SQLAlchemy engine. For SQLite use sqlite+aiosqlite."""
    url = to_async_url(cfg.db_url)
    is_sqlite = url.startswith("sqlite")
    engine = create_async_engine(
        url,
        echo=cfg.echo_sql,
        connect_args=_sqlite_connect_args() if is_sqlite else {},
    )
    if is_sqlite:
        event.listens_for(engine.sync_engine, "connect")(
            lambda c, cr: _apply_sqlite_pragmas(c, cr, cfg)
        )
    return engine
