"""DB module: config, engine, session, models, repositories."""
from cvextract.db.config import DBConfig
from cvextract.db.session import async_session_scope, dispose_db, init_db, session_scope

__all__ = ["DBConfig", "init_db", "dispose_db", "async_session_scope", "session_scope"]
