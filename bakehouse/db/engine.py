# bakehouse/db/engine.py
# Engine factory: SQLite gets explicit BEGIN + foreign keys; PostgreSQL gets pool_pre_ping.
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

__all__ = ["create_async_engine_safe", "normalize_async_dsn"]


def normalize_async_dsn(url: str) -> str:
    """
    Map sync-style DSNs onto the async drivers we ship with:
      sqlite:///x.db        -> sqlite+aiosqlite:///x.db
      postgres(ql)://...    -> postgresql+psycopg://...
    """
    url = (url or "").strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    if url.startswith("sqlite://") and not url.startswith("sqlite+"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _connect_args_for(url_str: str) -> dict[str, Any]:
    backend = make_url(url_str).get_backend_name()
    if backend.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """
    pysqlite/aiosqlite manage BEGIN on their own and break SAVEPOINT semantics.
    Turn that off and emit BEGIN ourselves; also enforce foreign keys.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def create_async_engine_safe(url_str: str, *, echo: bool = False, **extra: Any) -> AsyncEngine:
    """Async engine for 'sqlite+aiosqlite' or 'postgresql+psycopg'."""
    url_str = normalize_async_dsn(url_str)
    u = make_url(url_str)

    kwargs: dict[str, Any] = {"echo": echo}
    if u.get_backend_name().startswith("postgresql"):
        kwargs["pool_pre_ping"] = True
    connect_args = _connect_args_for(url_str)
    if connect_args:
        kwargs["connect_args"] = connect_args
    kwargs.update(extra)

    engine = create_async_engine(url_str, **kwargs)
    if u.get_backend_name().startswith("sqlite"):
        _install_sqlite_hooks(engine)
    return engine
