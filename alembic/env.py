# alembic/env.py
from __future__ import annotations

import os
import re
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection
from sqlalchemy.pool import NullPool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from bakehouse.db.base import Base, init_models  # noqa: E402

# ---------------------------------------------------------------------------
# URL: migrations run on the sync drivers
# ---------------------------------------------------------------------------

_ASYNC_DRV_RE = re.compile(r"\+aiosqlite\b", re.I)


def normalize_sync_url(url: str) -> str:
    """
    sqlite+aiosqlite:///x.db -> sqlite:///x.db
    postgres(ql)://...       -> postgresql+psycopg://...  (psycopg runs sync too)
    """
    url = _ASYNC_DRV_RE.sub("", url)
    url = re.sub(r"^postgres://", "postgresql+psycopg://", url, flags=re.I)
    if url.lower().startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def get_url() -> str:
    """
    Priority:
      1. BAKEHOUSE_MIGRATION_URL
      2. DATABASE_URL
      3. sqlalchemy.url in alembic.ini
    """
    url = (
        os.getenv("BAKEHOUSE_MIGRATION_URL")
        or os.getenv("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
    )
    if not url:
        raise RuntimeError("Alembic cannot resolve a database URL: set DATABASE_URL or sqlalchemy.url")

    url = url.strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    return normalize_sync_url(url)


def _is_sqlite(url: str) -> bool:
    return url.lower().startswith("sqlite")


# ---------------------------------------------------------------------------
# runners
# ---------------------------------------------------------------------------


def run_migrations_offline() -> None:
    """Offline: emit SQL without connecting."""
    init_models()
    url = get_url()

    context.configure(
        url=url,
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=False,
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    init_models()
    url = get_url()

    engine = create_engine(url, poolclass=NullPool, future=True)

    with engine.connect() as connection:  # type: Connection
        context.configure(
            connection=connection,
            target_metadata=Base.metadata,
            compare_type=True,
            compare_server_default=False,
            render_as_batch=_is_sqlite(url),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
