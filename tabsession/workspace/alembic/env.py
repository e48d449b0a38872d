"""Alembic environment for the ``user_tab_sets`` schema.

The URL comes from ``sqlalchemy.url`` when a caller set one on the Config
(``cfg.set_main_option``), otherwise from ``TABSESSION_DATABASE_URL``.  A
caller that already holds a sync connection can pass it as
``cfg.attributes["connection"]`` and no engine is created here.
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection

from tabsession.workspace.db.tables import Base
from tabsession.workspace.settings import TabSessionSettings

config = context.config
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

_COMPARE = {"compare_type": True, "compare_server_default": True}


def resolve_url() -> str:
    url = config.get_main_option("sqlalchemy.url") or TabSessionSettings().database_url
    if not url:
        msg = "TABSESSION_DATABASE_URL is not set. Cannot run migrations."
        raise RuntimeError(msg)
    # Migrations always run through the sync psycopg3 driver.
    return url.replace("postgresql+asyncpg://", "postgresql+psycopg://")


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    # Tables in the database that we do not model are left alone by autogenerate.
    return not (type_ == "table" and reflected and compare_to is None)


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, include_object=include_object, **_COMPARE)
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    """Emit the migration SQL instead of executing it (``alembic upgrade --sql``)."""
    context.configure(
        url=resolve_url(),
        target_metadata=target_metadata,
        include_object=include_object,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_COMPARE,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    connection: Connection | None = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection)
        return

    engine = create_engine(resolve_url(), poolclass=pool.NullPool)
    with engine.connect() as conn:
        _migrate(conn)
    engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
