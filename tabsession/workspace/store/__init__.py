"""Tab-set store implementations (the persistence API backends)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from tabsession.workspace.store.base import TabSetStore
from tabsession.workspace.store.local import LocalTabSetStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from tabsession.workspace.settings import TabSessionSettings

__all__ = ["LocalTabSetStore", "TabSetStore", "create_tab_set_store"]


def create_tab_set_store(
    settings: TabSessionSettings,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> TabSetStore:
    """Create the store backend selected by ``settings.tab_store``.

    Raises ``ValueError`` when the selected backend is missing its
    configuration.
    """
    if settings.tab_store == "s3":
        from tabsession.workspace.store.s3 import S3TabSetStore

        if not (settings.s3_endpoint and settings.s3_bucket and settings.s3_access_key and settings.s3_secret_key):
            msg = "tab_store=s3 requires TABSESSION_S3_ENDPOINT, _BUCKET, _ACCESS_KEY and _SECRET_KEY"
            raise ValueError(msg)
        return S3TabSetStore(
            bucket=settings.s3_bucket,
            endpoint_url=settings.s3_endpoint,
            access_key=settings.s3_access_key,
            secret_key=settings.s3_secret_key.get_secret_value(),
            prefix=settings.data_prefix,
            region=settings.s3_region,
            path_style=settings.s3_path_style,
        )

    if settings.tab_store == "sql":
        from tabsession.workspace.store.sql import SqlTabSetStore

        if session_factory is None:
            from tabsession.workspace.db.engine import create_engine, create_session_factory

            if not settings.database_url:
                msg = "tab_store=sql requires TABSESSION_DATABASE_URL"
                raise ValueError(msg)
            session_factory = create_session_factory(create_engine(settings.database_url))
        return SqlTabSetStore(session_factory)

    if settings.tab_store == "http":
        from tabsession.workspace.store.http import HttpTabSetStore

        if not settings.persistence_url:
            msg = "tab_store=http requires TABSESSION_PERSISTENCE_URL"
            raise ValueError(msg)
        return HttpTabSetStore(settings.persistence_url)

    return LocalTabSetStore(settings.data_root, prefix=settings.data_prefix)
