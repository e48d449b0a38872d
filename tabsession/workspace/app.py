from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger

from tabsession.workspace.db.engine import create_engine, create_session_factory
from tabsession.workspace.log import setup_logging
from tabsession.workspace.settings import get_settings
from tabsession.workspace.store import create_tab_set_store


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)

    logger.info("Tab-set service starting (host={}, port={})", settings.host, settings.port)

    # -- Initialise state fields (always present, possibly None) ----------------
    _app.state.db_engine = None
    _app.state.tab_store = None

    if settings.tab_store == "http":
        # The service would be forwarding to itself (or to another instance).
        logger.error("tab_store=http is a client-side backend; the service cannot use it")
    elif settings.tab_store == "sql":
        if settings.database_url:
            engine = create_engine(settings.database_url)
            _app.state.db_engine = engine
            _app.state.tab_store = create_tab_set_store(settings, session_factory=create_session_factory(engine))
            logger.info("PostgreSQL: connected")
        else:
            logger.error("tab_store=sql but TABSESSION_DATABASE_URL is not set -- store disabled")
    else:
        try:
            _app.state.tab_store = create_tab_set_store(settings)
        except ValueError as exc:
            logger.error("Tab-set store disabled: {}", exc)
        else:
            prefix_info = f", prefix={settings.data_prefix}" if settings.data_prefix else ""
            logger.info("Tab-set store: {} (root={}{})", settings.tab_store, settings.data_root, prefix_info)

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("Tab-set service shutting down")

    # Dispose DB engine (closes all pooled connections).
    if _app.state.db_engine is not None:
        await _app.state.db_engine.dispose()
        logger.info("PostgreSQL: disposed")


app = FastAPI(title="Workspace Tab-Set Service", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all backend endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")


@api.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


from tabsession.workspace.routers.tab_sets import router as tab_sets_router  # noqa: E402

api.include_router(tab_sets_router)

app.include_router(api)
