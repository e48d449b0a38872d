import click


@click.group()
def main() -> None:
    """tabsession - Workspace tab session manager and tab-set persistence service."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from TABSESSION_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from TABSESSION_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the tab-set persistence service."""
    import uvicorn

    from tabsession.workspace.settings import TabSessionSettings

    settings = TabSessionSettings()

    uvicorn.run(
        "tabsession.workspace.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


# ---------------------------------------------------------------------------
# Stored tab sets
# ---------------------------------------------------------------------------


def _store():
    from tabsession.workspace.log import setup_logging
    from tabsession.workspace.settings import get_settings
    from tabsession.workspace.store import create_tab_set_store

    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)
    return create_tab_set_store(settings)


async def _call_store(method: str, user_id: str):
    """Run one store call, closing any client the store owns afterwards."""
    store = _store()
    try:
        return await getattr(store, method)(user_id)
    finally:
        aclose = getattr(store, "aclose", None)
        if aclose is not None:
            await aclose()


@main.group()
def tabs() -> None:
    """Inspect or reset users' persisted tab sets."""


@tabs.command()
@click.argument("user_id")
def show(user_id: str) -> None:
    """Print a user's stored tab set as JSON."""
    import asyncio

    tab_set = asyncio.run(_call_store("load", user_id))
    if tab_set is None:
        raise click.ClickException(f"No tab set stored for user '{user_id}'.")
    click.echo(tab_set.model_dump_json(by_alias=True, indent=2))


@tabs.command()
@click.argument("user_id")
@click.confirmation_option(prompt="Delete this user's saved tabs?")
def reset(user_id: str) -> None:
    """Delete a user's stored tab set (next sign-in starts from the dashboard)."""
    import asyncio

    asyncio.run(_call_store("delete", user_id))
    click.echo(f"Tab set for {user_id} deleted.")


# ---------------------------------------------------------------------------
# Database management
# ---------------------------------------------------------------------------


def _alembic_config(database_url: str | None = None):
    """Alembic Config for the ``user_tab_sets`` migrations shipped in the package.

    *database_url* overrides ``TABSESSION_DATABASE_URL`` for this invocation.
    """
    from pathlib import Path

    from alembic.config import Config

    cfg = Config(str(Path(__file__).parent / "workspace" / "alembic.ini"))
    if database_url:
        cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


_database_url_option = click.option(
    "--database-url",
    envvar="TABSESSION_DATABASE_URL",
    default=None,
    help="PostgreSQL URL (default: TABSESSION_DATABASE_URL).",
)


@main.group()
def db() -> None:
    """Migrations for the user_tab_sets table (tab_store=sql)."""


@db.command()
@click.option("--revision", default="head", show_default=True, help="Target revision.")
@click.option("--sql", "offline", is_flag=True, help="Print the SQL instead of running it.")
@_database_url_option
def upgrade(revision: str, offline: bool, database_url: str | None) -> None:
    """Apply migrations up to REVISION."""
    from alembic import command

    command.upgrade(_alembic_config(database_url), revision, sql=offline)
    if not offline:
        click.echo(f"Database upgraded to {revision}.")


@db.command()
@click.option("--revision", default="-1", show_default=True, help="Target revision.")
@_database_url_option
def downgrade(revision: str, database_url: str | None) -> None:
    """Revert migrations down to REVISION."""
    from alembic import command

    command.downgrade(_alembic_config(database_url), revision)
    click.echo(f"Database downgraded to {revision}.")


@db.command()
@click.argument("message")
@_database_url_option
def migrate(message: str, database_url: str | None) -> None:
    """Autogenerate a migration from changes in ``db/tables.py``."""
    from alembic import command

    command.revision(_alembic_config(database_url), message=message, autogenerate=True)
    click.echo(f"Migration generated: {message}")


@db.command()
@_database_url_option
def current(database_url: str | None) -> None:
    """Show the revision the database is at."""
    from alembic import command

    command.current(_alembic_config(database_url), verbose=True)


@db.command()
def history() -> None:
    """List all migrations."""
    from alembic import command

    command.history(_alembic_config(), verbose=True)


if __name__ == "__main__":
    main()
