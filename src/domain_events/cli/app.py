"""Main CLI application."""

import typer

from domain_events.cli.commands import audit, db
from domain_events.logging import setup_sqlalchemy_logging
from domain_events.settings import get_settings

app = typer.Typer(
    name="domain-events-cli",
    help="Domain events CLI - Audit store tools",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        help="Database URL of the audit store (overrides DOMAIN_EVENTS_DATABASE_URL)",
    ),
    sql_log: bool = typer.Option(False, "--sql-log", help="Echo SQL statements"),
):
    """Global options for all commands."""
    settings = get_settings()
    if database_url is not None:
        settings.database_url = database_url
    if sql_log:
        settings.sql_log = True
        setup_sqlalchemy_logging()


# Register command groups
app.add_typer(db.app, name="db")
app.add_typer(audit.app, name="audit")
