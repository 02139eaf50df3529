"""Database management commands."""

import typer
from rich.console import Console
from sqlalchemy.exc import SQLAlchemyError

from domain_events.database import create_tables, dispose_db

app = typer.Typer(help="Database operations")
console = Console()


@app.command()
def init():
    """Create the audit_events table if it does not exist.

    Examples:
        domain-events-cli db init
        domain-events-cli --database-url sqlite:///audit.db db init
    """
    console.print("[bold]Creating audit tables...[/bold]")

    try:
        create_tables()
    except (ValueError, SQLAlchemyError) as e:
        console.print(f"[red]Database error: {e!s}[/red]")
        raise typer.Exit(1) from None
    finally:
        dispose_db()

    console.print("[green]Audit tables are ready[/green]")
