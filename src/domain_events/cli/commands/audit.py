"""Audit trail commands."""

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from domain_events.database import dispose_db, get_engine
from domain_events.handlers.classification import assess_risk_level, map_event_category
from domain_events.models import RiskLevel
from domain_events.services.audit_store import SqlAuditStore

app = typer.Typer(help="Audit trail operations")
console = Console()

RISK_STYLES = {RiskLevel.HIGH: "red", RiskLevel.MEDIUM: "yellow", RiskLevel.LOW: "green"}


@app.command()
def classify(event_types: list[str] = typer.Argument(..., help="Event types, e.g. user.deleted")):
    """Show the audit category and risk level of event types.

    Examples:
        domain-events-cli audit classify user.deleted user.viewed auth.login
    """
    table = Table(title="Audit classification")
    table.add_column("Event type", style="cyan")
    table.add_column("Category")
    table.add_column("Risk level")

    for event_type in event_types:
        risk = assess_risk_level(event_type)
        table.add_row(event_type, map_event_category(event_type), f"[{RISK_STYLES[risk]}]{risk}[/{RISK_STYLES[risk]}]")

    console.print(table)


@app.command("list")
def list_records(
    event_type: str | None = typer.Option(None, "--event-type", "-t", help="Only show this event type"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Maximum number of records"),
):
    """List stored audit records, oldest first.

    Examples:
        domain-events-cli audit list
        domain-events-cli audit list -t user.deleted -n 5
    """
    try:
        records = SqlAuditStore(get_engine()).list_records(event_type=event_type, limit=limit)
    except (ValueError, SQLAlchemyError) as e:
        console.print(f"[red]Database error: {e!s}[/red]")
        raise typer.Exit(1) from None
    finally:
        dispose_db()

    if not records:
        console.print("[yellow]No audit records found[/yellow]")
        return

    table = Table(title=f"Audit records ({len(records)})")
    for column in ("Occurred at", "Event type", "Aggregate", "Organization", "Category", "Risk level"):
        table.add_column(column)

    for record in records:
        table.add_row(
            record.occurred_at.isoformat(),
            record.event_type,
            f"{record.aggregate_type}:{record.aggregate_id}",
            record.organization_id or "-",
            record.category,
            record.risk_level,
        )

    console.print(table)
