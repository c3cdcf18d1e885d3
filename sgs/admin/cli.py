"""Storage gateway admin CLI.

Operator commands that run directly against the metadata store and blob
store configured in the environment.

Usage:
    sgs-admin [command] [options]

Examples:
    # Drain pending compensation tasks once
    sgs-admin reconcile

    # Show abandoned compensation tasks
    sgs-admin compensations list --status abandoned

    # Create a user and mint a development session token
    sgs-admin users create alice --full-name "Alice Example"
    sgs-admin token alice --hours 8
"""

from datetime import timedelta

import click
from rich.console import Console
from rich.table import Table

from ..database import transaction_scope
from ..logger import get_logger
from ..models.iam import CompensationStatus, CompensationTask, User
from ..services import ServiceContainer

logger = get_logger(__name__)
console = Console()


@click.group()
@click.pass_context
def cli(ctx):
  """Storage gateway admin CLI."""
  if ctx.obj is None:
    ctx.obj = ServiceContainer.build()


@cli.command("init-db")
@click.pass_obj
def init_db(services: ServiceContainer):
  """Create tables directly (development only; use alembic elsewhere)."""
  services.create_schema()
  console.print("[green]✓[/green] Schema created")


@cli.command("reconcile")
@click.option("--batch-size", type=int, help="Override RECONCILER_BATCH_SIZE")
@click.pass_obj
def reconcile(services: ServiceContainer, batch_size):
  """Process pending compensation tasks once."""
  reconciler = services.reconciler
  if batch_size:
    reconciler.batch_size = batch_size
  result = reconciler.run_once()

  if not result.processed:
    console.print("\n[yellow]No pending compensation tasks.[/yellow]")
    return

  console.print(
    f"\n[bold]Processed:[/bold] {result.processed}  "
    f"[green]completed {result.completed}[/green]  "
    f"[yellow]failed {result.failed}[/yellow]  "
    f"[red]abandoned {result.abandoned}[/red]"
  )


@cli.group()
def compensations():
  """Inspect and manage the compensation outbox."""
  pass


@compensations.command("list")
@click.option(
  "--status",
  type=click.Choice([s.value for s in CompensationStatus]),
  help="Filter by status",
)
@click.option("--limit", default=100, help="Maximum number of results")
@click.pass_obj
def list_compensations(services: ServiceContainer, status, limit):
  """List compensation tasks, newest first."""
  with transaction_scope(services.session_factory) as session:
    tasks = CompensationTask.get_by_status(
      session, CompensationStatus(status) if status else None, limit=limit
    )

    if not tasks:
      console.print("\n[yellow]No compensation tasks found.[/yellow]")
      return

    table = Table(title="Compensation Tasks", show_header=True, header_style="bold cyan")
    table.add_column("ID", no_wrap=True)
    table.add_column("Action")
    table.add_column("Bucket", overflow="fold")
    table.add_column("Object", overflow="fold")
    table.add_column("Operation")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Last Error", overflow="fold")

    for task in tasks:
      table.add_row(
        task.id,
        task.action,
        task.bucket,
        task.object_name or "-",
        task.operation,
        task.status,
        str(task.attempts),
        (task.last_error or "")[:80],
      )

    console.print()
    console.print(table)
    console.print(f"\n[bold]Total:[/bold] {len(tasks):,} tasks")


@compensations.command("retry")
@click.argument("task_id")
@click.pass_obj
def retry_compensation(services: ServiceContainer, task_id):
  """Return an abandoned task to the pending queue."""
  with transaction_scope(services.session_factory) as session:
    task = CompensationTask.get_by_id(task_id, session)
    if task is None:
      raise click.ClickException(f"Compensation task {task_id} not found")
    if task.status != CompensationStatus.ABANDONED.value:
      raise click.ClickException(f"Task {task_id} is {task.status}, not abandoned")
    task.reset(session)
  console.print(f"[green]✓[/green] Task {task_id} queued for retry")


@cli.group()
def users():
  """Manage user identities."""
  pass


@users.command("create")
@click.argument("username")
@click.option("--full-name", help="Display name")
@click.pass_obj
def create_user(services: ServiceContainer, username, full_name):
  """Create a user."""
  with transaction_scope(services.session_factory) as session:
    if User.get_by_username(username, session):
      raise click.ClickException(f"User {username} already exists")
    user = User.create(username, session, full_name=full_name)
    console.print(f"[green]✓[/green] Created user {user.username} ({user.id})")


@users.command("list")
@click.pass_obj
def list_users(services: ServiceContainer):
  """List users."""
  with transaction_scope(services.session_factory) as session:
    all_users = User.get_all(session)
    table = Table(title="Users", show_header=True, header_style="bold cyan")
    table.add_column("ID", no_wrap=True)
    table.add_column("Username")
    table.add_column("Name", overflow="fold")
    table.add_column("Created")
    for user in all_users:
      table.add_row(
        user.id, user.username, user.full_name or "-", user.created_at.isoformat()[:10]
      )
    console.print()
    console.print(table)


@cli.command("token")
@click.argument("username")
@click.option("--hours", type=int, help="Token lifetime (default: JWT_EXPIRY_HOURS)")
@click.pass_obj
def mint_token(services: ServiceContainer, username, hours):
  """Mint a session token for a user (development and testing)."""
  with transaction_scope(services.session_factory) as session:
    user = User.get_by_username(username, session)
    if user is None:
      raise click.ClickException(f"User {username} not found")
    token = services.session_tokens.create_token(
      user.id, user.username, timedelta(hours=hours) if hours else None
    )
  click.echo(token)


if __name__ == "__main__":
  cli()
