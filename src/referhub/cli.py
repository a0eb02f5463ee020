"""Command-line interface for Referhub."""

from datetime import timedelta
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from referhub.auth.tokens import create_access_token
from referhub.errors import ReferhubError
from referhub.logging_config import configure_logging, get_logger
from referhub.organizations.models import Organization, User, UserRole
from referhub.organizations.service import OrganizationService
from referhub.settings import settings
from referhub.statuses.service import sorted_statuses_query
from referhub.storage.db import Database

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Create Typer app
app = typer.Typer(
    name="referhub",
    help="Referhub - referral program administration",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    database_url: Annotated[
        str | None,
        typer.Option("--database-url", help="Database URL (defaults to REFERHUB_DATABASE_URL)"),
    ] = None,
) -> None:
    """Referhub - referral program administration."""
    ctx.obj = Database(database_url)


def _fail(error: ReferhubError) -> None:
    console.print(f"[bold red]✗[/bold red] {error.detail}")
    raise typer.Exit(1)


@app.command("init")
def init_database(ctx: typer.Context) -> None:
    """Initialize the database and create tables."""
    console.print("[bold blue]Initializing database...[/bold blue]")
    ctx.obj.create_tables()
    console.print("[bold green]✓[/bold green] Database initialized successfully")


@app.command("org-create")
def create_organization(
    ctx: typer.Context,
    name: Annotated[str, typer.Option("--name", "-n", help="Organization name")],
    points: Annotated[
        int | None, typer.Option("--points", "-p", help="Points per converted referral")
    ] = None,
    admin_email: Annotated[str | None, typer.Option("--admin-email", help="Email of the first admin")] = None,
    admin_name: Annotated[str | None, typer.Option("--admin-name", help="Name of the first admin")] = None,
) -> None:
    """Create an organization with the default referral statuses."""
    service = OrganizationService(ctx.obj)
    try:
        org = service.create_organization_with_defaults(
            name=name,
            conversion_points=settings.default_conversion_points if points is None else points,
            admin_email=admin_email,
            admin_name=admin_name,
        )
    except ReferhubError as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] Organization created with ID: [bold]{org.id}[/bold]")
    console.print(f"  Name: {org.name}")
    console.print(f"  Conversion points: {org.conversion_points}")
    if admin_email:
        console.print(f"  Admin: {admin_email.lower()}")


@app.command("org-list")
def list_organizations(ctx: typer.Context) -> None:
    """List all organizations."""
    orgs = OrganizationService(ctx.obj).list_organizations()

    if not orgs:
        console.print("[yellow]No organizations found[/yellow]")
        return

    table = Table(title="Organizations")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Conversion Points", justify="right")
    table.add_column("Users", justify="right")

    for org in orgs:
        table.add_row(
            str(org["id"]),
            org["name"],
            str(org["conversion_points"]),
            str(org["user_count"]),
        )

    console.print(table)


@app.command("user-create")
def create_user(
    ctx: typer.Context,
    org_id: Annotated[int, typer.Option("--org", "-o", help="Organization ID")],
    email: Annotated[str, typer.Option("--email", "-e", help="User email")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="Display name")] = None,
    role: Annotated[UserRole, typer.Option("--role", "-r", help="User role")] = UserRole.CLIENT,
) -> None:
    """Add a user to an organization."""
    service = OrganizationService(ctx.obj)
    try:
        user = service.add_user(email, name=name, role=role, org_id=org_id)
    except ReferhubError as e:
        _fail(e)

    console.print(f"[bold green]✓[/bold green] User created with ID: [bold]{user.id}[/bold] ({user.role.value})")


@app.command("status-list")
def list_statuses(
    ctx: typer.Context,
    org_id: Annotated[int, typer.Argument(help="Organization ID")],
) -> None:
    """Show the referral statuses of an organization."""
    with ctx.obj.session() as session:
        org = session.get(Organization, org_id)
        if org is None:
            console.print(f"[red]Organization {org_id} not found[/red]")
            raise typer.Exit(1)

        statuses = sorted_statuses_query(session, org_id).all()

        table = Table(title=f"Statuses of {org.name}")
        table.add_column("ID", style="cyan")
        table.add_column("Order", justify="right")
        table.add_column("Name", style="green")
        table.add_column("Flags")

        for status in statuses:
            flags = []
            if status.is_default:
                flags.append("default")
            if status.is_system:
                flags.append("system")
            if status.id == org.conversion_status_id:
                flags.append("conversion")
            table.add_row(str(status.id), str(status.order), status.name, ", ".join(flags))

        console.print(table)


@app.command("token")
def issue_token(
    ctx: typer.Context,
    user_id: Annotated[int, typer.Argument(help="User ID")],
    hours: Annotated[int | None, typer.Option("--hours", help="Token lifetime in hours")] = None,
) -> None:
    """Issue an access token for a user (development and operations)."""
    with ctx.obj.session() as session:
        user = session.get(User, user_id)
        if user is None:
            console.print(f"[red]User {user_id} not found[/red]")
            raise typer.Exit(1)

        token = create_access_token(
            user.id,
            user.org_id,
            user.role,
            expires_in=timedelta(hours=hours) if hours else None,
        )

    logger.info("token_issued", user_id=user_id)
    typer.echo(token)


@app.command("serve")
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", help="Bind port")] = 8000,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("referhub.api.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
