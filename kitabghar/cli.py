"""Kitabghar CLI: run the portal and moderate from a terminal."""

import asyncio

import click
from rich.console import Console
from rich.table import Table

from kitabghar import __version__
from kitabghar.errors import KitabgharError

console = Console()


def _services(ctx: click.Context):
    from kitabghar.services import build_services

    return build_services(ctx.obj["settings"])


def _run(services, coro):
    """Run *coro* to completion and close the store afterwards."""

    async def _go():
        try:
            return await coro
        finally:
            await services.aclose()

    try:
        return asyncio.run(_go())
    except KitabgharError as exc:
        raise click.ClickException(str(exc)) from exc


def _capability(services, username: str):
    from kitabghar.auth.permissions import issue_capability

    operator = services.operators.get_operator_by_username(username)
    if operator is None:
        raise click.ClickException(f"No operator named '{username}'")
    return issue_capability(operator)


as_option = click.option(
    "--as", "as_user", required=True, envvar="KITABGHAR_OPERATOR", help="Operator username"
)


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", "-d", default=None, help="Data directory (default: ~/.kitabghar)")
@click.pass_context
def main(ctx: click.Context, data_dir: str | None):
    """Kitabghar: book club portal and moderation service.

    Serves the public site and the operator panel, and lets operators work
    the moderation queues from the command line.
    """
    from kitabghar.config import Settings
    from kitabghar.logging_utils import setup_logging

    settings = Settings.from_env(data_dir)
    setup_logging(settings.log_level, settings.logging_config or None)
    ctx.obj = {"settings": settings}


# ── Serve ────────────────────────────────────────────────────────────


@main.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", "-p", default=8000, type=int, help="Bind port")
@click.option("--reload", is_flag=True, help="Restart on code changes")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Run the REST API with uvicorn."""
    import os

    import uvicorn

    settings = ctx.obj["settings"]
    os.environ["KITABGHAR_DATA_DIR"] = str(settings.data_dir)

    console.print(f"\n[bold blue]Kitabghar[/] serving on http://{host}:{port}\n")
    uvicorn.run(
        "web.backend.app.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


# ── Operators ────────────────────────────────────────────────────────


@main.group()
def operator():
    """Manage the operators who can sign in to the panel."""


@operator.command(name="add")
@click.argument("username")
@click.option(
    "--role",
    default="moderator",
    type=click.Choice(["admin", "moderator", "viewer"]),
    help="Operator role",
)
@click.option("--display-name", default="", help="Name shown in the panel")
@click.option("--email", default="", help="Contact e-mail")
@click.password_option(help="Password (prompted if omitted)")
@click.pass_context
def add_operator(
    ctx: click.Context, username: str, role: str, display_name: str, email: str, password: str
):
    """Create an operator account."""
    from kitabghar.auth.models import Role
    from kitabghar.auth.store import OperatorStore

    settings = ctx.obj["settings"]
    store = OperatorStore(
        settings.auth_dir,
        session_ttl_hours=settings.session_ttl_hours,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    try:
        created = store.create_operator(
            username, password, role=Role(role), display_name=display_name, email=email
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"  Created operator [cyan]{created.username}[/] ({created.role.value})")


@operator.command(name="list")
@click.pass_context
def list_operators(ctx: click.Context):
    """List operator accounts."""
    from kitabghar.auth.store import OperatorStore

    settings = ctx.obj["settings"]
    operators = OperatorStore(settings.auth_dir).list_operators()

    if not operators:
        console.print("[yellow]No operators yet. Add one with 'kitabghar operator add'.[/]")
        return

    table = Table(title=f"Operators ({len(operators)})")
    table.add_column("Username", style="cyan")
    table.add_column("Role")
    table.add_column("Name")
    table.add_column("Last login", style="dim")

    for o in operators:
        table.add_row(o.username, o.role.value, o.display_name, o.last_login or "-")

    console.print(table)


# ── Moderation ───────────────────────────────────────────────────────


@main.command()
@as_option
@click.pass_context
def pending(ctx: click.Context, as_user: str):
    """Show everything waiting for a decision."""
    from kitabghar.records.models import ContentKind, ContentStatus, LoanStatus

    services = _services(ctx)
    capability = _capability(services, as_user)

    async def _collect():
        poems = await services.catalog.list_content(
            capability, ContentKind.poem, ContentStatus.pending
        )
        posts = await services.catalog.list_content(
            capability, ContentKind.pendown, ContentStatus.pending
        )
        loans = await services.catalog.list_loan_requests(capability, LoanStatus.pending)
        return poems, posts, loans

    poems, posts, loans = _run(services, _collect())

    if not (poems or posts or loans):
        console.print("[green]Nothing pending.[/]")
        return

    table = Table(title=f"Pending ({len(poems) + len(posts) + len(loans)})")
    table.add_column("Kind", style="dim")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("From")
    table.add_column("Submitted", style="dim")

    for p in poems:
        table.add_row("poem", p.id, p.title[:40], p.author, p.created_at[:10])
    for p in posts:
        table.add_row("pendown", p.id, p.title[:40], p.author, p.created_at[:10])
    for v in loans:
        table.add_row(
            "loan", v.request.id, v.book_title[:40], v.request.user_email, v.request.request_date[:10]
        )

    console.print(table)


def _decide(ctx: click.Context, kind: str, record_id: str, as_user: str, target: str):
    services = _services(ctx)
    capability = _capability(services, as_user)
    record = _run(
        services, services.workflow.transition_content(capability, kind, record_id, target)
    )
    colour = "green" if target == "approved" else "yellow"
    console.print(f"  {kind} [cyan]{record.title}[/] is now [{colour}]{record.status.value}[/]")


@main.command()
@click.argument("kind", type=click.Choice(["poem", "pendown"]))
@click.argument("record_id")
@as_option
@click.pass_context
def approve(ctx: click.Context, kind: str, record_id: str, as_user: str):
    """Approve a poem or pen-down post."""
    _decide(ctx, kind, record_id, as_user, "approved")


@main.command()
@click.argument("kind", type=click.Choice(["poem", "pendown"]))
@click.argument("record_id")
@as_option
@click.pass_context
def reject(ctx: click.Context, kind: str, record_id: str, as_user: str):
    """Reject a poem or pen-down post."""
    _decide(ctx, kind, record_id, as_user, "rejected")


@main.command()
@click.argument("request_id")
@click.argument("status", type=click.Choice(["approved", "rejected", "returned"]))
@as_option
@click.pass_context
def loan(ctx: click.Context, request_id: str, status: str, as_user: str):
    """Approve, reject or mark returned a book-loan request."""
    services = _services(ctx)
    capability = _capability(services, as_user)
    result = _run(services, services.workflow.transition_loan(capability, request_id, status))

    if result.partial:
        console.print(f"  [yellow]{result.message}[/]")
    else:
        console.print(f"  [green]{result.message}[/]")


@main.command()
@click.argument("poem_id")
@click.argument("voter")
@click.pass_context
def like(ctx: click.Context, poem_id: str, voter: str):
    """Toggle VOTER's like on a poem."""
    services = _services(ctx)
    result = _run(services, services.likes.toggle(poem_id, voter))
    state = "[green]liked[/]" if result.voted else "[yellow]unliked[/]"
    console.print(f"  {state}, {result.count} like(s)")


@main.command()
@as_option
@click.pass_context
def stats(ctx: click.Context, as_user: str):
    """Show the dashboard counts."""
    services = _services(ctx)
    capability = _capability(services, as_user)
    s = _run(services, services.catalog.dashboard_stats(capability))

    table = Table(title="Dashboard")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Books", str(s.total_books))
    table.add_row("Events", str(s.total_events))
    table.add_row("Pending poems", str(s.pending_poems))
    table.add_row("Pending pen-down posts", str(s.pending_posts))
    table.add_row("Pending loan requests", str(s.pending_requests))
    console.print(table)


# ── Policy ───────────────────────────────────────────────────────────


@main.group()
def policy():
    """Inspect transition policies."""


@policy.command(name="show")
@click.argument("name_or_path", required=False)
@click.pass_context
def show_policy(ctx: click.Context, name_or_path: str | None):
    """Print the allowed transitions of a preset or YAML policy.

    Defaults to the policy the service is configured with.
    """
    from kitabghar.moderation.policy import resolve_policy

    try:
        selected = resolve_policy(name_or_path or ctx.obj["settings"].transition_policy)
    except (OSError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    table = Table(title=f"Policy: {selected.name} (v{selected.version})")
    table.add_column("Family", style="dim")
    table.add_column("From", style="cyan")
    table.add_column("To", style="green")
    for rule in selected.rules:
        table.add_row(rule.family.value, rule.source, rule.target)
    console.print(table)


if __name__ == "__main__":
    main()
