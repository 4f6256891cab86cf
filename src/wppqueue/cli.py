"""WPP Redirect Queue CLI entry point."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wppqueue.config import get_settings

console = Console()

T = TypeVar("T")

account_option = click.option(
    "--account",
    "-a",
    required=True,
    envvar="WPPQ_ACCOUNT",
    help="Account acting on the queue",
)


def run_async(coro: Callable[[], Awaitable[T]]) -> T:
    """Run an async function with proper database cleanup.

    Closes the database after the coroutine completes, so aiosqlite's
    background thread does not keep the command alive.
    """
    from wppqueue.db import close_database

    async def wrapped() -> T:
        try:
            return await coro()
        finally:
            await close_database()

    return asyncio.run(wrapped())


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else get_settings().log_level.upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """WPP Redirect Queue - per-phone waiting queues for WhatsApp lines."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"[bold green]Starting WPP Redirect Queue API on {host}:{port}[/bold green]")

    uvicorn.run(
        "wppqueue.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@cli.command()
@click.option("--db-path", type=click.Path(), help="Database path")
def init(db_path: str | None) -> None:
    """Initialize the database."""
    from wppqueue.db import get_database

    async def do_init() -> None:
        db = await get_database(db_path)
        console.print(f"[green]Database initialized at {db.db_path}[/green]")

    run_async(do_init)


@cli.command()
@account_option
def status(account: str) -> None:
    """Show phone and queue counters for an account."""
    from wppqueue.db import get_database
    from wppqueue.metrics import get_dashboard_metrics, get_queue_summary

    async def show_status() -> None:
        db = await get_database()
        dashboard = await get_dashboard_metrics(db, account)
        summary = await get_queue_summary(db, account)

        table = Table(title="WPP Redirect Queue Status")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Phones", str(dashboard.total_phones))
        table.add_row("Online Phones", str(dashboard.online_phones))
        table.add_row("Last Connection", dashboard.last_connection or "-")
        table.add_row("Queued Numbers", str(summary.total_numbers))
        table.add_row("Average Wait (min)", f"{summary.average_wait_time:.1f}")

        console.print(table)

    run_async(show_status)


@cli.command()
@account_option
def metrics(account: str) -> None:
    """Show queue summary and attendance metrics per phone."""
    from wppqueue.db import MetricsRepository, get_database
    from wppqueue.metrics import get_queue_summary
    from wppqueue.phones import PhoneService

    async def show_metrics() -> None:
        db = await get_database()
        summary = await get_queue_summary(db, account)
        phones = await PhoneService(db).list_phones(account)
        repo = MetricsRepository(db)

        console.print(
            f"[bold]Queued numbers:[/bold] {summary.total_numbers}  "
            f"[bold]Average wait:[/bold] {summary.average_wait_time:.1f} min"
        )

        if not phones:
            console.print("[yellow]No phones found[/yellow]")
            return

        table = Table(title="Attendance")
        table.add_column("Number", style="cyan")
        table.add_column("Today", justify="right")
        table.add_column("Total", justify="right")
        table.add_column("Avg Wait (min)", justify="right")
        table.add_column("Last Attendance")

        for p in phones:
            stats = await repo.get(p.id)
            if stats is None:
                table.add_row(p.number, "0", "0", "-", "-")
                continue
            table.add_row(
                p.number,
                str(stats.today_attendances),
                str(stats.total_attendances),
                f"{stats.average_wait_time:.1f}",
                stats.last_attendance.strftime("%Y-%m-%d %H:%M") if stats.last_attendance else "-",
            )

        console.print(table)

    run_async(show_metrics)


@cli.group()
def phone() -> None:
    """Manage phone lines."""
    pass


@phone.command("list")
@account_option
def phone_list(account: str) -> None:
    """List an account's phones."""
    from wppqueue.db import get_database
    from wppqueue.phones import PhoneService

    async def do_list() -> None:
        db = await get_database()
        phones = await PhoneService(db).list_phones(account)

        if not phones:
            console.print("[yellow]No phones found[/yellow]")
            return

        table = Table(title="Phones")
        table.add_column("ID", style="dim")
        table.add_column("Number", style="cyan")
        table.add_column("Name")
        table.add_column("Status")
        table.add_column("Last Change")

        for p in phones:
            table.add_row(
                p.id,
                p.number,
                p.name or "-",
                "[green]online[/green]" if p.online else "[dim]offline[/dim]",
                p.last_online_change.strftime("%Y-%m-%d %H:%M") if p.last_online_change else "-",
            )

        console.print(table)

    run_async(do_list)


@phone.command("add")
@click.argument("number")
@click.option("--name", "-n", default="", help="Display name")
@account_option
def phone_add(number: str, name: str, account: str) -> None:
    """Register a new phone."""
    from wppqueue.db import get_database
    from wppqueue.domain import QueueError
    from wppqueue.phones import PhoneService

    async def do_add() -> None:
        db = await get_database()
        try:
            created = await PhoneService(db).create(account, number, name)
        except QueueError as e:
            raise click.ClickException(e.message) from e
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        console.print(f"[green]Created phone: {created.number} ({created.id})[/green]")

    run_async(do_add)


def _set_online(phone_id: str, account: str, online: bool) -> None:
    from wppqueue.db import get_database
    from wppqueue.domain import QueueError
    from wppqueue.phones import PhoneService

    async def do_set() -> None:
        db = await get_database()
        try:
            await PhoneService(db).update(phone_id, account, online=online)
        except QueueError as e:
            raise click.ClickException(e.message) from e
        state = "online" if online else "offline"
        console.print(f"[green]Phone {phone_id} is now {state}[/green]")

    run_async(do_set)


@phone.command("online")
@click.argument("phone_id")
@account_option
def phone_online(phone_id: str, account: str) -> None:
    """Switch a phone online and put it in the queue."""
    _set_online(phone_id, account, True)


@phone.command("offline")
@click.argument("phone_id")
@account_option
def phone_offline(phone_id: str, account: str) -> None:
    """Switch a phone offline and drop it from the queue."""
    _set_online(phone_id, account, False)


@phone.command("remove")
@click.argument("phone_id")
@account_option
def phone_remove(phone_id: str, account: str) -> None:
    """Delete a phone."""
    from wppqueue.db import get_database
    from wppqueue.domain import QueueError
    from wppqueue.phones import PhoneService

    async def do_remove() -> None:
        db = await get_database()
        try:
            await PhoneService(db).delete(phone_id, account)
        except QueueError as e:
            raise click.ClickException(e.message) from e
        console.print(f"[green]Deleted phone {phone_id}[/green]")

    run_async(do_remove)


@cli.group()
def queue() -> None:
    """Inspect and reorder queues."""
    pass


@queue.command("show")
@account_option
def queue_show(account: str) -> None:
    """Show the queue of every online phone."""
    from wppqueue.db import get_database
    from wppqueue.queue import QueueEngine

    async def do_show() -> None:
        db = await get_database()
        items = await QueueEngine(db).list_account_queue(account)

        if not items:
            console.print("[yellow]Queue is empty[/yellow]")
            return

        table = Table(title="Queue")
        table.add_column("#", style="bold")
        table.add_column("Entry", style="dim")
        table.add_column("Phone", style="dim")
        table.add_column("Number", style="cyan")
        table.add_column("Name")
        table.add_column("Since")

        for item in items:
            table.add_row(
                str(item.position),
                item.id,
                item.phone_id,
                item.number,
                item.name or "-",
                item.created_at.strftime("%H:%M:%S"),
            )

        console.print(table)

    run_async(do_show)


@queue.command("move")
@click.argument("phone_id")
@click.argument("entry_id")
@click.argument("direction", type=click.Choice(["top", "up", "down", "bottom"]))
@account_option
def queue_move(phone_id: str, entry_id: str, direction: str, account: str) -> None:
    """Move an entry within its phone's queue."""
    from wppqueue.db import get_database
    from wppqueue.domain import Direction, QueueError
    from wppqueue.queue import QueueEngine

    async def do_move() -> None:
        db = await get_database()
        try:
            result = await QueueEngine(db).reorder(
                entry_id, phone_id, Direction(direction), account
            )
        except QueueError as e:
            raise click.ClickException(e.message) from e

        if not result.changed:
            console.print(f"[yellow]Entry already at the {direction} of the queue[/yellow]")
            return
        for entry in result.entries:
            console.print(f"{entry.position}. {entry.id}")

    run_async(do_move)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
