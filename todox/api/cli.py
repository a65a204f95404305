import asyncio
from typing import Optional

from typer import Argument, Option, Typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from todox.config import get_settings
from todox.bootstrap import build_service, build_verifier
from todox.logging_setup import setup_logging
from todox.services.task_service import TaskService
from todox.domain.errors import DomainError, TaskNotFoundOrForbiddenError, TaskValidationError
from todox.domain.task import Task, TaskId, OwnerId
from todox.domain.enums import TaskFilter
from todox.api.colors import TaskColor


### COMMENTS
# ==========================================================
# CLI (Typer + Rich): operator interface for todox.
# ==========================================================
# Role:
# - `serve` runs the HTTP API under uvicorn.
# - `token` signs a session token for a user (local development).
# - add/list/done/rm call TaskService directly against the configured store,
#   always on behalf of an explicit `--user`.
# - Catches DomainError and prints short panels.
#
# Rules:
# - No business logic here, everything goes through TaskService.
# - The service is built once per process in the callback.


app = Typer(help="todox: personal to-do list service")
console = Console()

service: TaskService | None = None  # set in the callback


@app.callback()
def main() -> None:
    """Bootstrap dependencies when the CLI process starts."""
    global service
    settings = get_settings()
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)
    service = build_service(settings)


def run(coro):
    """Runs one service call on a fresh event loop and releases the store afterwards."""
    async def _main():
        try:
            return await coro
        finally:
            dispose = getattr(service.store, "dispose", None)
            if dispose is not None:
                await dispose()
    return asyncio.run(_main())


def short_id(task_id: str, n: int = 8) -> str:
    """Shortened UUID for display (first 8 characters)."""
    return task_id[:n]


def color_status(completed: bool) -> str:
    if completed:
        return f"{TaskColor.GREEN}Done{TaskColor.RESET}"
    return f"{TaskColor.YELLOW}Open{TaskColor.RESET}"


def render_list(items: list[Task], task_filter: TaskFilter) -> None:
    """Renders a Rich table with ID, Name, Created At and Status columns."""
    if not items:
        console.print(f"[dim]{task_filter.empty_message()}[/dim]")
        return

    table = Table(show_lines=True, header_style="bold")
    table.add_column("ID", no_wrap=True, style="cyan")
    table.add_column("Name")
    table.add_column("Created At", no_wrap=True, style="dim")
    table.add_column("Status", no_wrap=True)

    for t in items:
        table.add_row(
            t.task_id,
            t.name,
            t.created_at.strftime("%Y-%m-%d %H:%M"),
            color_status(t.completed),
        )
    console.print(table)
    console.print(f"[dim]Total: {len(items)} • Filter: {task_filter}[/dim]")


def print_domain_error(e: DomainError, hint: str | None = None) -> None:
    body = f"❌ {e}" + (f"\n[dim]{hint}[/]" if hint else "")
    console.print(Panel.fit(body, title="Error", border_style="red"))


@app.command("serve")
def serve(
    host: Optional[str] = Option(None, "--host", help="Bind address (default from TODOX_HOST)"),
    port: Optional[int] = Option(None, "--port", "-p", help="Port (default from TODOX_PORT)"),
) -> None:
    """Runs the HTTP API."""
    import uvicorn

    settings = get_settings()
    console.print(Panel.fit(
        f"todox API on http://{host or settings.host}:{port or settings.port}\n"
        f"[dim]store: {settings.store}[/dim]",
        border_style="cyan",
    ))
    uvicorn.run(
        "todox.api.http:app_from_env",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command("token")
def token(user: str = Argument(..., help="User id to sign the session for")) -> None:
    """Prints a signed session token (value of the session cookie)."""
    verifier = build_verifier(get_settings())
    console.print(verifier.issue(user), soft_wrap=True)


@app.command("add")
def add(
    name: str,
    user: str = Option(..., "--user", "-u"),
    done: bool = Option(False, "--done", help="Create the task already completed"),
) -> None:
    """
    Adds a new task.

    Flow:
    - service.create_task(user, {"name": name, "completed": done})
    - Success: green panel with the short id.
    - Validation error: red panel with a hint.
    """
    try:
        task = run(service.create_task(OwnerId(user), {"name": name, "completed": done}))
        console.print(Panel.fit(
            f"✅ Task added\n[cyan]ID:[/cyan] {short_id(task.task_id)}\n[dim]Name:[/dim] {task.name}",
            title="Success",
            border_style="green",
        ))
    except TaskValidationError as e:
        print_domain_error(e, "Example: todox add 'Buy milk' --user alice")
    except DomainError as e:
        print_domain_error(e)


@app.command("list")
def list_cmd(
    user: str = Option(..., "--user", "-u"),
    task_filter: TaskFilter = Option(TaskFilter.ALL, "--filter", "-f"),
) -> None:
    """Lists the user's tasks, oldest first."""
    try:
        items = run(service.list_tasks(OwnerId(user), task_filter.as_completed()))
        render_list(items, task_filter)
    except DomainError as e:
        print_domain_error(e)


@app.command("done")
def done(
    task_id: str,
    user: str = Option(..., "--user", "-u"),
    undo: bool = Option(False, "--undo", help="Mark the task as not completed"),
) -> None:
    """
    Sets the completion flag of a task.

    Flow:
    - service.set_completed(user, task_id, not undo)
    - Not found or not owned: red panel with a hint.
    """
    try:
        task = run(service.set_completed(OwnerId(user), TaskId(task_id), not undo))
        console.print(Panel.fit(
            f"✅ ID: {short_id(task.task_id)}\n[dim]Name:[/dim] {task.name}\nStatus: {color_status(task.completed)}",
            title="Success",
            border_style="green",
        ))
    except TaskNotFoundOrForbiddenError as e:
        print_domain_error(e, "Use 'todox list --user ...' to find a valid id")
    except DomainError as e:
        print_domain_error(e)


@app.command("rm")
def rm(task_id: str, user: str = Option(..., "--user", "-u")) -> None:
    """Deletes a task."""
    try:
        run(service.delete_task(OwnerId(user), TaskId(task_id)))
        console.print(Panel.fit(
            f"🟡 Task deleted\nID: {short_id(task_id)}",
            title="Deleted",
            border_style="yellow",
        ))
    except TaskNotFoundOrForbiddenError as e:
        print_domain_error(e, "Use 'todox list --user ...' to find a valid id")
    except DomainError as e:
        print_domain_error(e)


if __name__ == "__main__":
    app()
