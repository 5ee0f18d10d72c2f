"""Taskify CLI — run the server and poke at the task board.

Usage:
    taskify serve                         # Run the API + WebSocket server
    taskify tasks                         # List tasks in board order
    taskify users                         # List user profiles
    taskify add-task "Write docs" -o 3    # Create a task
    taskify delete-task <id>              # Delete a task
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from taskify import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("TASKIFY_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the Taskify backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    invoked from an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


def _fail(resp: httpx.Response) -> None:
    try:
        body = resp.json()
        message = body.get("detail") or body.get("error") or resp.text
    except (ValueError, AttributeError):
        message = resp.text
    click.secho(f"Error {resp.status_code}: {message}", fg="red", err=True)
    sys.exit(1)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="taskify")
def main():
    """Taskify — task board backend with live updates."""


@main.command()
@click.option("--host", default=None, help="Bind address (default: TASKIFY_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: TASKIFY_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the HTTP + WebSocket server."""
    import uvicorn

    from taskify.config import settings

    uvicorn.run(
        "taskify.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
def tasks(as_json: bool):
    """List tasks in board order."""
    _run(_tasks_impl(as_json))


async def _tasks_impl(as_json: bool):
    async with _client() as c:
        r = await c.get("/tasks")
    if r.status_code != 200:
        _fail(r)
    rows = r.json()
    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("No tasks.")
        return
    _print_table(rows, [("ORDER", "order", 6), ("TITLE", "title", 40), ("ID", "id", 36)])


@main.command()
def users():
    """List user profiles."""
    _run(_users_impl())


async def _users_impl():
    async with _client() as c:
        r = await c.get("/users")
    if r.status_code != 200:
        _fail(r)
    rows = r.json()
    if not rows:
        click.echo("No users.")
        return
    _print_table(rows, [("EMAIL", "email", 32), ("NAME", "name", 24)])


@main.command("add-task")
@click.argument("title")
@click.option("--order", "-o", type=float, default=None, help="Position on the board")
@click.option("--field", "-f", multiple=True, help="Extra key=value field")
def add_task(title: str, order: Optional[float], field: tuple[str, ...]):
    """Create a task. Live clients get a NEW_TASK event."""
    body: dict = {"title": title}
    if order is not None:
        body["order"] = int(order) if order.is_integer() else order
    for item in field:
        key, sep, value = item.partition("=")
        if not sep:
            raise click.BadParameter(f"expected key=value, got '{item}'", param_hint="--field")
        body[key] = value
    _run(_add_task_impl(body))


async def _add_task_impl(body: dict):
    async with _client() as c:
        r = await c.post("/tasks", json=body)
    if r.status_code not in (200, 201):
        _fail(r)
    click.secho(f"Task {r.json()['insertedId']} created", fg="green")


@main.command("delete-task")
@click.argument("task_id")
def delete_task(task_id: str):
    """Delete a task. Live clients get a DELETE_TASK event."""
    _run(_delete_task_impl(task_id))


async def _delete_task_impl(task_id: str):
    async with _client() as c:
        r = await c.delete(f"/tasks/{task_id}")
    if r.status_code != 200:
        _fail(r)
    deleted = r.json().get("deletedCount", 0)
    if deleted:
        click.secho(f"Task {task_id} deleted", fg="green")
    else:
        click.echo(f"No task with id {task_id}")


if __name__ == "__main__":
    main()
