"""
CLI commands for the Container Orchestration System.

This module provides the command-line interface for managing tasks through
the orchestrator's REST API.
"""

import os
import requests
import typer
from typing import Dict, List, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.syntax import Syntax
from rich.prompt import Confirm

from container_orcha.utils.formatting import format_time, format_task_status, short_id


# API URL
API_URL = os.environ.get("CONTAINER_ORCHA_API_URL", "http://localhost:8080/api")
REQUEST_TIMEOUT = 120

# Initialize Typer app with command groups
app = typer.Typer(help="Container Orchestration CLI", add_completion=False)
task_app = typer.Typer(help="Task management commands")
system_app = typer.Typer(help="System management commands")
app.add_typer(task_app, name="task")
app.add_typer(system_app, name="system")

# Initialize Rich console
console = Console()


class ApiError(Exception):
    """The API could not be reached or answered with an error."""
    pass


def api_request(endpoint: str, method: str = "GET", data: Dict = None, params: Dict = None):
    """
    Make a request to the API.

    Args:
        endpoint: API endpoint
        method: HTTP method
        data: Request data
        params: Query parameters

    Returns:
        The decoded JSON response

    Raises:
        ApiError: On connection problems or error responses
    """
    url = f"{API_URL}/{endpoint.lstrip('/')}"

    try:
        response = requests.request(method, url, json=data, params=params, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        raise ApiError(str(e))

    try:
        payload = response.json()
    except ValueError:
        payload = {}

    if response.status_code >= 400:
        message = ''
        if isinstance(payload, dict):
            message = payload.get('error') or payload.get('message') or ''
        raise ApiError(f"({response.status_code}) {message or response.text}")

    return payload


def _call(endpoint: str, method: str = "GET", data: Dict = None, params: Dict = None):
    try:
        return api_request(endpoint, method=method, data=data, params=params)
    except ApiError as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise typer.Exit(code=1)


def parse_env(pairs: List[str]) -> Dict[str, str]:
    """Parse KEY=VALUE pairs into a mapping."""
    env = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key.strip():
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{pair}'", param_hint="--env")
        env[key.strip()] = value
    return env


@task_app.command("list")
def task_list(
    status: str = typer.Option(None, "--status", "-s", help="Filter by task status"),
):
    """List tasks."""
    params = {'status': status} if status else None
    tasks = _call("tasks", params=params)
    if not tasks:
        console.print("[yellow]No tasks found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Image")
    table.add_column("Status")
    table.add_column("Container")
    table.add_column("Auto-restart")
    table.add_column("Updated")

    for task in tasks:
        table.add_row(
            short_id(task.get('id'), 8),
            task.get('name', ''),
            task.get('image', ''),
            format_task_status(task.get('status', '')),
            short_id(task.get('containerId')),
            "yes" if task.get('autoRestart') else "no",
            format_time(task.get('updatedAt'))
        )

    console.print("\n[bold cyan]Tasks[/bold cyan]")
    console.print(table)


@task_app.command("show")
def task_show(task_id: str = typer.Argument(..., help="Task ID")):
    """Show a task's details."""
    task = _call(f"tasks/{task_id}")

    lines = [
        f"[bold]ID:[/bold] {task.get('id')}",
        f"[bold]Image:[/bold] {task.get('image')}",
        f"[bold]Status:[/bold] {format_task_status(task.get('status', ''))}",
        f"[bold]Container:[/bold] {task.get('containerId') or '-'}",
        f"[bold]Command:[/bold] {' '.join(task.get('command') or []) or '-'}",
        f"[bold]Ports:[/bold] {', '.join(task.get('ports') or []) or '-'}",
        f"[bold]Volumes:[/bold] {', '.join(task.get('volumes') or []) or '-'}",
        f"[bold]Environment:[/bold] {', '.join(f'{k}={v}' for k, v in (task.get('env') or {}).items()) or '-'}",
        f"[bold]Auto-restart:[/bold] {'enabled' if task.get('autoRestart') else 'disabled'}",
        f"[bold]Created:[/bold] {format_time(task.get('createdAt'))}",
        f"[bold]Updated:[/bold] {format_time(task.get('updatedAt'))}",
    ]
    console.print(Panel("\n".join(lines), title=task.get('name', ''), expand=False))


@task_app.command("create")
def task_create(
    name: str = typer.Option(..., "--name", "-n", help="Task name"),
    image: str = typer.Option(..., "--image", "-i", help="Image reference, e.g. nginx:latest"),
    ports: List[str] = typer.Option([], "--port", "-p", help="Port mapping hostPort:containerPort"),
    volumes: List[str] = typer.Option([], "--volume", "-v", help="Mount hostPath:containerPath"),
    env: List[str] = typer.Option([], "--env", "-e", help="Environment variable KEY=VALUE"),
    auto_restart: bool = typer.Option(False, "--auto-restart", help="Restart the container if it dies"),
    command: Optional[List[str]] = typer.Argument(None, help="Command overriding the image's arguments"),
):
    """Create a new task."""
    data = {'name': name, 'image': image, 'autoRestart': auto_restart}
    if ports:
        data['ports'] = list(ports)
    if volumes:
        data['volumes'] = list(volumes)
    if env:
        data['env'] = parse_env(env)
    if command:
        data['command'] = list(command)

    task = _call("tasks", method="POST", data=data)
    console.print(f"\n[bold green]Created task {task.get('name')}[/bold green] ({task.get('id')})")


def _lifecycle(task_id: str, action: str, method: str = "POST"):
    endpoint = f"tasks/{task_id}" if action == "remove" else f"tasks/{task_id}/{action}"
    result = _call(endpoint, method=method)
    message = result.get('message', '')
    console.print(f"[bold green]{message}[/bold green]")
    for warning in result.get('warnings', []):
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@task_app.command("start")
def task_start(task_id: str = typer.Argument(..., help="Task ID")):
    """Start a task."""
    _lifecycle(task_id, "start")


@task_app.command("stop")
def task_stop(task_id: str = typer.Argument(..., help="Task ID")):
    """Stop a task."""
    _lifecycle(task_id, "stop")


@task_app.command("remove")
def task_remove(
    task_id: str = typer.Argument(..., help="Task ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Remove a task and its container."""
    if not yes and not Confirm.ask(f"Remove task {task_id}?"):
        console.print("[yellow]Cancelled[/yellow]")
        return
    _lifecycle(task_id, "remove", method="DELETE")


@task_app.command("logs")
def task_logs(
    task_id: str = typer.Argument(..., help="Task ID"),
    tail: int = typer.Option(100, "--tail", "-n", help="Number of lines to show"),
):
    """View a task's container logs."""
    result = _call(f"tasks/{task_id}/logs", params={'tail': tail})
    logs = result.get('logs') or ''
    if not logs:
        console.print("[yellow]No logs available[/yellow]")
        return

    syntax = Syntax(logs, "log", theme="monokai", line_numbers=True)
    console.print(syntax)


@system_app.command("status")
def system_status():
    """Show system status."""
    status = _call("system/status")
    tasks = status.get('tasks', {})

    console.print("\n[bold cyan]System Status[/bold cyan]")

    task_table = Table(show_header=True, header_style="bold magenta")
    task_table.add_column("Status")
    task_table.add_column("Count")

    for state in ("running", "pending", "stopped", "error"):
        task_table.add_row(format_task_status(state), str(tasks.get(state, 0)))
    task_table.add_row("[bold]Total[/bold]", str(tasks.get('total', 0)))

    console.print(task_table)

    console.print("\n[bold]Reconciler:[/bold]")
    if status.get('reconciler_running'):
        console.print(f"[green]Running[/green] (every {status.get('reconcile_interval')}s)")
    else:
        console.print("[yellow]Stopped[/yellow]")


@system_app.command("reconcile")
def system_reconcile():
    """Run one reconciliation pass now."""
    summary = _call("system/reconcile", method="POST")
    console.print(
        f"\n[bold green]Reconciled[/bold green]: {summary.get('status_changes', 0)} status change(s), "
        f"{summary.get('restarts', 0)} restart(s)"
    )


@app.command()
def serve(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML configuration file"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
):
    """Start the API server."""
    from container_orcha.api.server import start_api_server
    from container_orcha.config import configure_logging, load_settings
    from container_orcha.core.errors import ConfigurationError

    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise typer.Exit(code=2)

    configure_logging("DEBUG" if debug else settings.log_level)
    console.print("[bold green]Starting API server...[/bold green]")
    try:
        start_api_server(settings, debug=debug)
    except KeyboardInterrupt:
        console.print("Shutting down API server...")


@app.command()
def version():
    """Show version information."""
    from container_orcha import __version__
    console.print(f"[bold cyan]Container Orchestration System[/bold cyan] v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
