import json
import logging
from typing import Annotated, List, Optional

import typer

from sqsbridge import app as bridge_app
from sqsbridge import config, exceptions

LOGGING_FORMAT = (
    "[%(asctime)s] [PID %(process)d] [%(name)s] [%(levelname)s] %(message)s"
)

app = typer.Typer(
    name="sqsbridge CLI",
    help="sqsbridge CLI: publish task-queue messages to SQS",
)

logger = logging.getLogger(__name__)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v")] = False,
) -> None:
    settings = config.get_settings()
    level = logging.DEBUG if verbose else settings.log_level.upper()
    logging.basicConfig(level=level, format=LOGGING_FORMAT)


@app.command()
def send(
    task_name: Annotated[str, typer.Argument(help="e.g. proj.tasks.add")],
    args: Annotated[Optional[List[str]], typer.Option("--arg", "-a")] = None,
    kwargs: Annotated[str, typer.Option("--kwargs", "-k", help="JSON object")] = "{}",
    delivery_mode: Annotated[
        Optional[int], typer.Option("--delivery-mode", "-d", min=1, max=2)
    ] = None,
) -> None:
    """Publishes a task and prints its id"""
    try:
        task_kwargs = json.loads(kwargs)
    except ValueError:
        raise typer.BadParameter("--kwargs must be a JSON object")
    if not isinstance(task_kwargs, dict):
        raise typer.BadParameter("--kwargs must be a JSON object")

    params = {"delivery_mode": delivery_mode} if delivery_mode else None
    client = bridge_app.create_app()
    try:
        task_id = client.send_task(task_name, args or [], task_kwargs, params)
    except exceptions.ConnectorError as ex:
        typer.echo(f"Error: {ex}", err=True)
        raise typer.Exit(code=1)

    typer.echo(task_id)


@app.command()
def check() -> None:
    """Checks that the configured queue is reachable"""
    client = bridge_app.create_app()
    if not client.is_connected():
        typer.echo("Queue is not reachable", err=True)
        raise typer.Exit(code=1)

    typer.echo("Queue is reachable")


@app.command()
def result(
    task_id: Annotated[str, typer.Argument()],
    keep: Annotated[bool, typer.Option("--keep", help="Do not delete the result")] = False,
) -> None:
    """Prints the stored result of a task"""
    client = bridge_app.create_app()
    try:
        response = client.get_result(task_id, remove_from_queue=not keep)
    except exceptions.ConnectorError as ex:
        typer.echo(f"Error: {ex}", err=True)
        raise typer.Exit(code=1)

    if not response:
        typer.echo(f"Result of task {task_id} is not ready", err=True)
        raise typer.Exit(code=1)

    typer.echo(response["body"])
