"""CLI entry point for agentlink."""

from __future__ import annotations

import sys
from typing import NoReturn

import typer
from loguru import logger
from pydantic import ValidationError

from agentlink.config import SessionConfig, load_settings
from agentlink.errors import AgentlinkError
from agentlink.image import build_image
from agentlink.logging_utils import configure_logging
from agentlink.paths import prepare_state_dirs
from agentlink.session import SessionDriver
from agentlink.supervisor import launch

app = typer.Typer(
    name="agentlink",
    help="Interactive terminal for an agent running in a container.",
    add_completion=False,
)


def _fail(detail: object) -> NoReturn:
    typer.echo(f"error: {detail}", err=True)
    raise typer.Exit(1)


@app.command()
def chat() -> None:
    """Start an interactive session with the agent worker."""
    try:
        settings = load_settings()
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        _fail(f"invalid configuration: {location}: {first['msg']}")
    configure_logging(settings.log_level, profile="session" if sys.stderr.isatty() else "default")

    try:
        config = SessionConfig.from_environ(settings)
        prepare_state_dirs(config)
        build_image(settings)
        worker = launch(config)
    except AgentlinkError as exc:
        _fail(exc)

    with worker:
        driver = SessionDriver(
            worker.reader,
            worker.writer,
            user_input=sys.stdin,
            output=sys.stdout,
            diagnostics=sys.stderr,
            close=worker.terminate,
        )
        try:
            code = driver.run()
        except AgentlinkError as exc:
            logger.debug("session.abort state={}", driver.state.value)
            _fail(exc)
    raise typer.Exit(code)


def main() -> None:
    app()
