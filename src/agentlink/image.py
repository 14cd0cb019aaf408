"""Worker image build step."""

from __future__ import annotations

import subprocess

import typer
from loguru import logger

from agentlink.config import Settings
from agentlink.errors import ImageBuildError


def build_command(settings: Settings) -> list[str]:
    return [settings.runtime, "compose", "build", settings.build_service]


def build_image(settings: Settings) -> None:
    """Build the worker image with the container runtime's compose plugin.

    Build output is discarded; only a one-line progress note is written to
    stderr. Does nothing when ``skip_build`` is set.

    Raises:
        ImageBuildError: If the build cannot be started or exits non-zero.
    """
    if settings.skip_build:
        logger.info("image.build skipped")
        return

    command = build_command(settings)
    typer.echo("Building Docker image...", err=True, nl=False)
    try:
        result = subprocess.run(  # noqa: S603
            command,
            cwd=settings.resolve_project_dir(),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        typer.echo(f" failed: {exc}.", err=True)
        raise ImageBuildError(f"image build failed: {exc}") from exc

    if result.returncode != 0:
        typer.echo(f" failed (exit {result.returncode}).", err=True)
        raise ImageBuildError(f"image build failed with exit code {result.returncode}")
    typer.echo(" done.", err=True)
    logger.info("image.build done service={}", settings.build_service)
