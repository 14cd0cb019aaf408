"""Worker process lifecycle and stdio plumbing."""

from __future__ import annotations

import os
import subprocess
from collections.abc import Sequence
from typing import IO, Self

from loguru import logger

from agentlink.config import SessionConfig
from agentlink.errors import MountSourceError, SpawnError

DATA_MOUNT_TARGET = "/data"
HOME_MOUNT_TARGET = "/home/agent"


def mount_specs(config: SessionConfig) -> list[str]:
    return [
        f"{config.data_dir}:{DATA_MOUNT_TARGET}",
        f"{config.home_dir}:{HOME_MOUNT_TARGET}",
    ]


def build_command(config: SessionConfig) -> list[str]:
    """Container runtime invocation for one interactive worker.

    Variables are forwarded by name only (``-e NAME``) so the credential never
    appears on the command line; their values travel in the child environment.
    """
    command = [config.runtime, "run", "-i", "--rm"]
    for name in config.worker_env():
        command.extend(["-e", name])
    for spec in mount_specs(config):
        command.extend(["-v", spec])
    command.append(config.image)
    return command


class WorkerProcess:
    """Handle owning a running worker and its stdin/stdout pipes.

    stderr is inherited from the host so worker diagnostics reach the user
    untouched. ``terminate`` closes stdin, waits for exit and may be called
    any number of times.
    """

    def __init__(self, process: subprocess.Popen[str]) -> None:
        self._process = process
        self._terminated = False

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def reader(self) -> IO[str]:
        if self._process.stdout is None:
            raise RuntimeError("worker stdout is not piped")
        return self._process.stdout

    @property
    def writer(self) -> IO[str]:
        if self._process.stdin is None:
            raise RuntimeError("worker stdin is not piped")
        return self._process.stdin

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def terminated(self) -> bool:
        return self._terminated

    def terminate(self) -> None:
        if self._terminated:
            return
        self._terminated = True
        stdin = self._process.stdin
        if stdin is not None and not stdin.closed:
            try:
                stdin.close()
            except OSError:
                # Worker already gone; unflushed bytes have nowhere to go.
                pass
        returncode = self._process.wait()
        stdout = self._process.stdout
        if stdout is not None and not stdout.closed:
            stdout.close()
        logger.debug("worker.exit pid={} returncode={}", self._process.pid, returncode)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        _ = (exc_type, exc, tb)
        self.terminate()


def launch(config: SessionConfig, *, argv: Sequence[str] | None = None) -> WorkerProcess:
    """Start the worker described by ``config``.

    Args:
        config: Session configuration; both mount sources must already exist.
        argv: Optional command replacing the container runtime invocation,
            for running a worker directly on the host.

    Raises:
        MountSourceError: If a mount source directory is missing.
        SpawnError: If the process cannot be created.
    """
    for label, path in (("data", config.data_dir), ("home", config.home_dir)):
        if not path.is_dir():
            raise MountSourceError(f"{label} dir {path} does not exist")

    command = list(argv) if argv is not None else build_command(config)
    env = {**os.environ, **config.worker_env()}
    try:
        process = subprocess.Popen(  # noqa: S603
            command,
            cwd=config.workdir,
            env=env,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=None,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except OSError as exc:
        raise SpawnError(f"failed to start worker: {exc}") from exc

    logger.info("worker.launch pid={} image={}", process.pid, config.image)
    return WorkerProcess(process)
