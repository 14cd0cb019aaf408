"""State directory preparation."""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from agentlink.config import SessionConfig
from agentlink.errors import DirectoryError


def ensure_directory(path: Path, label: str) -> Path:
    """Create ``path`` if needed and check that it is writable."""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DirectoryError(f"cannot create {label} dir {path}: {exc.strerror or exc}") from exc
    if not os.access(path, os.W_OK):
        raise DirectoryError(f"cannot create {label} dir {path}: not writable")
    logger.debug("paths.ready label={} path={}", label, path)
    return path


def prepare_state_dirs(config: SessionConfig) -> None:
    """Make sure both bind-mount sources exist before the worker starts."""
    ensure_directory(config.data_dir, "data")
    ensure_directory(config.home_dir, "home")
