"""Configuration management for agentlink."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentlink.errors import MissingCredentialError

CREDENTIAL_ENV = "ANTHROPIC_API_KEY"
PASSTHROUGH_ENV = ("AGENTLINK_MODEL", "AGENTLINK_MAX_TOKENS", "AGENTLINK_CONTEXT_WINDOW")
STATE_ROOT = ".agentlink"

LogLevel = Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Launcher settings read from ``AGENTLINK_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="AGENTLINK_", case_sensitive=False, extra="ignore")

    data_dir: Path | None = Field(default=None, description="Persistent data directory mounted at /data")
    home_dir: Path | None = Field(default=None, description="Worker home directory mounted at /home/agent")
    image: str = Field(default="agentlink-app", description="Worker image name")
    runtime: str = Field(default="docker", description="Container runtime executable")
    project_dir: Path | None = Field(default=None, description="Directory holding the compose project")
    build_service: str = Field(default="app", description="Compose service built before launch")
    skip_build: bool = Field(default=False, description="Skip the image build step")
    log_level: LogLevel = Field(default="WARNING", description="Log level")

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    def resolve_data_dir(self) -> Path:
        return (self.data_dir or Path.home() / STATE_ROOT / "data").expanduser()

    def resolve_home_dir(self) -> Path:
        return (self.home_dir or Path.home() / STATE_ROOT / "home").expanduser()

    def resolve_project_dir(self) -> Path:
        return (self.project_dir or Path.cwd()).expanduser()


def load_settings() -> Settings:
    return Settings()


class SessionConfig(BaseModel):
    """Everything needed to launch one worker. Built once, never mutated."""

    model_config = ConfigDict(frozen=True)

    credential: SecretStr
    passthrough: dict[str, str] = Field(default_factory=dict)
    data_dir: Path
    home_dir: Path
    image: str
    runtime: str
    workdir: Path

    @classmethod
    def from_environ(cls, settings: Settings, environ: Mapping[str, str] | None = None) -> SessionConfig:
        """Build the session config from settings and an environment mapping.

        Args:
            settings: Launcher settings supplying directories and image.
            environ: Environment to read the credential and passthrough
                variables from. Defaults to the process environment.

        Raises:
            MissingCredentialError: If the credential variable is unset or empty.
        """
        env = os.environ if environ is None else environ
        credential = env.get(CREDENTIAL_ENV, "")
        if not credential:
            raise MissingCredentialError(f"{CREDENTIAL_ENV} environment variable is required")
        passthrough = {name: env[name] for name in PASSTHROUGH_ENV if name in env}
        return cls(
            credential=SecretStr(credential),
            passthrough=passthrough,
            data_dir=settings.resolve_data_dir(),
            home_dir=settings.resolve_home_dir(),
            image=settings.image,
            runtime=settings.runtime,
            workdir=settings.resolve_project_dir(),
        )

    def worker_env(self) -> dict[str, str]:
        """Variables exported into the worker environment."""
        return {CREDENTIAL_ENV: self.credential.get_secret_value(), **self.passthrough}
