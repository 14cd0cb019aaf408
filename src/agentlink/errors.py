"""Application-level exception types for agentlink."""

from __future__ import annotations


class AgentlinkError(Exception):
    """Base exception for agentlink."""


class ConfigurationError(AgentlinkError):
    """Base exception for configuration and startup validation errors."""


class MissingCredentialError(ConfigurationError):
    """Raised when the worker credential is absent or empty."""


class DirectoryError(ConfigurationError):
    """Raised when a state directory cannot be created or written."""


class LaunchError(AgentlinkError):
    """Base exception for failures while preparing or starting the worker."""


class ImageBuildError(LaunchError):
    """Raised when the worker image build fails."""


class SpawnError(LaunchError):
    """Raised when the worker process cannot be created."""


class MountSourceError(LaunchError):
    """Raised when a bind-mount source directory does not exist."""


class HandshakeError(AgentlinkError):
    """Raised when the worker does not open the session with a ready signal."""


class TransportError(AgentlinkError):
    """Raised when reading from or writing to the worker pipes fails."""


class DecodeError(AgentlinkError):
    """Raised when an inbound line is not a valid protocol message."""
