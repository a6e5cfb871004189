from __future__ import annotations


class StewardError(RuntimeError):
    """Base class for every error raised by steward."""


class ConfigError(StewardError):
    """Raised when configuration is invalid or incomplete."""


class HostingError(StewardError):
    """Raised when a hosting-service request fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DirectoryUnavailableError(HostingError):
    """Raised when the repository listing cannot be obtained."""


class TopicWriteError(HostingError):
    """Raised when a topic set cannot be written back."""


class BackupWriteError(StewardError):
    """Raised when the topic backup snapshot cannot be written."""


class GitCommandError(StewardError):
    """Raised when a git invocation exits non-zero."""

    def __init__(self, message: str, *, args: list[str] | None = None, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.git_args = list(args or [])
        self.exit_code = exit_code


class AgentInvocationError(StewardError):
    """Raised when the agent process cannot be run to completion."""

    def __init__(
        self,
        message: str,
        *,
        backend: str | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.backend = backend
        self.exit_code = exit_code


class AgentProcessError(AgentInvocationError):
    """Raised when the agent process cannot be launched."""
