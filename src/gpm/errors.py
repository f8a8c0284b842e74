# errors.py
from __future__ import annotations

from dataclasses import dataclass, field


class GpmError(Exception):
    """Base class for errors the CLI knows how to render."""


@dataclass
class ConfigurationError(GpmError):
    """
    A required setting is missing or malformed.

    Raised before any process is spawned, so callers can fail fast.
    """
    key: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (key={self.key})"


@dataclass
class SpawnError(GpmError):
    """The OS refused to start a command."""
    command: str
    cwd: str | None
    reason: str

    def __str__(self) -> str:
        lines = [f"failed to spawn: {self.command}", f"reason={self.reason}"]
        if self.cwd:
            lines.append(f"cwd={self.cwd}")
        return "\n".join(lines)


@dataclass
class CommandFailed(GpmError):
    """A command exited non-zero while exit codes are being checked."""
    command: str
    exit_code: int

    def __str__(self) -> str:
        return f"command failed (exit={self.exit_code}): {self.command}"


@dataclass
class ReleaseError(GpmError):
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [self.message]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)
