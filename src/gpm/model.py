# model.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple, Union

Pattern = Union[str, re.Pattern]


def as_commands(command: str | Sequence[str] | None) -> Tuple[str, ...]:
    """Normalize a single command or a list of commands into a tuple; blank entries are dropped."""
    if command is None:
        return ()
    if isinstance(command, str):
        command = (command,)
    return tuple(c for c in command if c and c.strip())


@dataclass(frozen=True)
class Job:
    """One or more shell commands grouped for a single execution request."""
    commands: Tuple[str, ...]
    cwd: Optional[str] = None

    @classmethod
    def of(cls, command: str | Sequence[str], cwd: str | None = None) -> Job:
        return cls(commands=as_commands(command), cwd=cwd)

    def describe(self) -> str:
        return ",".join(self.commands)


@dataclass(frozen=True)
class WatchJob:
    """
    A job re-run in parallel every time something under `path` changes.

    `context` is the cwd handed to spawned processes; `path` is always absolute.
    """
    commands: Tuple[str, ...]
    context: str
    path: str
    ignore: Tuple[Pattern, ...] = field(default_factory=tuple)

    @property
    def is_parallel(self) -> bool:
        return len(self.commands) > 1

    def describe(self) -> str:
        return ",".join(self.commands)


# ----------------------------------------------------------------------
# Pipeline outcomes
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class PipelineSuccess:
    """Every command ran to a terminal state."""
    commands_run: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class PipelineFailure:
    """The pipeline stopped at `failed_index`; later commands never ran."""
    error: BaseException
    failed_index: int
    command: str

    @property
    def ok(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"command #{self.failed_index + 1} failed: {self.error}"


PipelineResult = Union[PipelineSuccess, PipelineFailure]
