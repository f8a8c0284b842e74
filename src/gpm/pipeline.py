# pipeline.py
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from .errors import CommandFailed
from .model import Job, PipelineFailure, PipelineResult, PipelineSuccess
from .process import DataCallback, ProcessHandle, spawn

Spawner = Callable[..., Awaitable[ProcessHandle]]
StartCallback = Callable[[int, str], None]


class CommandPipeline:
    """
    Run a job's commands one at a time, in order.

    Every stdout/stderr chunk is forwarded to `on_data` as it arrives. The
    first command that raises (spawn failure, or a non-zero exit when
    `check_exit` is on) stops the pipeline; later commands never start.

    With `check_exit=False` the exit code is not inspected at all, so a
    command like `false` counts as progress.

    Commands are interactive by default: they read the caller's stdin and
    share its terminal, so prompts (credentials, confirmations) still work.
    """

    def __init__(
        self,
        job: Job,
        *,
        on_data: Optional[DataCallback] = None,
        on_start: Optional[StartCallback] = None,
        check_exit: bool = False,
        spawner: Spawner = spawn,
        interactive: bool = True,
    ):
        self.job = job
        self.check_exit = check_exit
        self.interactive = interactive
        self._on_data = on_data
        self._on_start = on_start
        self._spawner = spawner

    def _emit(self, chunk: str) -> None:
        if self._on_data is not None:
            self._on_data(chunk)

    async def _run_one(self, command: str) -> None:
        handle = await self._spawner(
            command,
            cwd=self.job.cwd,
            on_data=self._emit,
            on_error=self._emit,
            interactive=self.interactive,
        )
        try:
            exit_code = await handle.wait()
        except asyncio.CancelledError:
            await handle.kill()
            raise

        if self.check_exit and exit_code != 0:
            raise CommandFailed(command=command, exit_code=exit_code)

    async def run(self) -> PipelineResult:
        for index, command in enumerate(self.job.commands):
            if self._on_start is not None:
                self._on_start(index, command)
            try:
                await self._run_one(command)
            except Exception as e:
                return PipelineFailure(error=e, failed_index=index, command=command)

        return PipelineSuccess(commands_run=len(self.job.commands))


async def run_pipeline(
    commands: str | Sequence[str],
    *,
    cwd: str | None = None,
    on_data: Optional[DataCallback] = None,
    check_exit: bool = False,
    spawner: Spawner = spawn,
    interactive: bool = True,
) -> PipelineResult:
    """Convenience wrapper: build a Job and run it as a pipeline."""
    pipeline = CommandPipeline(
        Job.of(commands, cwd=cwd),
        on_data=on_data,
        check_exit=check_exit,
        spawner=spawner,
        interactive=interactive,
    )
    return await pipeline.run()
