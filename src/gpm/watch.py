# watch.py
from __future__ import annotations

import asyncio
import os
from typing import AsyncIterator, Callable, Iterable, List, Optional, Sequence, Tuple

from .debounce import DEFAULT_DELAY, Debouncer
from .errors import ConfigurationError
from .model import Pattern, WatchJob, as_commands
from .pipeline import Spawner
from .process import DataCallback, ProcessHandle, spawn
from .ui.console import get_console
from .watcher import merge_ignore, watch_changes

Watcher = Callable[[str, Tuple[Pattern, ...]], AsyncIterator[str]]


def build_watch_job(
    command: str | Sequence[str] | None,
    *,
    path: str | None = None,
    context: str | None = None,
    ignore: Pattern | Iterable[Pattern] | None = None,
) -> WatchJob:
    """
    Validate watch settings and resolve paths.

    Raises ConfigurationError when there is no command to run.
    """
    commands = as_commands(command)
    if not commands:
        raise ConfigurationError(key="watch", message="Watch no command found")

    context = os.path.abspath(context or os.getcwd())
    path = path or context
    if not os.path.isabs(path):
        path = os.path.join(os.getcwd(), path)

    return WatchJob(
        commands=commands,
        context=context,
        path=os.path.normpath(path),
        ignore=merge_ignore(ignore),
    )


class WatchRunner:
    """
    Re-run a job every time its watched tree changes.

    The first cycle starts immediately. Later cycles are debounced; before one
    starts, every process of the previous cycle is killed and the kill awaited,
    so two generations never overlap. All commands of a cycle are spawned
    concurrently. A cycle that fails to start is reported and the session
    keeps watching.
    """

    def __init__(
        self,
        job: WatchJob,
        *,
        delay: float = DEFAULT_DELAY,
        spawner: Spawner = spawn,
        watcher: Watcher = watch_changes,
        on_data: Optional[DataCallback] = None,
        on_error: Optional[DataCallback] = None,
    ):
        console = get_console()
        self.job = job
        self.cycles = 0
        self._spawner = spawner
        self._watcher = watcher
        self._on_data = on_data or console.write_data
        self._on_error = on_error or console.write_error
        self._active: List[ProcessHandle] = []
        self._debouncer = Debouncer(self._restart, delay)

    @property
    def active(self) -> Tuple[ProcessHandle, ...]:
        return tuple(self._active)

    @property
    def debouncer(self) -> Debouncer:
        return self._debouncer

    async def _cancel_active(self) -> None:
        handles, self._active = self._active, []
        for handle in handles:
            await handle.kill()

    async def _start(self, first: bool) -> None:
        console = get_console()
        if not first:
            if self.job.is_parallel:
                console.print_banner("[watch] file changing, exec commands ...")
            else:
                console.print_banner(f"[watch] file changing, exec `{self.job.commands[0]}` ...")

        results = await asyncio.gather(
            *(
                self._spawner(
                    command,
                    cwd=self.job.context,
                    on_data=self._on_data,
                    on_error=self._on_error,
                )
                for command in self.job.commands
            ),
            return_exceptions=True,
        )

        self.cycles += 1
        for command, result in zip(self.job.commands, results):
            if isinstance(result, BaseException):
                console.print_error("Watch command failed to start", command, details=[str(result)])
            else:
                self._active.append(result)

    async def _restart(self) -> None:
        try:
            await self._cancel_active()
            await self._start(first=False)
        except Exception as e:
            get_console().print_exception(e)

    def notify(self) -> None:
        """Report one filesystem change; the restart itself is debounced."""
        self._debouncer.trigger()

    async def stop(self) -> None:
        """Drop any pending restart and kill the current cycle."""
        self._debouncer.cancel()
        async with self._debouncer.lock:
            await self._cancel_active()

    async def run(self) -> None:
        console = get_console()
        console.print_command("watch", self.job.describe(), self.job.context)
        console.print_info(f"[watch] watching {self.job.path} ...")

        async with self._debouncer.lock:
            await self._start(first=True)

        try:
            async for changed in self._watcher(self.job.path, self.job.ignore):
                console.print_debug(f"[watch] changed: {changed}")
                self.notify()
            await self._debouncer.drain()
        finally:
            await self.stop()


async def watch(
    command: str | Sequence[str] | None,
    *,
    path: str | None = None,
    context: str | None = None,
    ignore: Pattern | Iterable[Pattern] | None = None,
    delay: float = DEFAULT_DELAY,
    spawner: Spawner = spawn,
    watcher: Watcher = watch_changes,
) -> WatchRunner:
    """Build, run and (once the watcher ends) return a WatchRunner."""
    job = build_watch_job(command, path=path, context=context, ignore=ignore)
    runner = WatchRunner(job, delay=delay, spawner=spawner, watcher=watcher)
    await runner.run()
    return runner
