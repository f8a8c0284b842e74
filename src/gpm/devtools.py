# devtools.py
from __future__ import annotations

import asyncio
import shutil
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence

from .config import GpmConfig, resolve_command
from .debounce import DEFAULT_DELAY
from .errors import CommandFailed, ConfigurationError
from .model import Job, Pattern, PipelineFailure, PipelineResult, PipelineSuccess, as_commands
from .pipeline import CommandPipeline, Spawner
from .process import ProcessHandle, spawn
from .ui.console import get_console
from .watch import Watcher, WatchRunner, build_watch_job
from .watcher import watch_changes

# local defaults when neither -e nor .gpm.yml names a command
DEFAULT_COMMANDS: Dict[str, str] = {
    "bootstrap": "yarn bootstrap",
    "dev": "yarn dev",
    "build": "yarn build",
    "test": "yarn test",
    "run": "yarn prod",
    "cli": "yarn cli",
    "install": "yarn",
}

CLEAN_DIRS = ("node_modules", "dist", "lib")

FMT_GLOB = "src/**/*.{ts,tsx,js,jsx,json,md}"
FMT_MONOREPO_GLOB = "packages/**/src/*.{ts,tsx,js,jsx,json,md}"

Confirm = Callable[[str], bool]


def report(result: PipelineResult) -> None:
    """Print a failed pipeline outcome; successes stay quiet."""
    if isinstance(result, PipelineFailure):
        exit_code = result.error.exit_code if isinstance(result.error, CommandFailed) else None
        get_console().print_failure(result.command, str(result.error), exit_code=exit_code)


class DevTools:
    """
    Day-to-day project verbs (build, test, dev, watch, ...).

    Each verb resolves its command as: explicit override, then `.gpm.yml`,
    then the built-in default. One-shot verbs run a command list as a
    sequential pipeline; `dev` and `watch` run lists in parallel because
    their commands are long-running servers.
    """

    def __init__(
        self,
        config: GpmConfig | None = None,
        *,
        cwd: str | Path | None = None,
        spawner: Spawner = spawn,
    ):
        self.cwd = Path(cwd).resolve() if cwd is not None else Path.cwd()
        self.config = config or GpmConfig(self.cwd / ".gpm.yml")
        self._spawner = spawner

    def prepare(self) -> None:
        self.config.prepare()

    def command_for(self, verb: str, override: str | Sequence[str] | None = None):
        return resolve_command(override, self.config.get(verb), DEFAULT_COMMANDS.get(verb))

    async def _pipeline(
        self,
        verb: str,
        command: str | Sequence[str],
        *,
        context: str | None = None,
        strict: bool = False,
    ) -> PipelineResult:
        console = get_console()
        job = Job.of(command, cwd=context or str(self.cwd))
        console.print_command(verb, job.describe(), context)

        pipeline = CommandPipeline(
            job,
            on_data=console.write_data,
            on_start=console.print_step if len(job.commands) > 1 else None,
            check_exit=strict,
            spawner=self._spawner,
        )
        result = await pipeline.run()
        report(result)
        return result

    async def run_verb(
        self,
        verb: str,
        command: str | Sequence[str] | None = None,
        *,
        context: str | None = None,
        strict: bool = False,
    ) -> PipelineResult:
        resolved = self.command_for(verb, command)
        if resolved is None:
            raise ConfigurationError(key=verb, message=f"No command configured for `{verb}`")
        return await self._pipeline(verb, resolved, context=context, strict=strict)

    async def dev(
        self,
        command: str | Sequence[str] | None = None,
        *,
        context: str | None = None,
    ) -> PipelineResult:
        console = get_console()
        commands = as_commands(self.command_for("dev", command))
        console.print_command("dev", ",".join(commands), context)

        results = await asyncio.gather(
            *(self._spawner(c, cwd=context or str(self.cwd), on_data=console.write_data,
                            on_error=console.write_error, interactive=True)
              for c in commands),
            return_exceptions=True,
        )
        handles: List[ProcessHandle] = []
        result: PipelineResult = PipelineSuccess(commands_run=len(commands))
        for index, (c, r) in enumerate(zip(commands, results)):
            if not isinstance(r, BaseException):
                handles.append(r)
            elif result.ok:
                result = PipelineFailure(error=r, failed_index=index, command=c)
                report(result)

        try:
            await asyncio.gather(*(h.wait() for h in handles))
        except asyncio.CancelledError:
            for h in handles:
                await h.kill()
            raise
        return result

    async def fmt(
        self,
        command: str | Sequence[str] | None = None,
        *,
        strict: bool = False,
    ) -> PipelineResult:
        resolved = resolve_command(command, self.config.get("fmt"), None)
        if resolved is None:
            pattern = FMT_MONOREPO_GLOB if (self.cwd / "packages").is_dir() else FMT_GLOB
            resolved = f"npx prettier --no-error-on-unmatched-pattern --write '{pattern}'"
        return await self._pipeline("fmt", resolved, strict=strict)

    async def sync(self, *, strict: bool = False) -> PipelineResult:
        return await self._pipeline("sync", "git pull --progress", strict=strict)

    async def clean(
        self,
        command: str | Sequence[str] | None = None,
        *,
        confirm: Confirm,
        dirs: Iterable[str] = CLEAN_DIRS,
        strict: bool = False,
    ) -> List[Path]:
        """
        Run the clean command (if any), then offer to delete build dirs.

        Returns the directories that were removed.
        """
        resolved = resolve_command(command, self.config.get("clean"), None)
        if resolved is not None:
            result = await self._pipeline("clean", resolved, strict=strict)
            if not result.ok:
                return []

        dirs = list(dirs)
        removed: List[Path] = []
        if not confirm(f"Confirm to remove {'/'.join(dirs)} ?"):
            return removed

        for name in dirs:
            target = self.cwd / name
            if target.is_dir():
                shutil.rmtree(target)
                removed.append(target)
                get_console().print_debug(f"removed {target}")
        return removed

    def watch_runner(
        self,
        command: str | Sequence[str] | None = None,
        *,
        path: str | None = None,
        context: str | None = None,
        ignore: Pattern | Iterable[Pattern] | None = None,
        delay: float = DEFAULT_DELAY,
        watcher: Watcher = watch_changes,
    ) -> WatchRunner:
        resolved = resolve_command(command, self.config.get("watch"), None)
        job = build_watch_job(resolved, path=path, context=context or str(self.cwd), ignore=ignore)
        return WatchRunner(job, delay=delay, spawner=self._spawner, watcher=watcher)

    async def watch(self, command: str | Sequence[str] | None = None, **options) -> WatchRunner:
        runner = self.watch_runner(command, **options)
        await runner.run()
        return runner
