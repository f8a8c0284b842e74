# process.py
"""
Spawn shell commands as child processes and stream their output.

By default each command runs in its own process group (session on POSIX),
so killing a handle takes down everything the shell started, not just the
shell itself. Termination sends SIGTERM to the group, waits `term_timeout`,
then SIGKILLs.

Interactive commands instead stay in the caller's foreground process group
and read the caller's stdin, so prompts and Ctrl+C reach them; killing one
signals the shell only.
"""
from __future__ import annotations

import asyncio
import codecs
import os
import signal
import subprocess
import sys
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import SpawnError
from .ui.console import get_console

IS_WINDOWS = sys.platform == "win32"

DEFAULT_TERM_TIMEOUT = 5.0
# how long output is still collected after the process itself exited
DRAIN_TIMEOUT = 0.5
EXIT_POLL = 0.05
READ_CHUNK = 4096

DataCallback = Callable[[str], None]


class ProcessHandle:
    """A live child process plus the tasks pumping its stdout/stderr."""

    def __init__(
        self,
        command: str,
        process: asyncio.subprocess.Process,
        *,
        on_data: Optional[DataCallback] = None,
        on_error: Optional[DataCallback] = None,
        term_timeout: float = DEFAULT_TERM_TIMEOUT,
        isolated: bool = True,
    ):
        self.command = command
        self.term_timeout = term_timeout
        self.isolated = isolated
        self._process = process
        self._pumps: List[asyncio.Task] = [
            asyncio.ensure_future(_pump(process.stdout, on_data)),
            asyncio.ensure_future(_pump(process.stderr, on_error)),
        ]

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def running(self) -> bool:
        return self._process.returncode is None

    async def wait(self) -> int:
        """
        Wait for the process to exit, then briefly for its remaining output.

        A backgrounded grandchild may keep the pipes open long after the
        shell is gone; its output keeps flowing but is not waited for.
        """
        # returncode is set on exit, while Process.wait() may also wait for pipe EOF
        exited = asyncio.ensure_future(self._process.wait())
        try:
            while self._process.returncode is None:
                await asyncio.wait({exited}, timeout=EXIT_POLL)
        finally:
            if not exited.done():
                exited.cancel()

        done, _pending = await asyncio.wait(self._pumps, timeout=DRAIN_TIMEOUT)
        for task in done:
            task.result()
        return self._process.returncode

    async def kill(self) -> None:
        """
        Terminate the process (its whole group unless interactive) and wait
        for it to go away.

        Safe to call on a process that already exited.
        """
        console = get_console()
        pid = self._process.pid

        if self._process.returncode is None:
            console.print_debug(f"terminating pid={pid}: {self.command}")
            self._signal(signal.SIGTERM)
            try:
                await asyncio.wait_for(self._process.wait(), timeout=self.term_timeout)
            except asyncio.TimeoutError:
                console.print_debug(f"pid={pid} ignored SIGTERM, killing")
                self._signal(_SIGKILL)
                await self._process.wait()
        elif self.isolated:
            # the shell is gone but background children may remain in its group
            self._signal(signal.SIGTERM)

        # grandchildren may still hold the pipes open for a moment
        _done, pending = await asyncio.wait(self._pumps, timeout=self.term_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        console.print_debug(f"pid={pid} exited (returncode={self._process.returncode})")

    def _signal(self, sig: int) -> None:
        if self.isolated:
            _signal_group(self._process, sig)
            return
        try:
            self._process.send_signal(sig)
        except ProcessLookupError:
            pass

    def __repr__(self) -> str:
        return f"ProcessHandle(pid={self.pid}, command={self.command!r})"


_SIGKILL = getattr(signal, "SIGKILL", signal.SIGTERM)


def _signal_group(process: asyncio.subprocess.Process, sig: int) -> None:
    try:
        if IS_WINDOWS:
            if process.returncode is not None:
                return
            if sig == signal.SIGTERM:
                process.terminate()
            else:
                process.kill()
            return
        # a new session leader's pid is also its group id
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass
    except OSError:
        # no group to signal; fall back to the direct child
        if process.returncode is None:
            process.send_signal(sig)


async def _pump(stream: Optional[asyncio.StreamReader], callback: Optional[DataCallback]) -> None:
    if stream is None:
        return
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = await stream.read(READ_CHUNK)
        if not chunk:
            tail = decoder.decode(b"", final=True)
            if tail and callback:
                callback(tail)
            return
        text = decoder.decode(chunk)
        if text and callback:
            callback(text)


def _build_subprocess_kwargs(env: Mapping[str, str] | None, isolated: bool) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    if env is not None:
        merged = os.environ.copy()
        merged.update(env)
        kwargs["env"] = merged
    if not isolated:
        return kwargs
    if IS_WINDOWS:
        kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
    else:
        kwargs["start_new_session"] = True
    return kwargs


async def spawn(
    command: str,
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    on_data: Optional[DataCallback] = None,
    on_error: Optional[DataCallback] = None,
    term_timeout: float = DEFAULT_TERM_TIMEOUT,
    interactive: bool = False,
    stdin: Any = None,
) -> ProcessHandle:
    """
    Start `command` through the system shell.

    stdout chunks go to `on_data`, stderr chunks to `on_error`, both decoded
    as UTF-8. Raises SpawnError if the process cannot be created (missing
    cwd, no shell, fork failure).

    A non-interactive command gets an empty stdin and its own process group.
    An interactive one reads `stdin` (the caller's own stdin when None) and
    shares the caller's terminal.
    """
    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=stdin if interactive else asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            **_build_subprocess_kwargs(env, isolated=not interactive),
        )
    except OSError as e:
        raise SpawnError(command=command, cwd=cwd, reason=str(e)) from e

    get_console().print_debug(f"spawned pid={process.pid} cwd={cwd or os.getcwd()}: {command}")
    return ProcessHandle(
        command,
        process,
        on_data=on_data,
        on_error=on_error,
        term_timeout=term_timeout,
        isolated=not interactive,
    )
