"""Pytest configuration and fakes shared by the test modules."""

from __future__ import annotations

import asyncio
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import pytest

from gpm.errors import SpawnError
from gpm.ui.console import Console, set_console


class FakeHandle:
    """Stands in for ProcessHandle; records wait/kill in the shared log."""

    def __init__(self, command: str, log: List[Tuple[str, str]], *, exit_code: int = 0, long_running: bool = False):
        self.command = command
        self.exit_code = exit_code
        self.killed = False
        self._log = log
        self._done = asyncio.Event()
        if not long_running:
            self._done.set()

    @property
    def running(self) -> bool:
        return not self._done.is_set()

    async def wait(self) -> int:
        await self._done.wait()
        self._log.append(("exit", self.command))
        return self.exit_code

    async def kill(self) -> None:
        self._log.append(("kill", self.command))
        await asyncio.sleep(0)
        self.killed = True
        self._done.set()
        self._log.append(("killed", self.command))


class FakeSpawner:
    """
    Async spawner double.

    Every spawn is appended to `log` as ("spawn", command); commands listed in
    `fail_on` raise SpawnError instead of starting.
    """

    def __init__(
        self,
        *,
        fail_on: Iterable[str] = (),
        outputs: Optional[Dict[str, str]] = None,
        exit_codes: Optional[Dict[str, int]] = None,
        long_running: bool = False,
    ):
        self.fail_on = set(fail_on)
        self.outputs = outputs or {}
        self.exit_codes = exit_codes or {}
        self.long_running = long_running
        self.log: List[Tuple[str, str]] = []
        self.handles: List[FakeHandle] = []
        self.cwds: List[Optional[str]] = []
        self.interactive: List[bool] = []

    async def __call__(self, command: str, *, cwd=None, on_data=None, on_error=None, interactive=False, **_):
        self.log.append(("spawn", command))
        self.cwds.append(cwd)
        self.interactive.append(interactive)
        if command in self.fail_on:
            raise SpawnError(command=command, cwd=cwd, reason="boom")
        if command in self.outputs and on_data is not None:
            on_data(self.outputs[command])
        handle = FakeHandle(
            command,
            self.log,
            exit_code=self.exit_codes.get(command, 0),
            long_running=self.long_running,
        )
        self.handles.append(handle)
        return handle

    def spawned(self) -> List[str]:
        return [cmd for kind, cmd in self.log if kind == "spawn"]


class FakeWatcher:
    """
    Watcher double fed through a queue; `None` ends the stream.

    `on_start` runs when the runner starts iterating, i.e. right after the
    first cycle has been started.
    """

    def __init__(self, on_start: Optional[Callable[[], None]] = None):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.calls: List[Tuple[str, tuple]] = []
        self.on_start = on_start

    def push(self, *items: Optional[str]) -> None:
        for item in items:
            self.queue.put_nowait(item)

    def __call__(self, path: str, ignore: tuple):
        self.calls.append((path, ignore))
        return self._events()

    async def _events(self):
        if self.on_start is not None:
            self.on_start()
        while True:
            item = await self.queue.get()
            if item is None:
                return
            yield item


@pytest.fixture(autouse=True)
def quiet_console():
    """Reset the global console between tests."""
    set_console(Console(debug=False))
    yield


@pytest.fixture
def spawner() -> FakeSpawner:
    return FakeSpawner()
