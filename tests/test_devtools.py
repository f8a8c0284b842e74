"""DevTools verb tests (fake spawner)."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FakeSpawner, FakeWatcher
from gpm.config import GpmConfig
from gpm.devtools import DevTools
from gpm.errors import ConfigurationError
from gpm.model import PipelineFailure


def _devtools(tmp_path: Path, spawner: FakeSpawner, config_text: str | None = None) -> DevTools:
    if config_text is not None:
        (tmp_path / ".gpm.yml").write_text(config_text)
    devtools = DevTools(cwd=tmp_path, spawner=spawner)
    devtools.prepare()
    return devtools


class TestOneShotVerbs:

    @pytest.mark.asyncio
    async def test_builtin_default(self, tmp_path: Path, spawner: FakeSpawner):
        result = await _devtools(tmp_path, spawner).run_verb("build")

        assert result.ok
        assert spawner.spawned() == ["yarn build"]

    @pytest.mark.asyncio
    async def test_configured_command_beats_default(self, tmp_path: Path, spawner: FakeSpawner):
        devtools = _devtools(tmp_path, spawner, "test: pytest -q\n")

        await devtools.run_verb("test")

        assert spawner.spawned() == ["pytest -q"]

    @pytest.mark.asyncio
    async def test_override_beats_config(self, tmp_path: Path, spawner: FakeSpawner):
        devtools = _devtools(tmp_path, spawner, "test: pytest -q\n")

        await devtools.run_verb("test", "tox")

        assert spawner.spawned() == ["tox"]

    @pytest.mark.asyncio
    async def test_command_list_runs_as_pipeline(self, tmp_path: Path):
        spawner = FakeSpawner(fail_on={"second"})
        devtools = _devtools(tmp_path, spawner, "build:\n  - first\n  - second\n  - third\n")

        result = await devtools.run_verb("build")

        assert isinstance(result, PipelineFailure)
        assert spawner.spawned() == ["first", "second"]

    @pytest.mark.asyncio
    async def test_strict_stops_on_non_zero_exit(self, tmp_path: Path):
        spawner = FakeSpawner(exit_codes={"lint": 1})
        devtools = _devtools(tmp_path, spawner)

        result = await devtools.run_verb("build", ["lint", "compile"], strict=True)

        assert not result.ok
        assert spawner.spawned() == ["lint"]

    @pytest.mark.asyncio
    async def test_unknown_verb_without_command_raises(self, tmp_path: Path, spawner: FakeSpawner):
        with pytest.raises(ConfigurationError):
            await _devtools(tmp_path, spawner).run_verb("deploy")

    @pytest.mark.asyncio
    async def test_sync_pulls(self, tmp_path: Path, spawner: FakeSpawner):
        await _devtools(tmp_path, spawner).sync()

        assert spawner.spawned() == ["git pull --progress"]
        assert spawner.interactive == [True]


class TestDev:

    @pytest.mark.asyncio
    async def test_dev_runs_list_in_parallel(self, tmp_path: Path, spawner: FakeSpawner):
        devtools = _devtools(tmp_path, spawner)

        result = await devtools.dev(["api", "web"])

        assert result.ok
        # both spawned before either was waited on
        assert spawner.log[:2] == [("spawn", "api"), ("spawn", "web")]
        assert spawner.interactive == [True, True]

    @pytest.mark.asyncio
    async def test_dev_reports_spawn_failure(self, tmp_path: Path):
        spawner = FakeSpawner(fail_on={"web"})

        result = await _devtools(tmp_path, spawner).dev(["api", "web"])

        assert isinstance(result, PipelineFailure)
        assert result.command == "web"


class TestFmt:

    @pytest.mark.asyncio
    async def test_default_targets_src(self, tmp_path: Path, spawner: FakeSpawner):
        await _devtools(tmp_path, spawner).fmt()

        (command,) = spawner.spawned()
        assert "prettier" in command
        assert "'src/**/*.{ts,tsx,js,jsx,json,md}'" in command

    @pytest.mark.asyncio
    async def test_monorepo_targets_packages(self, tmp_path: Path, spawner: FakeSpawner):
        (tmp_path / "packages").mkdir()

        await _devtools(tmp_path, spawner).fmt()

        assert "packages/**/src/" in spawner.spawned()[0]


class TestClean:

    @pytest.mark.asyncio
    async def test_confirmed_clean_removes_build_dirs(self, tmp_path: Path, spawner: FakeSpawner):
        for name in ("node_modules", "dist"):
            (tmp_path / name).mkdir()
        (tmp_path / "src").mkdir()

        removed = await _devtools(tmp_path, spawner).clean(confirm=lambda _msg: True)

        assert sorted(p.name for p in removed) == ["dist", "node_modules"]
        assert not (tmp_path / "dist").exists()
        assert (tmp_path / "src").exists()

    @pytest.mark.asyncio
    async def test_declined_clean_keeps_dirs(self, tmp_path: Path, spawner: FakeSpawner):
        (tmp_path / "dist").mkdir()

        removed = await _devtools(tmp_path, spawner).clean(confirm=lambda _msg: False)

        assert removed == []
        assert (tmp_path / "dist").exists()

    @pytest.mark.asyncio
    async def test_configured_clean_command_runs_first(self, tmp_path: Path, spawner: FakeSpawner):
        prompts = []
        devtools = _devtools(tmp_path, spawner, "clean: rm -rf .cache\n")

        await devtools.clean(confirm=lambda msg: prompts.append(msg) or False)

        assert spawner.spawned() == ["rm -rf .cache"]
        assert prompts == ["Confirm to remove node_modules/dist/lib ?"]


class TestWatch:

    def test_watch_without_command_fails_before_watching(self, tmp_path: Path, spawner: FakeSpawner):
        watcher = FakeWatcher()
        devtools = _devtools(tmp_path, spawner)

        with pytest.raises(ConfigurationError):
            devtools.watch_runner(watcher=watcher)

        assert watcher.calls == []
        assert spawner.log == []

    @pytest.mark.asyncio
    async def test_watch_uses_configured_command(self, tmp_path: Path, spawner: FakeSpawner):
        watcher = FakeWatcher()
        watcher.push(None)
        devtools = _devtools(tmp_path, spawner, "watch: yarn serve\n")

        runner = await devtools.watch(watcher=watcher, delay=0.01)

        assert runner.job.commands == ("yarn serve",)
        assert runner.job.context == str(tmp_path.resolve())
        assert spawner.spawned() == ["yarn serve"]
        # restarted processes run detached from the terminal
        assert spawner.interactive == [False]
