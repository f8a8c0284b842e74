"""CLI tests through click's CliRunner."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from gpm.cli import cli

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@posix_only
def test_build_with_exec_override(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli, ["build", "-e", "echo bui$((1))lt"])

    assert result.exit_code == 0, result.output
    assert "[build] command: echo bui$((1))lt" in result.output
    assert "bui1lt" in result.output


@posix_only
def test_repeated_exec_runs_in_order(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli, ["test", "-e", "echo A$((1))", "-e", "echo B$((2))"])

    assert result.exit_code == 0, result.output
    assert result.output.index("A1") < result.output.index("B2")


@posix_only
def test_non_zero_exit_is_lenient_by_default(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli, ["build", "-e", "false"])

    assert result.exit_code == 0


@posix_only
def test_strict_fails_on_non_zero_exit(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli, ["build", "--strict", "-e", "false", "-e", "echo ZZ$((1+1))"])

    assert result.exit_code == 1
    assert "ZZ2" not in result.output


def test_watch_without_command_fails(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        result = runner.invoke(cli, ["watch"])

    assert result.exit_code == 1
    assert "Watch no command found" in result.output


def test_invalid_config_is_reported(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path(".gpm.yml").write_text("build:\n  nested: true\n")
        result = runner.invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "ConfigurationError" in result.output


def test_config_set_and_get(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        set_result = runner.invoke(cli, ["config", "set", "watch", "yarn api", "yarn web"])
        get_result = runner.invoke(cli, ["config", "get", "watch"])
        stored = yaml.safe_load(Path(".gpm.yml").read_text())

    assert set_result.exit_code == 0, set_result.output
    assert get_result.output.strip() == "yarn api,yarn web"
    assert stored == {"watch": ["yarn api", "yarn web"]}


def test_config_set_without_value_removes_key(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path(".gpm.yml").write_text("build: make\ntest: pytest\n")
        runner.invoke(cli, ["config", "set", "build"])
        stored = yaml.safe_load(Path(".gpm.yml").read_text())

    assert stored == {"test": "pytest"}


def test_clean_declined_keeps_dirs(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path("dist").mkdir()
        result = runner.invoke(cli, ["clean"], input="n\n")
        still_there = Path("dist").exists()

    assert result.exit_code == 0, result.output
    assert still_there


def test_clean_yes_removes_dirs(runner: CliRunner, tmp_path: Path):
    with runner.isolated_filesystem(temp_dir=tmp_path):
        Path("dist").mkdir()
        result = runner.invoke(cli, ["clean", "--yes"])
        gone = not Path("dist").exists()

    assert result.exit_code == 0, result.output
    assert gone
    assert "removed" in result.output
