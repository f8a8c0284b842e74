# cli.py
from __future__ import annotations

import asyncio
import sys
from typing import Any, Awaitable, Callable, Optional, Sequence

import click

from gpm.config import GpmConfig
from gpm.devtools import DevTools
from gpm.errors import GpmError, ReleaseError
from gpm.model import PipelineFailure, PipelineResult
from gpm.package import PackageManager, validate_new_version
from gpm.ui.console import Console, get_console, set_console


def _command_arg(values: Sequence[str]) -> str | list[str] | None:
    """-e given zero, one or many times -> None, a command, or a command list."""
    if not values:
        return None
    if len(values) == 1:
        return values[0]
    return list(values)


def _execute(ctx: click.Context, action: Callable[[], Awaitable[Any]]) -> Any:
    """
    Run an async action with the CLI's error policy.

    GpmError -> structured error, exit 1. A failed pipeline -> exit 1.
    Ctrl-C -> exit 130.
    """
    console = get_console()
    try:
        result = asyncio.run(action())
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except GpmError as e:
        console.print_error(type(e).__name__, str(e))
        if ctx.obj.get("debug", False):
            console.print_exception(e)
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    if isinstance(result, PipelineFailure):
        sys.exit(1)
    return result


def _devtools() -> DevTools:
    devtools = DevTools()
    devtools.prepare()
    return devtools


exec_option = click.option(
    "-e", "--exec", "exec_", multiple=True,
    help="Command to run instead of the configured one (repeat for a list)",
)
strict_option = click.option(
    "--strict/--no-strict", default=False, show_default=True,
    help="Treat a non-zero exit code as a failure and stop the pipeline",
)
context_option = click.option(
    "--context", default=None, help="Working directory for the command(s)",
)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """gpm — project workflow commands (build, test, watch, release, ...)."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


ONE_SHOT_HELP = {
    "bootstrap": "Bootstrap the project (default: yarn bootstrap).",
    "build": "Build the project (default: yarn build).",
    "test": "Run the tests (default: yarn test).",
    "run": "Run the project in production mode (default: yarn prod).",
    "cli": "Run the project CLI (default: yarn cli).",
    "install": "Install dependencies (default: yarn).",
}


def _register_one_shot(verb: str) -> None:
    @cli.command(verb, help=ONE_SHOT_HELP[verb])
    @exec_option
    @context_option
    @strict_option
    @click.pass_context
    def command(ctx, exec_, context, strict):
        async def action() -> PipelineResult:
            return await _devtools().run_verb(
                verb, _command_arg(exec_), context=context, strict=strict,
            )

        _execute(ctx, action)


for _verb in ONE_SHOT_HELP:
    _register_one_shot(_verb)


@cli.command()
@exec_option
@context_option
@click.pass_context
def dev(ctx, exec_, context):
    """Start dev server(s); several commands run in parallel."""
    async def action() -> PipelineResult:
        return await _devtools().dev(_command_arg(exec_), context=context)

    _execute(ctx, action)


@cli.command()
@exec_option
@strict_option
@click.pass_context
def fmt(ctx, exec_, strict):
    """Format sources (default: prettier over src/)."""
    async def action() -> PipelineResult:
        return await _devtools().fmt(_command_arg(exec_), strict=strict)

    _execute(ctx, action)


@cli.command()
@exec_option
@click.option("--path", default=None, help="Path to watch (defaults to the context)")
@context_option
@click.option("--ignore", multiple=True, help="Glob to ignore (repeatable)")
@click.option("--delay", default=1.0, show_default=True, type=float, help="Debounce window in seconds")
@click.pass_context
def watch(ctx, exec_, path, context, ignore, delay):
    """Re-run command(s) whenever files change."""
    async def action() -> None:
        await _devtools().watch(
            _command_arg(exec_),
            path=path,
            context=context,
            ignore=list(ignore),
            delay=delay,
        )

    _execute(ctx, action)


@cli.command()
@strict_option
@click.pass_context
def sync(ctx, strict):
    """Pull the latest changes (git pull --progress)."""
    async def action() -> PipelineResult:
        return await _devtools().sync(strict=strict)

    _execute(ctx, action)


@cli.command()
@exec_option
@click.option("--yes", "-y", is_flag=True, default=False, help="Do not ask before removing directories")
@strict_option
@click.pass_context
def clean(ctx, exec_, yes, strict):
    """Run the clean command, then remove node_modules/dist/lib."""
    def confirm(message: str) -> bool:
        return yes or click.confirm(message, default=False)

    async def action():
        return await _devtools().clean(_command_arg(exec_), confirm=confirm, strict=strict)

    removed = _execute(ctx, action)
    for path in removed or []:
        get_console().print_info(f"removed {path}")


def _prompt_version(current: str, suggested: str) -> str:
    def check(value: str) -> str:
        try:
            return validate_new_version(current, value)
        except ReleaseError as e:
            raise click.BadParameter(str(e))

    return click.prompt("New version ?", default=suggested, value_proc=check)


@cli.command()
@strict_option
@click.pass_context
def release(ctx, strict):
    """Run the release command(s), or bump package.json and push a tag."""
    async def action() -> PipelineResult:
        manager = PackageManager()
        manager.prepare()
        return await manager.release(prompt_version=_prompt_version, strict=strict)

    _execute(ctx, action)


@cli.group()
def config():
    """Read or write .gpm.yml."""


def _config_store() -> GpmConfig:
    store = GpmConfig()
    try:
        store.prepare()
    except GpmError as e:
        get_console().print_error("Invalid config", str(e))
        sys.exit(1)
    return store


@config.command("get")
@click.argument("key", required=False)
def config_get(key: Optional[str]):
    """Print one key, or the whole config."""
    store = _config_store()
    console = get_console()
    if key is None:
        for k, v in sorted(store.get_all().items()):
            console.print_info(f"{k}: {v}")
        return
    value = store.get(key)
    if value is not None:
        console.print_info(value if isinstance(value, str) else ",".join(value))


@config.command("set")
@click.argument("key")
@click.argument("commands", nargs=-1)
def config_set(key: str, commands: tuple[str, ...]):
    """Set KEY to one or more commands; no commands removes KEY."""
    _config_store().set(key, _command_arg(commands))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
