"""Console output formatting utilities for gpm."""

from __future__ import annotations

import sys
from typing import Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_command(self, verb: str, command: str, context: Optional[str] = None) -> None:
        """Print the command a verb is about to run."""
        if context:
            print(f"[{verb}] command: {command} in context({context})")
        else:
            print(f"[{verb}] command: {command}")

    def print_step(self, index: int, command: str) -> None:
        """Print pipeline step start message."""
        print(f"▶ [{index + 1}] {command}", flush=True)

    def print_banner(self, message: str) -> None:
        """Print a blank line followed by a message (watch re-runs)."""
        print()
        print(message, flush=True)

    def write_data(self, text: str) -> None:
        """Forward raw child stdout."""
        sys.stdout.write(text)
        sys.stdout.flush()

    def write_error(self, text: str) -> None:
        """Forward raw child stderr."""
        sys.stderr.write(text)
        sys.stderr.flush()

    def print_failure(
        self,
        command: str,
        reason: str,
        exit_code: Optional[int] = None,
    ) -> None:
        """
        Print pipeline failure message.

        Args:
            command: The command that stopped the pipeline
            reason: Failure reason/error message
            exit_code: Optional exit code
        """
        print(f"FAILED: {command}", file=sys.stderr)
        if exit_code is not None:
            print(f"Exit code: {exit_code}", file=sys.stderr)
        if self.debug:
            print(f"Error details: {reason}", file=sys.stderr)
        else:
            # first line only outside debug mode
            error_line = reason.split('\n')[0] if reason else "Unknown error"
            print(f"Error: {error_line}", file=sys.stderr)

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message, flush=True)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
