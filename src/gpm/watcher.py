# watcher.py
from __future__ import annotations

import os
import re
from fnmatch import fnmatch
from pathlib import PurePath
from typing import AsyncIterator, Iterable, Tuple

from watchfiles import Change, awatch

from .model import Pattern

# VCS metadata never triggers a re-run
DEFAULT_IGNORE: Tuple[Pattern, ...] = (
    re.compile(r"(^|[\\/])\.(git|hg|svn)([\\/]|$)"),
)


def merge_ignore(ignore: Pattern | Iterable[Pattern] | None) -> Tuple[Pattern, ...]:
    """Built-in ignores first, then the caller's (a single pattern is allowed)."""
    if ignore is None:
        return DEFAULT_IGNORE
    if isinstance(ignore, (str, re.Pattern)):
        return DEFAULT_IGNORE + (ignore,)
    return DEFAULT_IGNORE + tuple(ignore)


class IgnoreFilter:
    """
    watchfiles filter built from glob strings and compiled regexes.

    A glob matches when it matches the whole path, any single path
    component, or (given a `root`) the path relative to that root, so
    `node_modules` ignores the directory wherever it sits and `dist/*`
    ignores everything under `<root>/dist`. A `**/` segment may also match
    no directories at all. A regex matches when `search()` finds it
    anywhere in the absolute path.
    """

    def __init__(self, patterns: Iterable[Pattern], root: str | None = None):
        self.patterns = tuple(patterns)
        self.root = os.path.abspath(root) if root is not None else None

    def _relative(self, path: str) -> str | None:
        if self.root is None:
            return None
        try:
            rel = os.path.relpath(path, self.root)
        except ValueError:
            # different drive on Windows
            return None
        if rel == os.curdir or rel == os.pardir or rel.startswith(os.pardir + os.sep):
            return None
        return PurePath(rel).as_posix()

    def _glob_matches(self, pattern: str, path: str, parts: Tuple[str, ...], rel: str | None) -> bool:
        if fnmatch(path, pattern) or any(fnmatch(part, pattern) for part in parts):
            return True
        if rel is None:
            return False
        return fnmatch(rel, pattern) or ("**/" in pattern and fnmatch(rel, pattern.replace("**/", "")))

    def is_ignored(self, path: str) -> bool:
        parts = PurePath(path).parts
        rel = self._relative(path)
        for pattern in self.patterns:
            if isinstance(pattern, str):
                if self._glob_matches(pattern, path, parts, rel):
                    return True
            elif pattern.search(path):
                return True
        return False

    def __call__(self, change: Change, path: str) -> bool:
        return not self.is_ignored(path)


async def watch_changes(
    path: str,
    ignore: Iterable[Pattern] = DEFAULT_IGNORE,
    *,
    stop_event=None,
    step_ms: int = 50,
) -> AsyncIterator[str]:
    """
    Yield one changed path per filesystem event under `path`.

    watchfiles batches events itself; its batching window is kept short
    because debouncing belongs to the caller.
    """
    async for changes in awatch(
        path,
        watch_filter=IgnoreFilter(ignore, root=path),
        debounce=step_ms,
        step=step_ms,
        stop_event=stop_event,
        recursive=True,
    ):
        for _change, changed in sorted(changes, key=lambda c: c[1]):
            yield changed
