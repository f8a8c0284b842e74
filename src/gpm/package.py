# package.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict

import semver

from .config import GpmConfig
from .devtools import report
from .errors import ReleaseError
from .model import Job, PipelineResult
from .pipeline import CommandPipeline, Spawner
from .process import spawn
from .ui.console import get_console

# prompt_version(current, suggested) -> entered version
PromptVersion = Callable[[str, str], str]

# canonical package.json field order (sort-package-json)
PACKAGE_JSON_FIELDS = (
    "$schema",
    "name",
    "displayName",
    "version",
    "private",
    "description",
    "categories",
    "keywords",
    "homepage",
    "bugs",
    "repository",
    "funding",
    "license",
    "qna",
    "author",
    "maintainers",
    "contributors",
    "publisher",
    "sideEffects",
    "type",
    "imports",
    "exports",
    "main",
    "umd:main",
    "jsdelivr",
    "unpkg",
    "module",
    "source",
    "jsnext:main",
    "browser",
    "types",
    "typesVersions",
    "typings",
    "style",
    "example",
    "examplestyle",
    "assets",
    "bin",
    "man",
    "directories",
    "files",
    "workspaces",
    "binary",
    "scripts",
    "betterScripts",
    "contributes",
    "activationEvents",
    "husky",
    "simple-git-hooks",
    "pre-commit",
    "commitlint",
    "lint-staged",
    "config",
    "nodemonConfig",
    "browserify",
    "babel",
    "browserslist",
    "xo",
    "prettier",
    "eslintConfig",
    "eslintIgnore",
    "npmpkgjsonlint",
    "npmPackageJsonLintConfig",
    "npmpackagejsonlint",
    "release",
    "remarkConfig",
    "stylelint",
    "ava",
    "jest",
    "mocha",
    "nyc",
    "c8",
    "tap",
    "resolutions",
    "dependencies",
    "devDependencies",
    "dependenciesMeta",
    "peerDependencies",
    "peerDependenciesMeta",
    "optionalDependencies",
    "bundledDependencies",
    "bundleDependencies",
    "extensionPack",
    "extensionDependencies",
    "flat",
    "engines",
    "engineStrict",
    "languageName",
    "os",
    "cpu",
    "preferGlobal",
    "publishConfig",
    "icon",
    "badges",
    "galleryBanner",
    "preview",
    "markdown",
)


def sort_package_json(pkg: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of `pkg` with known fields in canonical order.

    Unknown fields (and known fields with falsy values) follow in their
    original order.
    """
    ordered: Dict[str, Any] = {}
    for key in PACKAGE_JSON_FIELDS:
        if pkg.get(key):
            ordered[key] = pkg[key]
    for key, value in pkg.items():
        if key not in ordered:
            ordered[key] = value
    return ordered


def _parse(version: str, what: str) -> semver.Version:
    text = str(version).strip()
    if text.startswith("v"):
        text = text[1:]
    try:
        return semver.Version.parse(text)
    except (TypeError, ValueError) as e:
        raise ReleaseError(f"Invalid {what}: {version}") from e


def bump_patch(version: str) -> str:
    """1.2.3 -> 1.2.4; a prerelease bumps to its release (1.3.0-rc.1 -> 1.3.0)."""
    v = _parse(version, "current version")
    if v.prerelease:
        return str(v.replace(prerelease=None, build=None))
    return str(v.bump_patch())


def validate_new_version(current: str, new_version: str) -> str:
    new_version = (new_version or "").strip()
    if not new_version:
        raise ReleaseError("New version is required")
    # build metadata does not take part in precedence
    parsed = _parse(new_version, "version")
    if parsed <= _parse(current, "current version"):
        raise ReleaseError(f"New version should be greater than {current}")
    return str(parsed)


class PackageManager:
    """Release flow: configured release commands, or a package.json tag-and-push."""

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

    async def _pipeline(self, command, *, strict: bool) -> PipelineResult:
        console = get_console()
        job = Job.of(command, cwd=str(self.cwd))
        console.print_command("release", job.describe())
        result = await CommandPipeline(
            job,
            on_data=console.write_data,
            on_start=console.print_step,
            check_exit=strict,
            spawner=self._spawner,
        ).run()
        report(result)
        return result

    async def release(self, *, prompt_version: PromptVersion, strict: bool = False) -> PipelineResult:
        configured = self.config.get("release")
        if configured:
            return await self._pipeline(configured, strict=strict)

        pkg_path = self.cwd / "package.json"
        if not pkg_path.exists():
            raise ReleaseError("Cannot find package.json in current path", {"cwd": self.cwd})

        pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
        current = pkg.get("version")
        if not current:
            raise ReleaseError("package.json has no version", {"path": pkg_path})

        new_version = validate_new_version(current, prompt_version(current, bump_patch(current)))
        pkg["version"] = new_version
        pkg_path.write_text(json.dumps(sort_package_json(pkg), indent=2) + "\n", encoding="utf-8")

        tag = f"v{new_version}"
        # a failed tag must not be pushed
        return await self._pipeline([f"git tag {tag}", f"git push origin {tag}"], strict=True)
