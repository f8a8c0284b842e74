# config.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigurationError

CONFIG_FILE = ".gpm.yml"

CommandValue = Union[str, List[str]]


class GpmSettings(BaseModel):
    """
    Shape of `.gpm.yml`: one optional command (or command list) per verb.

    Unknown keys are kept so a newer config does not break an older gpm.
    """
    model_config = ConfigDict(extra="allow")

    bootstrap: Optional[CommandValue] = None
    dev: Optional[CommandValue] = None
    build: Optional[CommandValue] = None
    test: Optional[CommandValue] = None
    fmt: Optional[CommandValue] = None
    run: Optional[CommandValue] = None
    watch: Optional[CommandValue] = None
    cli: Optional[CommandValue] = None
    install: Optional[CommandValue] = None
    clean: Optional[CommandValue] = None
    release: Optional[CommandValue] = None


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple)):
        return len(value) > 0
    return True


def resolve_command(
    override: str | Sequence[str] | None,
    configured: str | Sequence[str] | None,
    default: str | Sequence[str] | None = None,
) -> str | Sequence[str] | None:
    """
    Pick the command to run for a verb.

    Precedence: call-site override, then the configured value, then the
    built-in default. Empty strings and empty lists count as unset.
    """
    for candidate in (override, configured, default):
        if _is_set(candidate):
            return candidate
    return None


class GpmConfig:
    """
    Key-value view of `$PWD/.gpm.yml`.

    Must be `prepare()`d before use. Every `set()` rewrites the file with
    keys sorted; setting a falsy value removes the key.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else Path.cwd() / CONFIG_FILE
        self.is_ready = False
        self._config: Dict[str, Any] = {}

    def load(self) -> None:
        data: Any = {}
        if self.path.exists():
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}

        if not isinstance(data, dict):
            raise ConfigurationError(
                key=str(self.path),
                message=f"Config must be a mapping, got {type(data).__name__}",
            )

        try:
            GpmSettings.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(p) for p in first.get("loc", ())) or str(self.path)
            raise ConfigurationError(
                key=key,
                message=f"Invalid value in {self.path.name}: {first.get('msg')}",
            ) from e

        self._config = data
        self.is_ready = True

    def prepare(self) -> None:
        self.load()

    def _ensure(self) -> None:
        if not self.is_ready:
            raise ConfigurationError(key=str(self.path), message="config is not ready")

    def _sync(self) -> None:
        ordered = {k: self._config[k] for k in sorted(self._config)}
        self.path.write_text(
            yaml.safe_dump(ordered, sort_keys=False, default_flow_style=False, allow_unicode=True),
            encoding="utf-8",
        )

    def get(self, key: str) -> Any:
        self._ensure()
        value = self._config.get(key)
        return value if _is_set(value) else None

    def set(self, key: str, value: Any) -> None:
        self._ensure()
        if not value:
            self._config.pop(key, None)
        else:
            self._config[key] = value
        self._sync()

    def get_all(self) -> Dict[str, Any]:
        self._ensure()
        return dict(self._config)
