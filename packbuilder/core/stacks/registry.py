from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Dict, Iterable, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from packbuilder.core.errors import ConfigError

from .builtins import DEFAULT_STACK_ID, builtin_stacks
from .models import Stack, StackConfigFile

_log = logging.getLogger("packbuilder.stacks")


def _parse_config_text(path: Path, text: str) -> dict:
    suffix = path.suffix.lower()
    if suffix == ".json":
        return json.loads(text)
    if suffix == ".toml":
        return tomllib.loads(text)
    return yaml.safe_load(text) or {}


class StackConfig:
    """Stack lookup table.

    Resolution order:
      1) Built-in stacks (always present)
      2) Stacks from an optional config file, overriding built-ins by id
    """

    def __init__(self, stacks: Iterable[Stack] = (), *, default_stack_id: Optional[str] = None):
        self._stacks: Dict[str, Stack] = {s.id: s for s in builtin_stacks()}
        for s in stacks:
            self._stacks[s.id] = s
        self.default_stack_id = default_stack_id or DEFAULT_STACK_ID

    @classmethod
    def load(cls, path: Optional[Path]) -> "StackConfig":
        if path is None or not Path(path).exists():
            return cls()

        p = Path(path)
        try:
            raw = _parse_config_text(p, p.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f'failed to read stack config "{p}": {exc}') from exc
        except (ValueError, yaml.YAMLError) as exc:
            raise ConfigError(f'failed to parse stack config "{p}": {exc}') from exc

        if not isinstance(raw, dict):
            raise ConfigError(f'stack config "{p}" must be a mapping, got {type(raw).__name__}')

        try:
            parsed = StackConfigFile(**raw)
        except PydanticValidationError as exc:
            raise ConfigError(f'invalid stack config "{p}": {exc}') from exc

        _log.info("Loaded %d stacks from %s", len(parsed.stacks), p)
        return cls(parsed.stacks, default_stack_id=parsed.default_stack_id)

    def list_ids(self) -> list[str]:
        return sorted(self._stacks.keys())

    def get(self, stack_id: Optional[str]) -> Stack:
        sid = (stack_id or "").strip() or self.default_stack_id
        stack = self._stacks.get(sid)
        if stack is None:
            raise ConfigError(f'Missing stack: stack with id "{sid}" not found in stack config')
        return stack
