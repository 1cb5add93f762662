"""
Runtime settings for packbuilder.

Environment variables:
    PACKBUILDER_HOME                 config home (default ~/.packbuilder)
    PACKBUILDER_CONFIG               stack config file (YAML, JSON or TOML)
    PACKBUILDER_REGISTRY_POLICY      "first" (default) or "strict"
    PACKBUILDER_INSECURE_REGISTRIES  comma separated hosts reached over http
    PACKBUILDER_DOCKER_BIN           docker CLI binary (default "docker")
    PACKBUILDER_LOG_LEVEL            log level for the CLI and server
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from packbuilder.core.errors import ConfigError
from packbuilder.core.stacks.models import RegistryPolicy


DEFAULT_INSECURE_REGISTRIES = ["localhost", "127.0.0.1"]


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


@dataclass(frozen=True)
class Settings:
    home: Path
    config_path: Path
    registry_policy: RegistryPolicy = RegistryPolicy.FIRST
    insecure_registries: List[str] = field(default_factory=lambda: list(DEFAULT_INSECURE_REGISTRIES))
    docker_bin: str = "docker"
    log_level: str = "INFO"

    @staticmethod
    def from_env(home: Optional[Path] = None) -> "Settings":
        home_dir = Path(home or _env("PACKBUILDER_HOME") or Path.home() / ".packbuilder")
        config_path = Path(_env("PACKBUILDER_CONFIG") or home_dir / "config.yaml")

        raw_policy = _env("PACKBUILDER_REGISTRY_POLICY", "first").lower()
        try:
            policy = RegistryPolicy(raw_policy)
        except ValueError as exc:
            allowed = ", ".join(p.value for p in RegistryPolicy)
            raise ConfigError(
                f"invalid PACKBUILDER_REGISTRY_POLICY {raw_policy!r}: expected one of {allowed}"
            ) from exc

        raw_insecure = _env("PACKBUILDER_INSECURE_REGISTRIES")
        insecure = [h.strip() for h in raw_insecure.split(",") if h.strip()] if raw_insecure else list(
            DEFAULT_INSECURE_REGISTRIES
        )

        return Settings(
            home=home_dir,
            config_path=config_path,
            registry_policy=policy,
            insecure_registries=insecure,
            docker_bin=_env("PACKBUILDER_DOCKER_BIN", "docker"),
            log_level=_env("PACKBUILDER_LOG_LEVEL", "INFO").upper(),
        )

    def is_insecure(self, registry: str) -> bool:
        host = registry.split(":", 1)[0]
        return registry in self.insecure_registries or host in self.insecure_registries
