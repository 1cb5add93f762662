from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from packbuilder.core.errors import NotFoundError

DESCRIPTOR_FILE = "buildpack.toml"
FILE_SCHEME = "file://"


class _BuildpackSection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    version: str = ""


class _BuildpackToml(BaseModel):
    model_config = ConfigDict(extra="ignore")

    buildpack: _BuildpackSection = Field(default_factory=_BuildpackSection)


@dataclass(frozen=True)
class BuildpackDescriptor:
    id: str
    version: str
    directory: Path

    @property
    def descriptor_path(self) -> Path:
        return self.directory / DESCRIPTOR_FILE


def resolve_buildpack_dir(uri: str, builder_dir: Path) -> Path:
    """``file://`` is stripped; anything still relative is taken from ``builder_dir``."""
    raw = uri[len(FILE_SCHEME):] if uri.startswith(FILE_SCHEME) else uri
    p = Path(raw)
    if not p.is_absolute():
        p = Path(builder_dir) / p
    return p


def read_descriptor(directory: Path) -> BuildpackDescriptor:
    d = Path(directory)
    path = d / DESCRIPTOR_FILE
    if not d.is_dir():
        raise NotFoundError(f"buildpack directory not found: {d}")

    try:
        with path.open("rb") as fp:
            raw = tomllib.load(fp)
    except FileNotFoundError as exc:
        raise NotFoundError(f"reading {DESCRIPTOR_FILE} from buildpack: {path}: file not found") from exc
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise NotFoundError(f"reading {DESCRIPTOR_FILE} from buildpack: {path}: {exc}") from exc

    try:
        parsed = _BuildpackToml(**raw)
    except PydanticValidationError as exc:
        raise NotFoundError(f"reading {DESCRIPTOR_FILE} from buildpack: {path}: {exc}") from exc

    return BuildpackDescriptor(
        id=parsed.buildpack.id,
        version=parsed.buildpack.version,
        directory=d,
    )
