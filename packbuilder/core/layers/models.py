from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Layer:
    """A gzip tar written once into the working directory.

    ``destination`` is the in-image directory the archive populates.
    """

    path: Path
    destination: str
    kind: str = "buildpack"
