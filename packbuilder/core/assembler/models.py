from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class AssemblyState(str, Enum):
    INIT = "INIT"
    BASE_RESOLVED = "BASE_RESOLVED"
    ORDER_LAYER_APPLIED = "ORDER_LAYER_APPLIED"
    BUILDPACK_LAYER_APPLIED = "BUILDPACK_LAYER_APPLIED"
    PERSISTED = "PERSISTED"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class BuildResult:
    repo_name: str
    image_digest: str
    # in-image destinations, in the order the layers were appended
    layers: List[str] = field(default_factory=list)
    states: List[AssemblyState] = field(default_factory=list)
