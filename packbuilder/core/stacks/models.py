from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class RegistryPolicy(str, Enum):
    # no build image on the target registry: use the first declared one
    FIRST = "first"
    # no build image on the target registry: fail
    STRICT = "strict"


class Stack(BaseModel):
    id: str
    build_images: List[str] = Field(default_factory=list)
    run_images: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class StackConfigFile(BaseModel):
    default_stack_id: Optional[str] = None
    stacks: List[Stack] = Field(default_factory=list)
