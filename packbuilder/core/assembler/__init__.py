from .assembler import BuilderAssembler
from .models import AssemblyState, BuildResult
from .workdir import working_directory

__all__ = [
    "AssemblyState",
    "BuildResult",
    "BuilderAssembler",
    "working_directory",
]
