from __future__ import annotations

from .models import Stack


DEFAULT_STACK_ID = "io.buildpacks.stacks.bionic"


def builtin_stacks() -> list[Stack]:
    return [
        Stack(
            id=DEFAULT_STACK_ID,
            build_images=["packs/build"],
            run_images=["packs/run"],
            description="Ubuntu 18.04 (bionic) base stack",
        ),
    ]
