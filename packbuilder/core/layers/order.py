from __future__ import annotations

from pathlib import Path
from typing import List, Sequence

import tomli_w

from packbuilder.core.archive import create_tgz_file
from packbuilder.core.errors import BuildIOError

from .models import Layer

BUILDPACKS_DIR = "/buildpacks"
ORDER_FILE = "order.toml"


def encode_order(groups: Sequence[Sequence[str]]) -> bytes:
    """Serialize ordering groups as the ``order.toml`` document."""
    doc = {"groups": [list(g) for g in groups]}
    return tomli_w.dumps(doc).encode("utf-8")


class OrderLayerGenerator:
    def generate(self, workdir: Path, groups: List[List[str]]) -> Layer:
        staging = Path(workdir) / "buildpack"
        layer_tar = Path(workdir) / "order.tgz"
        try:
            staging.mkdir()
            staging.chmod(0o755)
            order_file = staging / ORDER_FILE
            order_file.write_bytes(encode_order(groups))
            order_file.chmod(0o644)
            create_tgz_file(layer_tar, staging, BUILDPACKS_DIR, 0, 0)
        except OSError as exc:
            raise BuildIOError(f"failed to generate {ORDER_FILE} layer in {workdir}: {exc}") from exc
        return Layer(path=layer_tar, destination=f"{BUILDPACKS_DIR}/{ORDER_FILE}", kind="order")
