from __future__ import annotations

import copy
import gzip
import hashlib
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Tuple

MEDIA_TYPE_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"
MEDIA_TYPE_CONFIG = "application/vnd.docker.container.image.v1+json"
MEDIA_TYPE_LAYER_GZIP = "application/vnd.docker.image.rootfs.diff.tar.gzip"
MEDIA_TYPE_LAYER_TAR = "application/vnd.oci.image.layer.v1.tar"

GZIP_MAGIC = b"\x1f\x8b"

Opener = Callable[[], BinaryIO]


def sha256_stream(fp: BinaryIO) -> Tuple[str, int]:
    h = hashlib.sha256()
    size = 0
    for chunk in iter(lambda: fp.read(1024 * 1024), b""):
        h.update(chunk)
        size += len(chunk)
    return "sha256:" + h.hexdigest(), size


def sha256_bytes(data: bytes) -> str:
    return "sha256:" + hashlib.sha256(data).hexdigest()


def canonical_json_bytes(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def is_gzip_file(path: Path) -> bool:
    with Path(path).open("rb") as fp:
        return fp.read(2) == GZIP_MAGIC


@dataclass(frozen=True)
class LayerBlob:
    digest: str
    diff_id: str
    size: int
    media_type: str
    opener: Opener = field(compare=False, repr=False)

    def open(self) -> BinaryIO:
        return self.opener()


def layer_from_file(path: Path) -> LayerBlob:
    """Describe a layer archive on disk; gzip and plain tar are both accepted."""
    p = Path(path)
    with p.open("rb") as fp:
        digest, size = sha256_stream(fp)

    if is_gzip_file(p):
        with gzip.open(p, "rb") as fp:
            diff_id, _ = sha256_stream(fp)
        media_type = MEDIA_TYPE_LAYER_GZIP
    else:
        diff_id = digest
        media_type = MEDIA_TYPE_LAYER_TAR

    return LayerBlob(
        digest=digest,
        diff_id=diff_id,
        size=size,
        media_type=media_type,
        opener=lambda: p.open("rb"),
    )


def _empty_config() -> Dict[str, Any]:
    return {
        "architecture": "amd64",
        "os": "linux",
        "config": {},
        "rootfs": {"type": "layers", "diff_ids": []},
        "history": [],
    }


@dataclass(frozen=True)
class Image:
    """Immutable image value: a config document plus ordered layer blobs.

    Every mutation returns a new ``Image``; the receiver is left untouched.
    """

    config: Dict[str, Any] = field(default_factory=_empty_config)
    layers: Tuple[LayerBlob, ...] = ()

    @staticmethod
    def empty() -> "Image":
        return Image()

    def append_layer(self, layer_path: Path, *, created_by: str = "") -> "Image":
        blob = layer_from_file(layer_path)

        cfg = copy.deepcopy(self.config)
        rootfs = cfg.setdefault("rootfs", {"type": "layers", "diff_ids": []})
        rootfs.setdefault("type", "layers")
        rootfs["diff_ids"] = list(rootfs.get("diff_ids") or []) + [blob.diff_id]

        history = list(cfg.get("history") or [])
        history.append({"created_by": created_by} if created_by else {})
        cfg["history"] = history

        return Image(config=cfg, layers=self.layers + (blob,))

    @property
    def diff_ids(self) -> list[str]:
        return list((self.config.get("rootfs") or {}).get("diff_ids") or [])

    def config_bytes(self) -> bytes:
        return canonical_json_bytes(self.config)

    def config_digest(self) -> str:
        return sha256_bytes(self.config_bytes())

    def manifest(self) -> Dict[str, Any]:
        cfg = self.config_bytes()
        return {
            "schemaVersion": 2,
            "mediaType": MEDIA_TYPE_MANIFEST,
            "config": {
                "mediaType": MEDIA_TYPE_CONFIG,
                "size": len(cfg),
                "digest": sha256_bytes(cfg),
            },
            "layers": [
                {"mediaType": b.media_type, "size": b.size, "digest": b.digest}
                for b in self.layers
            ],
        }

    def manifest_bytes(self) -> bytes:
        return canonical_json_bytes(self.manifest())

    def digest(self) -> str:
        return sha256_bytes(self.manifest_bytes())
