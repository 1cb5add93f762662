"""
docker-archive format (``docker save`` / ``docker load``).

Layout:
    manifest.json        [{"Config": "<file>", "RepoTags": [...], "Layers": ["<file>", ...]}]
    <config file>        image config JSON
    <layer files>        layer tars, plain or gzip compressed
"""
from __future__ import annotations

import io
import json
import tarfile
from pathlib import Path
from typing import Dict, List

from packbuilder.core.errors import BuildIOError, DaemonError

from .image import Image, layer_from_file


def read_docker_archive(archive: Path, extract_dir: Path) -> Image:
    """Turn a ``docker save`` tar into an ``Image`` whose layers live in ``extract_dir``."""
    extract_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, mode="r") as tf:
            manifest_fp = tf.extractfile("manifest.json")
            if manifest_fp is None:
                raise DaemonError(f"manifest.json missing from image archive {archive}")
            entries = json.loads(manifest_fp.read().decode("utf-8"))
            if not entries:
                raise DaemonError(f"image archive {archive} contains no images")
            entry = entries[0]

            config_fp = tf.extractfile(entry["Config"])
            if config_fp is None:
                raise DaemonError(f"config {entry['Config']} missing from image archive {archive}")
            config = json.loads(config_fp.read().decode("utf-8"))

            blobs = []
            for i, member_name in enumerate(entry.get("Layers") or []):
                src = tf.extractfile(member_name)
                if src is None:
                    raise DaemonError(f"layer {member_name} missing from image archive {archive}")
                dest = extract_dir / f"layer-{i:04d}"
                with dest.open("wb") as out:
                    for chunk in iter(lambda: src.read(1024 * 1024), b""):
                        out.write(chunk)
                blobs.append(layer_from_file(dest))
    except (OSError, tarfile.TarError, KeyError, ValueError) as exc:
        raise DaemonError(f"failed to read image archive {archive}: {exc}") from exc

    return Image(config=config, layers=tuple(blobs))


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    ti = tarfile.TarInfo(name)
    ti.size = len(data)
    ti.mode = 0o644
    ti.mtime = 0
    tar.addfile(ti, io.BytesIO(data))


def write_docker_archive(image: Image, repo_tag: str, dest: Path) -> Path:
    """Write ``image`` as a ``docker load``-able tar tagged ``repo_tag``."""
    config_name = image.config_digest().split(":", 1)[1] + ".json"
    layer_names: List[str] = []
    written: Dict[str, str] = {}

    try:
        with tarfile.open(dest, mode="w", format=tarfile.PAX_FORMAT) as tar:
            _add_bytes(tar, config_name, image.config_bytes())

            for blob in image.layers:
                name = written.get(blob.digest)
                if name is None:
                    name = f"{blob.digest.split(':', 1)[1]}/layer.tar"
                    ti = tarfile.TarInfo(name)
                    ti.size = blob.size
                    ti.mode = 0o644
                    ti.mtime = 0
                    with blob.open() as fp:
                        tar.addfile(ti, fp)
                    written[blob.digest] = name
                layer_names.append(name)

            manifest = [{"Config": config_name, "RepoTags": [repo_tag], "Layers": layer_names}]
            _add_bytes(tar, "manifest.json", json.dumps(manifest, sort_keys=True).encode("utf-8"))
    except OSError as exc:
        raise BuildIOError(f"failed to write image archive {dest}: {exc}") from exc

    return Path(dest)
