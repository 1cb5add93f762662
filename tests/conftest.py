from pathlib import Path
from typing import Dict, List, Optional

import pytest
import tomli_w

from packbuilder.core.errors import DaemonError
from packbuilder.core.images.image import Image
from packbuilder.core.images.ports import Daemon, Images, RepoStore


class FakeDaemon(Daemon):
    def __init__(self, *, pull_error: Optional[str] = None):
        self.pulled: List[str] = []
        self.pull_error = pull_error

    def pull_image(self, ref: str) -> None:
        self.pulled.append(ref)
        if self.pull_error:
            raise DaemonError(self.pull_error)

    def inspect_image(self, ref: str):
        return {"Id": "sha256:" + "0" * 64, "RepoTags": [ref]}

    def save_image(self, ref: str, dest: Path) -> Path:
        raise NotImplementedError

    def load_image(self, archive: Path) -> str:
        raise NotImplementedError


class FakeRepoStore(RepoStore):
    def __init__(self, name: str = "fake/repo", *, error: Optional[Exception] = None):
        self.name = name
        self.error = error
        self.writes: List[Image] = []
        # layer archive bytes captured while the working directory still exists
        self.layer_bytes: List[bytes] = []

    def write(self, image: Image) -> str:
        if self.error is not None:
            raise self.error
        self.writes.append(image)
        self.layer_bytes = []
        for blob in image.layers:
            with blob.open() as fp:
                self.layer_bytes.append(fp.read())
        return image.digest()


class FakeImages(Images):
    def __init__(self, *, base: Optional[Image] = Image.empty(), store: Optional[FakeRepoStore] = None):
        self.base = base
        self.store = store or FakeRepoStore()
        self.reads: List[tuple] = []
        self.stores: List[tuple] = []

    def read_image(self, repo_name: str, use_daemon: bool) -> Optional[Image]:
        self.reads.append((repo_name, use_daemon))
        return self.base

    def repo_store(self, repo_name: str, use_daemon: bool) -> RepoStore:
        self.stores.append((repo_name, use_daemon))
        self.store.name = repo_name
        return self.store


def make_buildpack_dir(root: Path, dirname: str, *, bp_id: str, version: str, files: Optional[Dict[str, str]] = None) -> Path:
    d = root / dirname
    (d / "bin").mkdir(parents=True, exist_ok=True)
    (d / "buildpack.toml").write_text(
        tomli_w.dumps({"buildpack": {"id": bp_id, "version": version, "name": bp_id.title()}}),
        encoding="utf-8",
    )
    for rel, content in (files or {"bin/detect": "#!/bin/sh\nexit 0\n", "bin/build": "#!/bin/sh\nexit 0\n"}).items():
        p = d / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        if rel.startswith("bin/"):
            p.chmod(0o755)
    return d


def write_builder_toml(root: Path, buildpacks: List[Dict[str, str]], groups: List[List[str]]) -> Path:
    p = root / "builder.toml"
    p.write_text(tomli_w.dumps({"groups": groups, "buildpacks": buildpacks}), encoding="utf-8")
    return p


@pytest.fixture()
def fake_daemon():
    return FakeDaemon()


@pytest.fixture()
def fake_images():
    return FakeImages()


@pytest.fixture()
def java_builder(tmp_path: Path):
    """builder.toml with one buildpack "java" at ./bp-java, version 1.0.0."""
    root = tmp_path / "builder"
    root.mkdir()
    make_buildpack_dir(root, "bp-java", bp_id="java", version="1.0.0")
    return write_builder_toml(root, [{"id": "java", "uri": "./bp-java"}], [["java"]])
