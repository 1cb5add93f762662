import gzip
import io
import logging
import tarfile
import tomllib
from pathlib import Path

import pytest

from packbuilder.core.assembler import AssemblyState, BuilderAssembler
from packbuilder.core.errors import NotFoundError, RegistryError, ValidationError
from packbuilder.core.images.image import Image
from packbuilder.core.spec.models import BuilderConfig, BuildpackRef

from conftest import FakeRepoStore, make_buildpack_dir


class RecordingAssembler(BuilderAssembler):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.appended = []

    def _append(self, image, layer):
        self.appended.append(layer.destination)
        return super()._append(image, layer)


def _config(builder_dir: Path, buildpacks, groups, store=None, base=Image.empty()):
    return BuilderConfig(
        repo_name="acme/builder",
        buildpacks=[BuildpackRef(**bp) for bp in buildpacks],
        groups=groups,
        builder_dir=builder_dir,
        base_image=base,
        repo=store if store is not None else FakeRepoStore("acme/builder"),
    )


def _members(layer_bytes: bytes) -> dict:
    out = {}
    with tarfile.open(fileobj=io.BytesIO(gzip.decompress(layer_bytes)), mode="r") as tf:
        for m in tf.getmembers():
            out[m.name] = tf.extractfile(m).read() if m.isfile() else None
    return out


def test_java_builder_end_to_end(tmp_path: Path):
    make_buildpack_dir(tmp_path, "bp-java", bp_id="java", version="1.0.0")
    store = FakeRepoStore("acme/builder")
    cfg = _config(tmp_path, [{"id": "java", "uri": "./bp-java"}], [["java"]], store=store)

    result = BuilderAssembler(workdir_parent=tmp_path).create(cfg)

    assert result.repo_name == "acme/builder"
    assert result.layers == ["/buildpacks/order.toml", "/buildpacks/java/1.0.0"]
    assert result.states[0] == AssemblyState.INIT
    assert result.states[-2:] == [AssemblyState.PERSISTED, AssemblyState.DONE]

    assert len(store.writes) == 1
    image = store.writes[0]
    assert len(image.layers) == 2
    assert result.image_digest == image.digest()

    order = _members(store.layer_bytes[0])
    assert tomllib.loads(order["buildpacks/order.toml"].decode("utf-8")) == {"groups": [["java"]]}

    bp = _members(store.layer_bytes[1])
    assert bp["buildpacks/java/1.0.0/bin/build"] == (tmp_path / "bp-java" / "bin" / "build").read_bytes()
    assert "buildpacks/java/1.0.0/buildpack.toml" in bp


def test_layers_follow_declaration_order(tmp_path: Path):
    make_buildpack_dir(tmp_path, "zeta", bp_id="zeta", version="2.0")
    make_buildpack_dir(tmp_path, "alpha", bp_id="alpha", version="0.1")
    make_buildpack_dir(tmp_path, "mid", bp_id="mid", version="1.1")
    buildpacks = [
        {"id": "zeta", "uri": "zeta"},
        {"id": "alpha", "uri": "alpha"},
        {"id": "mid", "uri": "file://" + str(tmp_path / "mid")},
    ]
    base = Image.empty()
    store = FakeRepoStore()
    result = BuilderAssembler(workdir_parent=tmp_path).create(
        _config(tmp_path, buildpacks, [["zeta", "alpha"], ["mid"]], store=store, base=base)
    )

    assert result.layers == [
        "/buildpacks/order.toml",
        "/buildpacks/zeta/2.0",
        "/buildpacks/alpha/0.1",
        "/buildpacks/mid/1.1",
    ]
    assert len(store.writes[0].layers) == 4
    # base image is never mutated
    assert base.layers == ()


def test_id_mismatch_fails_without_write(tmp_path: Path):
    make_buildpack_dir(tmp_path, "bp-java", bp_id="jvm", version="1.0.0")
    store = FakeRepoStore()
    cfg = _config(tmp_path, [{"id": "java", "uri": "./bp-java"}], [["java"]], store=store)

    with pytest.raises(ValidationError) as ei:
        BuilderAssembler(workdir_parent=tmp_path).create(cfg)

    assert '"java"' in str(ei.value)
    assert "jvm" in str(ei.value)
    assert store.writes == []


def test_failure_at_second_buildpack_stops_appending(tmp_path: Path):
    make_buildpack_dir(tmp_path, "ok", bp_id="ok", version="1.0")
    make_buildpack_dir(tmp_path, "bad", bp_id="other", version="1.0")
    make_buildpack_dir(tmp_path, "never", bp_id="never", version="1.0")
    store = FakeRepoStore()
    assembler = RecordingAssembler(workdir_parent=tmp_path)
    cfg = _config(
        tmp_path,
        [{"id": "ok", "uri": "ok"}, {"id": "bad", "uri": "bad"}, {"id": "never", "uri": "never"}],
        [["ok", "bad", "never"]],
        store=store,
    )

    with pytest.raises(ValidationError):
        assembler.create(cfg)

    assert assembler.appended == ["/buildpacks/order.toml", "/buildpacks/ok/1.0"]
    assert store.writes == []


def test_missing_buildpack_dir_is_not_found(tmp_path: Path):
    cfg = _config(tmp_path, [{"id": "java", "uri": "./missing"}], [["java"]])
    with pytest.raises(NotFoundError):
        BuilderAssembler(workdir_parent=tmp_path).create(cfg)


def test_missing_base_image(tmp_path: Path):
    cfg = _config(tmp_path, [], [], base=None)
    with pytest.raises(NotFoundError):
        BuilderAssembler(workdir_parent=tmp_path).create(cfg)


def test_no_buildpacks_still_writes_order_layer(tmp_path: Path):
    store = FakeRepoStore()
    result = BuilderAssembler(workdir_parent=tmp_path).create(_config(tmp_path, [], [], store=store))
    assert result.layers == ["/buildpacks/order.toml"]
    assert len(store.writes[0].layers) == 1


def test_store_failure_propagates(tmp_path: Path):
    store = FakeRepoStore(error=RegistryError("push refused"))
    with pytest.raises(RegistryError):
        BuilderAssembler(workdir_parent=tmp_path).create(_config(tmp_path, [], [["x"]], store=store))


def test_identical_inputs_give_identical_layer_digests(tmp_path: Path):
    make_buildpack_dir(tmp_path, "bp-java", bp_id="java", version="1.0.0")
    digests = []
    image_digests = []
    for _ in range(2):
        store = FakeRepoStore()
        BuilderAssembler(workdir_parent=tmp_path).create(
            _config(tmp_path, [{"id": "java", "uri": "./bp-java"}], [["java"]], store=store)
        )
        digests.append([l.digest for l in store.writes[0].layers])
        image_digests.append(store.writes[0].digest())

    assert digests[0] == digests[1]
    assert image_digests[0] == image_digests[1]


def test_working_directory_removed_on_success_and_failure(tmp_path: Path):
    parent = tmp_path / "work"
    parent.mkdir()
    make_buildpack_dir(tmp_path, "bp", bp_id="jvm", version="1.0.0")

    BuilderAssembler(workdir_parent=parent).create(_config(tmp_path, [], []))
    assert list(parent.iterdir()) == []

    with pytest.raises(ValidationError):
        BuilderAssembler(workdir_parent=parent).create(_config(tmp_path, [{"id": "java", "uri": "bp"}], []))
    assert list(parent.iterdir()) == []


def test_cleanup_failure_is_logged_not_raised(tmp_path: Path, monkeypatch, caplog):
    def _boom(path, *a, **kw):
        raise OSError("device busy")

    monkeypatch.setattr("packbuilder.core.assembler.workdir.shutil.rmtree", _boom)

    with caplog.at_level(logging.WARNING, logger="packbuilder.assembler"):
        result = BuilderAssembler(workdir_parent=tmp_path).create(_config(tmp_path, [], []))

    assert result.repo_name == "acme/builder"
    assert any("failed to remove working directory" in r.getMessage() for r in caplog.records)


def test_buildpack_id_cannot_escape_working_directory(tmp_path: Path):
    root = tmp_path / "root"
    (root / "work").mkdir(parents=True)
    builder_dir = root / "builder"
    make_buildpack_dir(builder_dir, "bp", bp_id="../../escaped", version="1.0")
    store = FakeRepoStore()
    assembler = RecordingAssembler(workdir_parent=root / "work")

    with pytest.raises(ValidationError):
        assembler.create(_config(builder_dir, [{"id": "../../escaped", "uri": "bp"}], [["x"]], store=store))

    assert assembler.appended == ["/buildpacks/order.toml"]
    assert store.writes == []
    assert list(tmp_path.rglob("*.tgz")) == []
    assert list((root / "work").iterdir()) == []
