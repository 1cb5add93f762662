from pathlib import Path

import pytest

from packbuilder.core.errors import ConfigError, DaemonError, NotFoundError, RegistryError, ValidationError
from packbuilder.core.spec import BuildSpecResolver, CreateBuilderFlags, load_builder_toml
from packbuilder.core.stacks import RegistryPolicy, Stack, StackConfig

from conftest import FakeDaemon, FakeImages, write_builder_toml


def _resolver(daemon=None, images=None, stacks=None, policy=RegistryPolicy.FIRST):
    return BuildSpecResolver(
        stacks=stacks or StackConfig(),
        daemon=daemon or FakeDaemon(),
        images=images or FakeImages(),
        registry_policy=policy,
    )


def _flags(toml_path: Path, **kw) -> CreateBuilderFlags:
    return CreateBuilderFlags(repo_name=kw.pop("repo_name", "acme/builder"), builder_toml_path=str(toml_path), **kw)


def test_pulls_base_image_and_reads_from_daemon(java_builder: Path):
    daemon, images = FakeDaemon(), FakeImages()
    cfg = _resolver(daemon, images).builder_config_from_flags(_flags(java_builder))

    assert daemon.pulled == ["packs/build"]
    assert images.reads == [("packs/build", True)]
    assert images.stores == [("acme/builder", True)]
    assert cfg.repo_name == "acme/builder"
    assert [bp.id for bp in cfg.buildpacks] == ["java"]
    assert cfg.groups == [["java"]]
    assert cfg.builder_dir == java_builder.parent
    assert cfg.base_image is images.base
    assert cfg.repo is images.store


def test_no_pull_skips_pull(java_builder: Path):
    daemon = FakeDaemon()
    _resolver(daemon).builder_config_from_flags(_flags(java_builder, no_pull=True))
    assert daemon.pulled == []


def test_publish_skips_pull_and_uses_registry(java_builder: Path):
    daemon, images = FakeDaemon(), FakeImages()
    _resolver(daemon, images).builder_config_from_flags(_flags(java_builder, publish=True))

    assert daemon.pulled == []
    assert images.reads == [("packs/build", False)]
    assert images.stores == [("acme/builder", False)]


def test_pull_failure_names_image(java_builder: Path):
    with pytest.raises(DaemonError) as ei:
        _resolver(FakeDaemon(pull_error="connection refused")).builder_config_from_flags(_flags(java_builder))
    assert "packs/build" in str(ei.value)
    assert "connection refused" in str(ei.value)


def test_missing_base_image(java_builder: Path):
    with pytest.raises(NotFoundError):
        _resolver(images=FakeImages(base=None)).builder_config_from_flags(_flags(java_builder))


def test_base_image_read_error_keeps_type(java_builder: Path):
    class BrokenImages(FakeImages):
        def read_image(self, repo_name, use_daemon):
            raise RegistryError("unauthorized")

    with pytest.raises(RegistryError) as ei:
        _resolver(images=BrokenImages()).builder_config_from_flags(_flags(java_builder, publish=True))
    assert "failed to read base image" in str(ei.value)


def test_stack_without_build_images(java_builder: Path):
    stacks = StackConfig([Stack(id="empty.stack")])
    with pytest.raises(ConfigError) as ei:
        _resolver(stacks=stacks).builder_config_from_flags(_flags(java_builder, stack_id="empty.stack"))
    assert "at least one build image" in str(ei.value)


def test_unknown_stack(java_builder: Path):
    with pytest.raises(ConfigError):
        _resolver().builder_config_from_flags(_flags(java_builder, stack_id="no.such.stack"))


def test_build_image_matches_repo_registry():
    stacks = StackConfig(
        [Stack(id="s", build_images=["packs/build", "gcr.io/acme/build", "gcr.io/acme/other"])],
        default_stack_id="s",
    )
    resolver = _resolver(stacks=stacks)
    assert resolver.base_image_name("s", "gcr.io/acme/builder") == "gcr.io/acme/build"
    assert resolver.base_image_name("", "acme/builder") == "packs/build"
    assert resolver.base_image_name("s", "quay.io/acme/builder") == "packs/build"

    strict = _resolver(stacks=stacks, policy=RegistryPolicy.STRICT)
    with pytest.raises(ConfigError):
        strict.base_image_name("s", "quay.io/acme/builder")


def test_missing_builder_toml(tmp_path: Path):
    with pytest.raises(NotFoundError):
        _resolver().builder_config_from_flags(_flags(tmp_path / "builder.toml", no_pull=True))


def test_malformed_builder_toml(tmp_path: Path):
    p = tmp_path / "builder.toml"
    p.write_text("[[buildpacks]\nid = ", encoding="utf-8")
    with pytest.raises(ConfigError) as ei:
        load_builder_toml(p)
    assert "failed to decode builder config" in str(ei.value)


def test_wrong_shape_builder_toml(tmp_path: Path):
    p = tmp_path / "builder.toml"
    p.write_text('groups = "java"\n', encoding="utf-8")
    with pytest.raises(ConfigError):
        load_builder_toml(p)


def test_duplicate_buildpack_ids(tmp_path: Path):
    p = write_builder_toml(
        tmp_path,
        [{"id": "java", "uri": "a"}, {"id": "java", "uri": "b"}],
        [["java"]],
    )
    with pytest.raises(ValidationError):
        load_builder_toml(p)


def test_unknown_keys_are_ignored(tmp_path: Path):
    p = tmp_path / "builder.toml"
    p.write_text(
        'description = "x"\ngroups = [["java"]]\n\n[[buildpacks]]\nid = "java"\nuri = "bp"\n',
        encoding="utf-8",
    )
    spec = load_builder_toml(p)
    assert spec.groups == [["java"]]
    assert spec.buildpacks[0].uri == "bp"
