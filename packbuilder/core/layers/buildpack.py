from __future__ import annotations

from pathlib import Path

from packbuilder.core.archive import create_tgz_file
from packbuilder.core.errors import BuildIOError, ValidationError
from packbuilder.core.spec.models import BuildpackRef

from .descriptor import BuildpackDescriptor, read_descriptor, resolve_buildpack_dir
from .models import Layer
from .order import BUILDPACKS_DIR


def _is_path_segment(value: str) -> bool:
    # id and version each become one directory under /buildpacks
    return value not in (".", "..") and "/" not in value and "\\" not in value


def validate_descriptor(ref: BuildpackRef, descriptor: BuildpackDescriptor) -> None:
    if ref.id != descriptor.id:
        raise ValidationError(f"buildpack ids did not match: {ref.id} != {descriptor.id}")
    if not descriptor.version.strip():
        raise ValidationError(f"buildpack.toml must provide version: {descriptor.descriptor_path}")
    if not _is_path_segment(descriptor.id):
        raise ValidationError(f'buildpack id "{descriptor.id}" is not a valid path segment: {descriptor.descriptor_path}')
    if not _is_path_segment(descriptor.version):
        raise ValidationError(
            f'buildpack version "{descriptor.version}" is not a valid path segment: {descriptor.descriptor_path}'
        )


class BuildpackLayerGenerator:
    def generate(self, workdir: Path, ref: BuildpackRef, builder_dir: Path) -> Layer:
        descriptor = read_descriptor(resolve_buildpack_dir(ref.uri, builder_dir))
        validate_descriptor(ref, descriptor)

        destination = f"{BUILDPACKS_DIR}/{ref.id}/{descriptor.version}"
        tar_file = Path(workdir) / f"{ref.id}.{descriptor.version}.tgz"
        try:
            create_tgz_file(tar_file, descriptor.directory, destination, 0, 0)
        except OSError as exc:
            raise BuildIOError(
                f'failed to package buildpack "{ref.id}" from {descriptor.directory}: {exc}'
            ) from exc
        return Layer(path=tar_file, destination=destination, kind="buildpack")
