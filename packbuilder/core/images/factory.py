from __future__ import annotations

import functools
import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from packbuilder.core.errors import ConfigError, RegistryError
from packbuilder.core.settings import Settings

from .docker_archive import read_docker_archive
from .image import (
    MEDIA_TYPE_LAYER_GZIP,
    MEDIA_TYPE_MANIFEST_LIST,
    MEDIA_TYPE_OCI_INDEX,
    Image,
    LayerBlob,
)
from .ports import Daemon, Images, RepoStore
from .reference import ImageReference, ReferenceError, parse_reference
from .registry_client import RegistryClient
from .stores import DaemonStore, RegistryStore

_log = logging.getLogger("packbuilder.images")

DEFAULT_PLATFORM = ("linux", "amd64")


def _parse(repo_name: str) -> ImageReference:
    try:
        return parse_reference(repo_name)
    except ReferenceError as exc:
        raise ConfigError(f'invalid image name "{repo_name}": {exc}') from exc


def _pick_platform(index: Dict[str, Any], ref: ImageReference) -> str:
    for m in index.get("manifests") or []:
        platform = m.get("platform") or {}
        if (platform.get("os"), platform.get("architecture")) == DEFAULT_PLATFORM:
            return m["digest"]
    raise RegistryError(f'image "{ref}" has no {"/".join(DEFAULT_PLATFORM)} manifest')


class ImageFactory(Images):
    """Reads images from the docker daemon or a registry and opens repository stores.

    Daemon images are exported into ``scratch_dir``, which must outlive the
    images read through this factory.
    """

    def __init__(
        self,
        *,
        daemon: Daemon,
        scratch_dir: Path,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.daemon = daemon
        self.scratch_dir = Path(scratch_dir)
        self.settings = settings or Settings.from_env()
        self.session = session

    def _client(self, registry: str) -> RegistryClient:
        return RegistryClient(
            registry,
            insecure=self.settings.is_insecure(registry),
            session=self.session,
        )

    def read_image(self, repo_name: str, use_daemon: bool) -> Optional[Image]:
        ref = _parse(repo_name)
        if use_daemon:
            return self._read_daemon_image(repo_name)
        return self._read_registry_image(ref)

    def _read_daemon_image(self, repo_name: str) -> Optional[Image]:
        if self.daemon.inspect_image(repo_name) is None:
            return None
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        work = Path(tempfile.mkdtemp(prefix="base-image-", dir=self.scratch_dir))
        archive = self.daemon.save_image(repo_name, work / "image.tar")
        _log.debug("exported %s from daemon into %s", repo_name, work)
        image = read_docker_archive(archive, work / "layers")
        archive.unlink()
        return image

    def _read_registry_image(self, ref: ImageReference) -> Optional[Image]:
        client = self._client(ref.registry)
        found = client.get_manifest(ref.repository, ref.identifier)
        if found is None:
            return None
        manifest, media_type = found

        if media_type in (MEDIA_TYPE_MANIFEST_LIST, MEDIA_TYPE_OCI_INDEX) or "manifests" in manifest:
            found = client.get_manifest(ref.repository, _pick_platform(manifest, ref))
            if found is None:
                return None
            manifest, _ = found

        config = client.get_blob(ref.repository, manifest["config"]["digest"])
        try:
            config_doc = json.loads(config.decode("utf-8"))
        except ValueError as exc:
            raise RegistryError(f'image "{ref}": invalid config blob: {exc}') from exc

        diff_ids = list((config_doc.get("rootfs") or {}).get("diff_ids") or [])
        layers = manifest.get("layers") or []
        if len(diff_ids) != len(layers):
            raise RegistryError(
                f'image "{ref}": config lists {len(diff_ids)} diff ids for {len(layers)} layers'
            )

        blobs = tuple(
            LayerBlob(
                digest=layer["digest"],
                diff_id=diff_id,
                size=int(layer.get("size") or 0),
                media_type=layer.get("mediaType") or MEDIA_TYPE_LAYER_GZIP,
                opener=functools.partial(client.open_blob, ref.repository, layer["digest"]),
            )
            for layer, diff_id in zip(layers, diff_ids)
        )
        return Image(config=config_doc, layers=blobs)

    def repo_store(self, repo_name: str, use_daemon: bool) -> RepoStore:
        ref = _parse(repo_name)
        if ref.digest:
            # written images are addressed by tag
            raise ConfigError(f'cannot write image to digest reference "{repo_name}"; use a tag')
        if use_daemon:
            return DaemonStore(daemon=self.daemon, reference=ref, scratch_dir=self.scratch_dir)
        return RegistryStore(client=self._client(ref.registry), reference=ref)
