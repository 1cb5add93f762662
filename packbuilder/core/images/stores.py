from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from packbuilder.core.errors import DaemonError, RegistryError

from .docker_archive import write_docker_archive
from .image import Image
from .ports import Daemon, RepoStore
from .reference import ImageReference
from .registry_client import RegistryClient

_log = logging.getLogger("packbuilder.stores")


class DaemonStore(RepoStore):
    """Loads the image into the local docker daemon under ``reference``."""

    def __init__(self, *, daemon: Daemon, reference: ImageReference, scratch_dir: Path):
        self.daemon = daemon
        self.reference = reference
        self.scratch_dir = scratch_dir
        self.name = str(reference)

    def write(self, image: Image) -> str:
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="daemon-store-", dir=self.scratch_dir) as tmp:
            archive = write_docker_archive(image, self.reference.docker_tag(), Path(tmp) / "image.tar")
            try:
                out = self.daemon.load_image(archive)
            except DaemonError as exc:
                raise DaemonError(f'failed to write image "{self.name}" to daemon: {exc}') from exc
        _log.debug("docker load: %s", out)
        # the daemon identifies images by config digest
        return image.config_digest()


class RegistryStore(RepoStore):
    """Pushes the image to a registry: missing blobs, then config, then manifest."""

    def __init__(self, *, client: RegistryClient, reference: ImageReference):
        self.client = client
        self.reference = reference
        self.name = str(reference)

    def write(self, image: Image) -> str:
        repo = self.reference.repository
        try:
            for blob in image.layers:
                if self.client.blob_exists(repo, blob.digest):
                    continue
                with blob.open() as fp:
                    self.client.upload_blob(repo, blob.digest, fp, blob.size)

            cfg = image.config_bytes()
            cfg_digest = image.config_digest()
            if not self.client.blob_exists(repo, cfg_digest):
                self.client.upload_blob(repo, cfg_digest, cfg, len(cfg))

            manifest = image.manifest()
            digest = self.client.put_manifest(
                repo, self.reference.identifier, image.manifest_bytes(), manifest["mediaType"]
            )
        except RegistryError as exc:
            raise RegistryError(f'failed to write image "{self.name}": {exc}') from exc
        return digest or image.digest()
