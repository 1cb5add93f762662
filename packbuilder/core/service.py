from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Optional

from packbuilder.core.assembler import BuilderAssembler, BuildResult
from packbuilder.core.images.docker_daemon import DockerDaemon
from packbuilder.core.images.factory import ImageFactory
from packbuilder.core.images.ports import Daemon, Images
from packbuilder.core.settings import Settings
from packbuilder.core.spec import BuildSpecResolver, CreateBuilderFlags
from packbuilder.core.stacks import StackConfig


class BuilderService:
    """Wires the resolver, image adapters and assembler for one create-builder call."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        stacks: Optional[StackConfig] = None,
        daemon: Optional[Daemon] = None,
        images: Optional[Images] = None,
        assembler: Optional[BuilderAssembler] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.stacks = stacks or StackConfig.load(self.settings.config_path)
        self.daemon = daemon or DockerDaemon(self.settings.docker_bin)
        self.images = images
        self.assembler = assembler or BuilderAssembler()

    def create_builder(self, flags: CreateBuilderFlags) -> BuildResult:
        # base image layers exported from the daemon live in scratch until persisted
        with tempfile.TemporaryDirectory(prefix="packbuilder-") as scratch:
            images = self.images or ImageFactory(
                daemon=self.daemon,
                scratch_dir=Path(scratch),
                settings=self.settings,
            )
            resolver = BuildSpecResolver(
                stacks=self.stacks,
                daemon=self.daemon,
                images=images,
                registry_policy=self.settings.registry_policy,
            )
            config = resolver.builder_config_from_flags(flags)
            return self.assembler.create(config)
