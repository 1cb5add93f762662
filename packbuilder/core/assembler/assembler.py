from __future__ import annotations

import logging
import time
from functools import reduce
from pathlib import Path
from typing import List, Optional

from packbuilder.core.errors import BuilderError, BuildIOError, ConfigError, NotFoundError
from packbuilder.core.images.image import Image
from packbuilder.core.layers import BuildpackLayerGenerator, Layer, OrderLayerGenerator
from packbuilder.core.observability.metrics import (
    BUILD_DURATION_SECONDS,
    BUILDS_TOTAL,
    LAYERS_APPENDED_TOTAL,
)
from packbuilder.core.spec.models import BuilderConfig, BuildpackRef

from .models import AssemblyState, BuildResult
from .state_machine import ensure_transition, is_terminal
from .workdir import working_directory

_log = logging.getLogger("packbuilder.assembler")


class _StateTracker:
    def __init__(self) -> None:
        self.state = AssemblyState.INIT
        self.history: List[AssemblyState] = [AssemblyState.INIT]

    def advance(self, dst: AssemblyState) -> None:
        ensure_transition(self.state, dst)
        self.state = dst
        self.history.append(dst)

    def fail(self) -> None:
        if not is_terminal(self.state):
            self.advance(AssemblyState.FAILED)


class BuilderAssembler:
    """Creates a builder image from a resolved ``BuilderConfig``.

    The order layer goes first, then one layer per buildpack in declaration
    order. The repository is written only after every layer was appended.
    """

    def __init__(
        self,
        *,
        order_layers: Optional[OrderLayerGenerator] = None,
        buildpack_layers: Optional[BuildpackLayerGenerator] = None,
        workdir_parent: Optional[Path] = None,
    ):
        self.order_layers = order_layers or OrderLayerGenerator()
        self.buildpack_layers = buildpack_layers or BuildpackLayerGenerator()
        self.workdir_parent = workdir_parent

    def create(self, config: BuilderConfig) -> BuildResult:
        tracker = _StateTracker()
        started = time.monotonic()
        try:
            with working_directory(parent=self.workdir_parent) as workdir:
                result = self._assemble(config, workdir, tracker)
        except Exception:
            tracker.fail()
            BUILDS_TOTAL.labels(outcome="failed").inc()
            raise
        finally:
            BUILD_DURATION_SECONDS.observe(time.monotonic() - started)

        BUILDS_TOTAL.labels(outcome="succeeded").inc()
        _log.info("Successfully created builder image: %s", config.repo_name)
        _log.info('Tip: Run "pack build <image name> --builder <builder image> --path <app source code>" to use this builder')
        return result

    def _assemble(self, config: BuilderConfig, workdir: Path, tracker: _StateTracker) -> BuildResult:
        if config.base_image is None:
            raise NotFoundError(f'base image for builder "{config.repo_name}" was not found')
        if config.repo is None:
            raise ConfigError(f'no repository store configured for builder "{config.repo_name}"')
        tracker.advance(AssemblyState.BASE_RESOLVED)

        applied: List[str] = []

        try:
            order_layer = self.order_layers.generate(workdir, config.groups)
        except BuilderError as exc:
            raise type(exc)(f"failed to generate order.toml layer: {exc}") from exc
        image = self._append(config.base_image, order_layer)
        applied.append(order_layer.destination)
        tracker.advance(AssemblyState.ORDER_LAYER_APPLIED)

        def apply_buildpack(current: Image, ref: BuildpackRef) -> Image:
            try:
                layer = self.buildpack_layers.generate(workdir, ref, config.builder_dir)
            except BuilderError as exc:
                raise type(exc)(f'failed to generate layer for buildpack "{ref.id}": {exc}') from exc
            nxt = self._append(current, layer)
            applied.append(layer.destination)
            tracker.advance(AssemblyState.BUILDPACK_LAYER_APPLIED)
            return nxt

        image = reduce(apply_buildpack, config.buildpacks, image)

        digest = config.repo.write(image)
        tracker.advance(AssemblyState.PERSISTED)
        tracker.advance(AssemblyState.DONE)

        return BuildResult(
            repo_name=config.repo_name,
            image_digest=digest,
            layers=applied,
            states=list(tracker.history),
        )

    def _append(self, image: Image, layer: Layer) -> Image:
        try:
            nxt = image.append_layer(layer.path, created_by=f"packbuilder: {layer.destination}")
        except OSError as exc:
            raise BuildIOError(f"failed to append {layer.destination} layer to image: {exc}") from exc
        LAYERS_APPENDED_TOTAL.labels(kind=layer.kind).inc()
        _log.debug("appended layer %s (%s)", layer.destination, nxt.layers[-1].digest)
        return nxt
