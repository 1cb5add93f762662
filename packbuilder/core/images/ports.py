from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from .image import Image


class Daemon(ABC):
    @abstractmethod
    def pull_image(self, ref: str) -> None:
        """Pull ``ref`` into the local daemon cache. Raises DaemonError."""

    @abstractmethod
    def inspect_image(self, ref: str) -> Optional[Dict[str, Any]]:
        """Return daemon metadata for ``ref``, or None when it is not present locally."""

    @abstractmethod
    def save_image(self, ref: str, dest: Path) -> Path:
        """Export ``ref`` as a docker-archive tar at ``dest``."""

    @abstractmethod
    def load_image(self, archive: Path) -> str:
        """Import a docker-archive tar into the daemon."""


class RepoStore(ABC):
    name: str

    @abstractmethod
    def write(self, image: Image) -> str:
        """Persist ``image`` under the store's repository name and return its digest."""


class Images(ABC):
    @abstractmethod
    def read_image(self, repo_name: str, use_daemon: bool) -> Optional[Image]:
        """Return the image, or None when it does not exist."""

    @abstractmethod
    def repo_store(self, repo_name: str, use_daemon: bool) -> RepoStore:
        ...
