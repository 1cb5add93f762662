from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional

from packbuilder.core.errors import DaemonError

from .ports import Daemon

_log = logging.getLogger("packbuilder.daemon")


class DockerDaemon(Daemon):
    """Talks to the local docker daemon through the docker CLI."""

    def __init__(self, docker_bin: str = "docker"):
        self.docker_bin = docker_bin

    def _run(self, args: List[str], *, action: str) -> subprocess.CompletedProcess:
        cmd = [self.docker_bin] + args
        try:
            return subprocess.run(cmd, capture_output=True, text=True)
        except OSError as exc:
            raise DaemonError(f"docker {action} failed: cannot run {self.docker_bin!r}: {exc}") from exc

    def _check(self, r: subprocess.CompletedProcess, *, action: str) -> None:
        if r.returncode != 0:
            raise DaemonError(f"docker {action} failed: {r.stderr.strip() or r.stdout.strip()}")

    def pull_image(self, ref: str) -> None:
        _log.debug("docker pull %s", ref)
        r = self._run(["pull", ref], action="pull")
        self._check(r, action=f"pull {ref}")

    def inspect_image(self, ref: str) -> Optional[Dict[str, Any]]:
        r = self._run(["image", "inspect", ref], action="image inspect")
        if r.returncode != 0:
            err = (r.stderr or "").lower()
            if "no such image" in err or "no such object" in err:
                return None
            self._check(r, action=f"image inspect {ref}")

        try:
            info = json.loads(r.stdout)
        except json.JSONDecodeError as exc:
            raise DaemonError(f"docker image inspect {ref}: unparseable output: {exc}") from exc
        if not info:
            return None
        return info[0]

    def save_image(self, ref: str, dest: Path) -> Path:
        r = self._run(["save", "-o", str(dest), ref], action="save")
        self._check(r, action=f"save {ref}")
        return Path(dest)

    def load_image(self, archive: Path) -> str:
        r = self._run(["load", "-i", str(archive)], action="load")
        self._check(r, action=f"load {archive}")
        return (r.stdout or "").strip()
