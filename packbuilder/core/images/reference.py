"""Docker image reference parsing.

Follows the docker CLI normalization rules:

    java              -> index.docker.io/library/java:latest
    acme/java:8       -> index.docker.io/acme/java:8
    docker.io/acme/x  -> index.docker.io/acme/x:latest
    gcr.io/acme/x@sha256:...  -> registry gcr.io, pinned by digest
    localhost:5000/x  -> registry localhost:5000
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"

_REPO_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*(?:/[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*)*$")
_TAG_RE = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST_RE = re.compile(r"^sha256:[0-9a-f]{64}$")


class ReferenceError(ValueError):
    pass


@dataclass(frozen=True)
class ImageReference:
    registry: str
    repository: str
    tag: Optional[str] = DEFAULT_TAG
    digest: Optional[str] = None

    @property
    def identifier(self) -> str:
        """Tag or digest, as used in registry manifest URLs."""
        return self.digest or self.tag or DEFAULT_TAG

    @property
    def name(self) -> str:
        return f"{self.registry}/{self.repository}"

    def __str__(self) -> str:
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag or DEFAULT_TAG}"

    def docker_tag(self) -> str:
        """Short form the docker daemon stores in RepoTags."""
        name = self.repository
        if self.registry != DEFAULT_REGISTRY:
            name = f"{self.registry}/{name}"
        elif name.startswith("library/"):
            name = name[len("library/"):]
        return f"{name}:{self.tag or DEFAULT_TAG}"


def _split_registry(remainder: str) -> tuple[str, str]:
    first, sep, rest = remainder.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        registry = DEFAULT_REGISTRY if first == "docker.io" else first
        return registry, rest
    return DEFAULT_REGISTRY, remainder


def parse_reference(ref: str) -> ImageReference:
    s = (ref or "").strip()
    if not s:
        raise ReferenceError("empty image reference")

    digest = None
    if "@" in s:
        s, digest = s.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ReferenceError(f'invalid digest in reference "{ref}"')

    tag = None
    last_slash = s.rfind("/")
    colon = s.rfind(":")
    if colon > last_slash:
        s, tag = s[:colon], s[colon + 1:]
        if not _TAG_RE.match(tag):
            raise ReferenceError(f'invalid tag in reference "{ref}"')

    registry, repository = _split_registry(s)
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"library/{repository}"

    if not _REPO_RE.match(repository):
        raise ReferenceError(f'invalid repository in reference "{ref}"')

    if digest is None and tag is None:
        tag = DEFAULT_TAG
    return ImageReference(registry=registry, repository=repository, tag=tag, digest=digest)


def registry_of(ref: str) -> str:
    return parse_reference(ref).registry
