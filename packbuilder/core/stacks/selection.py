from __future__ import annotations

from typing import Sequence

from packbuilder.core.errors import ConfigError
from packbuilder.core.images.reference import ReferenceError, registry_of

from .models import RegistryPolicy


def registry_for_repo(repo_name: str) -> str:
    try:
        return registry_of(repo_name)
    except ReferenceError as exc:
        raise ConfigError(f'cannot determine registry of "{repo_name}": {exc}') from exc


def image_by_registry(
    registry: str,
    images: Sequence[str],
    *,
    policy: RegistryPolicy = RegistryPolicy.FIRST,
) -> str:
    """Pick the image hosted on ``registry``.

    Several matches: the first one in declaration order wins. No match: the
    first declared image under ``RegistryPolicy.FIRST``, ``ConfigError`` under
    ``RegistryPolicy.STRICT``. Unparsable image references never match.
    """
    if not images:
        raise ConfigError("no images to select from")

    for image in images:
        try:
            if registry_of(image) == registry:
                return image
        except ReferenceError:
            continue

    if policy == RegistryPolicy.STRICT:
        raise ConfigError(f'no image on registry "{registry}" among {list(images)}')
    return images[0]
