from .models import RegistryPolicy, Stack
from .registry import StackConfig
from .selection import image_by_registry, registry_for_repo

__all__ = [
    "RegistryPolicy",
    "Stack",
    "StackConfig",
    "image_by_registry",
    "registry_for_repo",
]
