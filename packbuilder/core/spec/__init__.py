from .loader import load_builder_toml
from .models import BuilderConfig, BuilderToml, BuildpackRef, CreateBuilderFlags
from .resolver import BuildSpecResolver

__all__ = [
    "BuildSpecResolver",
    "BuilderConfig",
    "BuilderToml",
    "BuildpackRef",
    "CreateBuilderFlags",
    "load_builder_toml",
]
