from __future__ import annotations


class BuilderError(RuntimeError):
    """Base class for every failure raised while creating a builder image."""


class ConfigError(BuilderError):
    pass


class NotFoundError(BuilderError):
    pass


class ValidationError(BuilderError):
    pass


class BuildIOError(BuilderError):
    """Filesystem or archive failure while generating a layer."""


class DaemonError(BuilderError):
    pass


class RegistryError(BuilderError):
    pass
