"""Compose buildpack builder images from a base stack image and a builder.toml."""

__version__ = "0.1.0"
