from .image import Image, LayerBlob
from .ports import Daemon, Images, RepoStore
from .reference import ImageReference, parse_reference

__all__ = [
    "Daemon",
    "Image",
    "ImageReference",
    "Images",
    "LayerBlob",
    "RepoStore",
    "parse_reference",
]
