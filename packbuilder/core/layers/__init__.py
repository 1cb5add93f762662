from .buildpack import BuildpackLayerGenerator
from .descriptor import BuildpackDescriptor, read_descriptor, resolve_buildpack_dir
from .models import Layer
from .order import OrderLayerGenerator, encode_order

__all__ = [
    "BuildpackDescriptor",
    "BuildpackLayerGenerator",
    "Layer",
    "OrderLayerGenerator",
    "encode_order",
    "read_descriptor",
    "resolve_buildpack_dir",
]
