"""
Backends Module - generic inference backend and task pipelines
"""

from .base_backend import GenericBackend
from .transformers_backend import TransformersBackend

__all__ = [
    "GenericBackend",
    "TransformersBackend",
]
