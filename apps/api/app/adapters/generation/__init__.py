"""Generation provider adapters."""

from .base import GenerationProvider, ImageRequest, VideoRequest
from .mock import MockGenerationProvider
from .replicate import ReplicateProvider

__all__ = [
    "GenerationProvider",
    "ImageRequest",
    "MockGenerationProvider",
    "ReplicateProvider",
    "VideoRequest",
]
