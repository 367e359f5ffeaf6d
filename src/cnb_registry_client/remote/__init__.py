"""Remote image accessors and the sub-image view."""

from .factory import RegistryImageFactory, RemoteImageFactory
from .image import RegistryImage, RemoteImage
from .subimage import SubImage

__all__ = [
    "RegistryImage",
    "RegistryImageFactory",
    "RemoteImage",
    "RemoteImageFactory",
    "SubImage",
]
