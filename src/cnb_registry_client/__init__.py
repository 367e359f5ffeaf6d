"""CNB Registry Client - Async OCI image metadata and rebase engine for buildpack images."""

__version__ = "0.1.0"

from .cnb import (
    BuilderImage,
    BuildpackMetadata,
    BuiltImage,
    BuiltImageRebaser,
    RemoteMetadataRetriever,
)
from .core import (
    Anonymous,
    AnonymousCredentialResolver,
    BasicCredentials,
    BearerToken,
    CredentialResolver,
    DockerConfigCredentialResolver,
    ImageRef,
    RegistryConfig,
    StaticCredentialResolver,
)
from .exceptions import (
    AuthenticationError,
    BlobError,
    BlobUploadError,
    ImageConfigError,
    ImageReferenceError,
    LayerBoundaryError,
    ManifestError,
    MetadataError,
    RegistryConnectionError,
    RegistryError,
)
from .rebase import ImageRebaser
from .remote import RegistryImage, RegistryImageFactory, RemoteImage, SubImage

__all__ = [
    "Anonymous",
    "AnonymousCredentialResolver",
    "AuthenticationError",
    "BasicCredentials",
    "BearerToken",
    "BlobError",
    "BlobUploadError",
    "BuilderImage",
    "BuildpackMetadata",
    "BuiltImage",
    "BuiltImageRebaser",
    "CredentialResolver",
    "DockerConfigCredentialResolver",
    "ImageConfigError",
    "ImageRebaser",
    "ImageRef",
    "ImageReferenceError",
    "LayerBoundaryError",
    "ManifestError",
    "MetadataError",
    "RegistryConfig",
    "RegistryConnectionError",
    "RegistryError",
    "RegistryImage",
    "RegistryImageFactory",
    "RemoteImage",
    "RemoteMetadataRetriever",
    "StaticCredentialResolver",
    "SubImage",
]
