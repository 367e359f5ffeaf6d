"""Custom exceptions for the CNB registry client."""


class RegistryError(Exception):
    """Base exception for all registry-related errors."""

    pass


class ImageReferenceError(RegistryError, ValueError):
    """Raised when an image reference string cannot be parsed."""

    pass


class AuthenticationError(RegistryError):
    """Raised when credentials cannot be resolved or are rejected."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class BlobError(RegistryError):
    """Raised when blob retrieval fails."""

    pass


class BlobUploadError(BlobError):
    """Raised when blob upload fails."""

    pass


class ImageConfigError(RegistryError):
    """Raised when an image manifest or config is malformed."""

    pass


class MetadataError(RegistryError):
    """Raised when a buildpack metadata label is missing or malformed."""

    pass


class LayerBoundaryError(RegistryError):
    """Raised when a rebase boundary layer cannot be found in an image."""

    pass
