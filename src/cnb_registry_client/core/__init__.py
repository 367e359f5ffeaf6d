"""Core registry types, references and the low-level HTTP client."""

from .auth import (
    Anonymous,
    AnonymousCredentialResolver,
    Authenticator,
    BasicCredentials,
    BearerToken,
    CredentialResolver,
    DockerConfigCredentialResolver,
    StaticCredentialResolver,
)
from .reference import Reference, parse_reference
from .registry_client import RegistryClient
from .types import BlobInfo, ImageRef, LayerInfo, RegistryConfig

__all__ = [
    "Anonymous",
    "AnonymousCredentialResolver",
    "Authenticator",
    "BasicCredentials",
    "BearerToken",
    "BlobInfo",
    "CredentialResolver",
    "DockerConfigCredentialResolver",
    "ImageRef",
    "LayerInfo",
    "Reference",
    "RegistryClient",
    "RegistryConfig",
    "StaticCredentialResolver",
    "parse_reference",
]
