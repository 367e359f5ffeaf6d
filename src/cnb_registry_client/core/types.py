"""Core value types shared across the client."""

import os
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

DEFAULT_PLATFORM = "linux/amd64"

# Registries always reached over plain HTTP
_LOCAL_REGISTRIES = ("localhost", "127.0.0.1")


@dataclass(frozen=True)
class RegistryConfig:
    """Per-call registry settings.

    Attributes:
        timeout: Total timeout for one HTTP session in seconds
        insecure_registries: Registry hosts reached over plain HTTP
        platform: Platform selected from manifest lists (os/arch[/variant])
        chunk_size: Blob upload chunk size in bytes
    """

    timeout: int = 30
    insecure_registries: frozenset = field(default_factory=frozenset)
    platform: str = DEFAULT_PLATFORM
    chunk_size: int = 5 * 1024 * 1024

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RegistryConfig":
        """Build a config from ``CNB_*`` environment variables."""
        env = os.environ if environ is None else environ

        insecure = frozenset(
            host.strip()
            for host in env.get("CNB_INSECURE_REGISTRIES", "").split(",")
            if host.strip()
        )
        return cls(
            timeout=int(env.get("CNB_REGISTRY_TIMEOUT", "30")),
            insecure_registries=insecure,
            platform=env.get("CNB_PLATFORM", DEFAULT_PLATFORM),
        )

    def scheme_for(self, registry: str) -> str:
        """Return the URL scheme used to reach a registry host."""
        host = registry.split(":", 1)[0]
        if host in _LOCAL_REGISTRIES or registry in self.insecure_registries:
            return "http"
        return "https"

    def base_url(self, registry: str) -> str:
        return f"{self.scheme_for(registry)}://{registry}"


@dataclass(frozen=True)
class ImageRef:
    """An image reference plus the authorization context used to reach it.

    Attributes:
        image: Repository with tag or digest (e.g. "gcr.io/proj/app:latest")
        namespace: Namespace of the workload requesting access
        service_account: Service account of the workload requesting access
        secret_name: Name of a stored registry credential, empty for none
    """

    image: str
    namespace: str = ""
    service_account: str = ""
    secret_name: str = ""

    @classmethod
    def no_auth(cls, image: str) -> "ImageRef":
        return cls(image=image)

    @property
    def has_secret(self) -> bool:
        return self.secret_name != ""


@dataclass(frozen=True)
class BlobInfo:
    """Content descriptor of a registry blob."""

    digest: str
    size: int
    media_type: str

    def to_descriptor(self) -> dict[str, Any]:
        return {"mediaType": self.media_type, "size": self.size, "digest": self.digest}


@dataclass(frozen=True)
class LayerInfo(BlobInfo):
    """Image layer descriptor with the digest of its uncompressed content.

    ``extra`` holds the remaining descriptor fields (``annotations``,
    ``urls``, ...) so a layer is republished exactly as it was pulled.
    """

    diff_id: str = ""
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def to_descriptor(self) -> dict[str, Any]:
        return {**super().to_descriptor(), **self.extra}


@dataclass(frozen=True)
class RequestResult:
    """Outcome of one registry HTTP request."""

    status: int
    headers: Mapping[str, str]
    body: bytes = b""
