"""Remote image factories."""

import logging
from typing import Optional, Protocol

from ..core.auth import AnonymousCredentialResolver, CredentialResolver
from ..core.types import ImageRef, RegistryConfig
from .image import RegistryImage, RemoteImage

logger = logging.getLogger(__name__)


class RemoteImageFactory(Protocol):
    """Creates a RemoteImage snapshot for an ImageRef."""

    async def new_remote(self, ref: ImageRef) -> RemoteImage: ...


class RegistryImageFactory:
    """Fetches images from their registries, each under its own credentials."""

    def __init__(
        self,
        resolver: Optional[CredentialResolver] = None,
        config: Optional[RegistryConfig] = None,
    ) -> None:
        self.resolver = resolver or AnonymousCredentialResolver()
        self.config = config or RegistryConfig()

    async def new_remote(self, ref: ImageRef) -> RemoteImage:
        authenticator = await self.resolver.credential_for(ref)
        logger.debug("Fetching %s", ref.image)
        return await RegistryImage.fetch(ref, authenticator, self.config)
