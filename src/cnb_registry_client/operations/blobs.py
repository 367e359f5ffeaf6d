"""Blob transfer between repositories."""

import logging

from ..core.registry_client import RegistryClient
from ..core.types import BlobInfo

logger = logging.getLogger(__name__)


async def copy_blob(
    target: RegistryClient,
    target_repository: str,
    source: RegistryClient,
    source_repository: str,
    blob: BlobInfo,
) -> bool:
    """Make a blob available in the target repository.

    Blobs already present are skipped. On the same registry a cross-repository
    mount is tried first; otherwise the blob is streamed from the source into
    the target chunk by chunk.

    Returns:
        True if the blob was transferred, False if it was already present
    """
    if await target.check_blob_exists(target_repository, blob.digest):
        return False

    location = None
    if target.registry == source.registry and target_repository != source_repository:
        location = await target.mount_blob(target_repository, blob.digest, source_repository)
        if location is None:
            return True

    logger.debug(
        "Copying %s from %s/%s to %s/%s",
        blob.digest,
        source.registry,
        source_repository,
        target.registry,
        target_repository,
    )
    chunks = source.stream_blob(source_repository, blob.digest)
    await target.upload_blob(target_repository, chunks, blob.digest, location=location)
    return True
