"""Example usage of the metadata retriever and rebasers against a local registry."""

import asyncio
import logging
import sys

# Add parent directory to path
sys.path.insert(0, "src")

from cnb_registry_client import (
    BuiltImageRebaser,
    DockerConfigCredentialResolver,
    ImageRebaser,
    ImageRef,
    RegistryConfig,
    RegistryError,
    RegistryImageFactory,
    RemoteMetadataRetriever,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    """Read builder metadata, then rebase an app image onto the builder's run image."""
    factory = RegistryImageFactory(DockerConfigCredentialResolver(), RegistryConfig.from_env())
    builder_ref = ImageRef.no_auth("localhost:15000/builder:base")
    app_ref = ImageRef.no_auth("localhost:15000/app:latest")

    try:
        retriever = RemoteMetadataRetriever(factory)
        builder = await retriever.get_builder_image(builder_ref)
        logger.info(f"Builder {builder.identifier} uses run image {builder.run_image}")
        for buildpack in builder.buildpacks:
            logger.info(f"  {buildpack.id}@{buildpack.version}")

        built = await retriever.get_built_image(app_ref)
        logger.info(f"App {built.identifier} built at {built.completed_at} on {built.run_image}")

        rebased = await BuiltImageRebaser(factory).rebase(builder_ref, app_ref)
        logger.info(f"Rebased app: {rebased.identifier} on {rebased.run_image}")

    except RegistryError as e:
        logger.error(f"Registry error: {e}")


async def rebase_onto_tag():
    """Rebase by naming the old base image instead of its top layer."""
    rebaser = ImageRebaser(RegistryImageFactory())

    try:
        rebased = await rebaser.rebase(
            ImageRef.no_auth("localhost:15000/app:latest"),
            ImageRef.no_auth("localhost:15000/run:new"),
            old_base=ImageRef.no_auth("localhost:15000/run:old"),
        )
        logger.info(f"Rebased image: {rebased.identifier()}")
    except RegistryError as e:
        logger.error(f"Registry error: {e}")


if __name__ == "__main__":
    asyncio.run(main())
    asyncio.run(rebase_onto_tag())
