"""Cloud Native Buildpacks image metadata and rebasing."""

from .metadata import (
    BUILD_METADATA_LABEL,
    BUILDER_METADATA_LABEL,
    LIFECYCLE_METADATA_LABEL,
    BuilderImage,
    BuilderImageMetadata,
    BuildpackMetadata,
    BuiltImage,
    LifecycleMetadata,
    StackMetadata,
)
from .rebaser import BuiltImageRebaser
from .retriever import RemoteMetadataRetriever, read_built_image

__all__ = [
    "BUILD_METADATA_LABEL",
    "BUILDER_METADATA_LABEL",
    "LIFECYCLE_METADATA_LABEL",
    "BuilderImage",
    "BuilderImageMetadata",
    "BuildpackMetadata",
    "BuiltImage",
    "BuiltImageRebaser",
    "LifecycleMetadata",
    "RemoteMetadataRetriever",
    "StackMetadata",
    "read_built_image",
]
