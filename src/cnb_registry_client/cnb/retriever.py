"""Read builder and built image metadata from a registry."""

import logging

from ..core.reference import digest_of, split_repository_tag
from ..core.types import ImageRef
from ..exceptions import MetadataError, RegistryError
from ..remote.factory import RemoteImageFactory
from ..remote.image import RemoteImage
from .metadata import (
    BUILD_METADATA_LABEL,
    BUILDER_METADATA_LABEL,
    LIFECYCLE_METADATA_LABEL,
    BuilderImage,
    BuilderImageMetadata,
    BuiltImage,
    LifecycleMetadata,
    load_label,
    parse_buildpacks,
)

logger = logging.getLogger(__name__)


def canonical_run_image(lifecycle: LifecycleMetadata) -> str:
    """Combine the stack's run image repository with the digest actually used.

    Raises:
        MetadataError: If the recorded run image reference has no digest
    """
    digest = digest_of(lifecycle.run_image_reference)
    if digest is None:
        raise MetadataError(
            f"run image reference '{lifecycle.run_image_reference}' has no digest"
        )
    repository, _ = split_repository_tag(lifecycle.stack.run_image)
    return f"{repository}@{digest}"


def read_built_image(image: RemoteImage) -> BuiltImage:
    """Extract a BuiltImage from an already fetched image.

    Raises:
        MetadataError: If the build or lifecycle metadata label is missing or malformed
    """
    where = image.identifier()
    try:
        build_metadata = load_label(image.label(BUILD_METADATA_LABEL), BUILD_METADATA_LABEL)
        buildpacks = parse_buildpacks(build_metadata, BUILD_METADATA_LABEL)
        lifecycle = LifecycleMetadata.from_label(image.label(LIFECYCLE_METADATA_LABEL))
        run_image = canonical_run_image(lifecycle)
    except MetadataError as e:
        raise MetadataError(f"image '{where}': {e}") from e

    return BuiltImage(
        identifier=image.identifier(),
        completed_at=image.created_at(),
        buildpacks=buildpacks,
        run_image=run_image,
    )


class RemoteMetadataRetriever:
    """Retrieves buildpack metadata from builder and built images."""

    def __init__(self, factory: RemoteImageFactory) -> None:
        self.factory = factory

    async def get_builder_image(self, ref: ImageRef) -> BuilderImage:
        """빌더 이미지의 빌드팩 목록과 실행(run) 이미지를 조회합니다.

        실행 이미지는 공개 이미지로 가정하고 인증 없이 조회합니다.

        Args:
            ref: 빌더 이미지 참조

        Returns:
            BuilderImage: 빌드팩 목록, 실행 이미지 식별자, 빌더 식별자

        Raises:
            MetadataError: 빌더 메타데이터 라벨이 없거나 형식이 잘못된 경우
            RegistryError: 이미지 조회 실패 시

        Examples:
            retriever = RemoteMetadataRetriever(RegistryImageFactory())
            builder = await retriever.get_builder_image(ImageRef.no_auth("paketobuildpacks/builder:base"))
            print(builder.run_image)  # index.docker.io/paketobuildpacks/run@sha256:...
        """
        image = await self.factory.new_remote(ref)

        try:
            metadata = BuilderImageMetadata.from_label(image.label(BUILDER_METADATA_LABEL))
        except MetadataError as e:
            raise MetadataError(f"builder image '{image.identifier()}': {e}") from e

        identifier = image.identifier()

        try:
            run_image = await self.factory.new_remote(ImageRef.no_auth(metadata.stack.run_image))
        except RegistryError as e:
            raise type(e)(
                f"unable to fetch remote run image '{metadata.stack.run_image}': {e}"
            ) from e
        logger.debug("Builder %s uses run image %s", identifier, run_image.identifier())

        return BuilderImage(
            buildpacks=metadata.buildpacks,
            run_image=run_image.identifier(),
            identifier=identifier,
        )

    async def get_built_image(self, ref: ImageRef) -> BuiltImage:
        """빌드된 이미지의 빌드팩, 실행 이미지, 완료 시각을 조회합니다.

        실행 이미지는 스택에 선언된 저장소와 lifecycle 메타데이터에 기록된
        digest를 결합한 참조입니다 (예: "cloudfoundry/run@sha256:...").

        Args:
            ref: 빌드된 이미지 참조

        Returns:
            BuiltImage: 식별자, 완료 시각, 빌드팩 목록, 실행 이미지

        Raises:
            MetadataError: 빌드/lifecycle 메타데이터 라벨이 없거나 형식이 잘못된 경우
            RegistryError: 이미지 조회 실패 시

        Examples:
            built = await retriever.get_built_image(ImageRef("gcr.io/team/app:latest"))
            print(built.completed_at, built.run_image)
        """
        image = await self.factory.new_remote(ref)
        return read_built_image(image)
