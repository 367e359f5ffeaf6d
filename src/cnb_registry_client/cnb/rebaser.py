"""Rebase built images onto the run image of their builder."""

import json
import logging
from datetime import datetime
from typing import Optional

from ..core.types import ImageRef
from ..exceptions import MetadataError, RegistryError
from ..rebase import top_layer_of
from ..remote.factory import RemoteImageFactory
from ..remote.image import RemoteImage
from .metadata import (
    BUILDER_METADATA_LABEL,
    LIFECYCLE_METADATA_LABEL,
    BuilderImageMetadata,
    BuiltImage,
    LifecycleMetadata,
    load_label,
)
from .retriever import read_built_image

logger = logging.getLogger(__name__)


def updated_lifecycle_label(payload: str, new_run_image: RemoteImage) -> str:
    """Point the lifecycle metadata run image at a new base, keeping other keys."""
    data = load_label(payload, LIFECYCLE_METADATA_LABEL)
    run_image = dict(data.get("runImage") or {})
    run_image["topLayer"] = top_layer_of(new_run_image)
    run_image["reference"] = new_run_image.identifier()
    data["runImage"] = run_image
    return json.dumps(data, separators=(",", ":"))


class BuiltImageRebaser:
    """Rebases a previously built image onto its builder's current run image."""

    def __init__(self, factory: RemoteImageFactory) -> None:
        self.factory = factory

    async def rebase(
        self,
        builder_ref: ImageRef,
        previous_image_ref: ImageRef,
        created_at: Optional[datetime] = None,
    ) -> BuiltImage:
        """빌드된 이미지를 빌더가 현재 가리키는 실행 이미지 위로 리베이스합니다.

        경계 레이어는 이전 이미지의 lifecycle 메타데이터 ``runImage.topLayer``
        값이며, 리베이스된 이미지의 lifecycle 메타데이터는 새 실행 이미지를
        가리키도록 갱신됩니다.

        Args:
            builder_ref: 빌더 이미지 참조 (namespace와 secret은 실행 이미지 조회에도 사용)
            previous_image_ref: 리베이스할 빌드된 이미지 참조
            created_at: 새 이미지의 생성 시각 (기본값: 현재 시각)

        Returns:
            BuiltImage: 리베이스된 이미지의 메타데이터

        Raises:
            MetadataError: 빌더 또는 lifecycle 메타데이터가 없거나 잘못된 경우
            LayerBoundaryError: 기록된 경계 레이어가 이미지에 없는 경우
            RegistryError: 레지스트리 작업 실패 시

        Examples:
            rebaser = BuiltImageRebaser(RegistryImageFactory(resolver))
            built = await rebaser.rebase(builder_ref, ImageRef("gcr.io/team/app:latest"))
            print(built.run_image)
        """
        builder = await self.factory.new_remote(builder_ref)
        previous = await self.factory.new_remote(previous_image_ref)

        try:
            metadata = BuilderImageMetadata.from_label(builder.label(BUILDER_METADATA_LABEL))
        except MetadataError as e:
            raise MetadataError(f"builder image '{builder.identifier()}': {e}") from e

        lifecycle_label = previous.label(LIFECYCLE_METADATA_LABEL)
        try:
            lifecycle = LifecycleMetadata.from_label(lifecycle_label)
        except MetadataError as e:
            raise MetadataError(f"image '{previous.identifier()}': {e}") from e
        if not lifecycle.run_image_top_layer:
            raise MetadataError(
                f"image '{previous.identifier()}': run image top layer not recorded"
            )

        run_image_ref = ImageRef(
            image=metadata.stack.run_image,
            namespace=builder_ref.namespace,
            secret_name=builder_ref.secret_name,
        )
        try:
            run_image = await self.factory.new_remote(run_image_ref)
        except RegistryError as e:
            raise type(e)(
                f"unable to fetch remote run image '{run_image_ref.image}': {e}"
            ) from e

        logger.info(
            "Rebasing %s onto run image %s", previous.identifier(), run_image.identifier()
        )
        rebased = await previous.rebase(
            lifecycle.run_image_top_layer,
            run_image,
            label_updates={
                LIFECYCLE_METADATA_LABEL: updated_lifecycle_label(lifecycle_label, run_image)
            },
            created_at=created_at,
        )
        return read_built_image(rebased)
