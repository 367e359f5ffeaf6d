"""Image rebase orchestration."""

import logging
from datetime import datetime
from typing import Optional

from .core.types import ImageRef
from .exceptions import LayerBoundaryError
from .remote.factory import RemoteImageFactory
from .remote.image import RemoteImage
from .remote.subimage import SubImage

logger = logging.getLogger(__name__)


def top_layer_of(base: RemoteImage) -> str:
    """Diff ID of the last layer of a base image.

    Raises:
        LayerBoundaryError: If the base image has no layers
    """
    if not base.layers:
        raise LayerBoundaryError(f"base image '{base.identifier()}' has no layers")
    return base.layers[-1].diff_id


def derive_top_layer(original: RemoteImage, old_base: RemoteImage) -> str:
    """Locate the old base's top layer in the original image.

    The old base's layers must be the bottom layers of the original, in order.

    Raises:
        LayerBoundaryError: If the original was not built on the old base
    """
    top_layer = top_layer_of(old_base)
    sub_image = SubImage.from_layers(original.layers, top_layer)
    if sub_image.diff_ids != [layer.diff_id for layer in old_base.layers]:
        raise LayerBoundaryError(
            f"image '{original.identifier()}' is not based on '{old_base.identifier()}'"
        )
    return top_layer


class ImageRebaser:
    """Rebases images onto a new base image."""

    def __init__(self, factory: RemoteImageFactory) -> None:
        self.factory = factory

    async def rebase(
        self,
        original: ImageRef,
        new_base: ImageRef,
        *,
        old_base: Optional[ImageRef] = None,
        top_layer: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> RemoteImage:
        """이미지의 베이스 레이어를 새 베이스로 교체하고 원래 저장소에 푸시합니다.

        경계 레이어는 ``top_layer`` 로 직접 지정하거나, ``old_base`` 이미지의
        마지막 레이어로부터 유도합니다. 둘 중 정확히 하나만 지정해야 합니다.
        두 방식은 같은 경계에 대해 동일한 이미지를 만듭니다.

        Args:
            original: 리베이스할 이미지
            new_base: 새 베이스 이미지
            old_base: 현재 베이스 이미지 (선택사항)
            top_layer: 현재 베이스의 마지막 레이어 diff ID (선택사항)
            created_at: 새 이미지의 생성 시각 (기본값: 현재 시각)

        Returns:
            RemoteImage: 푸시된 새 이미지; ``identifier()`` 가 새 digest를 반환

        Raises:
            ValueError: old_base와 top_layer를 모두 또는 둘 다 지정하지 않은 경우
            LayerBoundaryError: 경계 레이어를 찾을 수 없는 경우 (레지스트리 쓰기 없음)
            RegistryError: 레지스트리 작업 실패 시

        Examples:
            rebaser = ImageRebaser(RegistryImageFactory(resolver))
            rebased = await rebaser.rebase(
                ImageRef("gcr.io/team/app:latest", secret_name="regcred"),
                ImageRef.no_auth("gcr.io/paketo-buildpacks/run:base-cnb"),
                old_base=ImageRef.no_auth("gcr.io/paketo-buildpacks/run@sha256:..."),
            )
        """
        if (old_base is None) == (top_layer is None):
            raise ValueError("exactly one of old_base or top_layer must be given")

        original_image = await self.factory.new_remote(original)
        old_base_image = await self.factory.new_remote(old_base) if old_base else None
        new_base_image = await self.factory.new_remote(new_base)

        if old_base_image is not None:
            top_layer = derive_top_layer(original_image, old_base_image)
            logger.debug(
                "Derived boundary %s of %s from %s",
                top_layer,
                original_image.identifier(),
                old_base_image.identifier(),
            )

        return await original_image.rebase(top_layer, new_base_image, created_at=created_at)
