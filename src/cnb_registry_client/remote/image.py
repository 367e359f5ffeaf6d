"""Remote image accessors."""

import abc
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from ..core.auth import Authenticator
from ..core.reference import Reference, parse_reference
from ..core.registry_client import RegistryClient
from ..core.session import create_session
from ..core.types import ImageRef, LayerInfo, RegistryConfig
from ..exceptions import ImageConfigError, RegistryError
from ..operations.blobs import copy_blob
from ..operations.manifests import (
    config_descriptor,
    decode_document,
    image_layers,
    is_manifest_list,
    manifest_media_type,
    select_platform_manifest,
)
from ..utils.digest import calculate_digest, verify_digest
from ..utils.timestamps import parse_timestamp, utc_now
from .mutate import rebase_image
from .subimage import SubImage

logger = logging.getLogger(__name__)


def env_value(env: Sequence[str], key: str) -> str:
    """Return the value of the first ``KEY=VALUE`` entry for key, or ""."""
    for entry in env:
        name, _, value = entry.partition("=")
        if name == key:
            return value
    return ""


class RemoteImage(abc.ABC):
    """A snapshot of one registry image's manifest and config."""

    @abc.abstractmethod
    def label(self, key: str) -> str:
        """Config label value, or "" when absent."""

    @abc.abstractmethod
    def env(self, key: str) -> str:
        """Config environment variable value, or "" when absent."""

    @abc.abstractmethod
    def created_at(self) -> datetime:
        """Config creation time in UTC, ``datetime.min`` when unset."""

    @abc.abstractmethod
    def identifier(self) -> str:
        """Canonical "repository@digest" of the image."""

    @property
    @abc.abstractmethod
    def layers(self) -> Sequence[LayerInfo]:
        """Layer descriptors, base first."""

    @abc.abstractmethod
    async def rebase(
        self,
        top_layer: str,
        new_base: "RemoteImage",
        *,
        label_updates: Optional[Mapping[str, str]] = None,
        created_at: Optional[datetime] = None,
    ) -> "RemoteImage":
        """Replace the layers up to ``top_layer`` with ``new_base`` and publish."""


class RegistryImage(RemoteImage):
    """Registry-backed remote image.

    Instances are built with :meth:`fetch`; every network call opens its own
    session so the handle holds no open connections.
    """

    def __init__(
        self,
        ref: ImageRef,
        reference: Reference,
        authenticator: Authenticator,
        config: RegistryConfig,
        raw_manifest: bytes,
        manifest: dict[str, Any],
        config_file: dict[str, Any],
        media_type: str = "",
    ) -> None:
        self.ref = ref
        self.reference = reference
        self.authenticator = authenticator
        self.config = config
        self.raw_manifest = raw_manifest
        self.manifest = manifest
        self.config_file = config_file
        self.media_type = manifest_media_type(manifest, media_type)
        self.digest = calculate_digest(raw_manifest)
        self._layers = image_layers(manifest, config_file)

    @classmethod
    async def fetch(
        cls,
        ref: ImageRef,
        authenticator: Authenticator,
        config: Optional[RegistryConfig] = None,
    ) -> "RegistryImage":
        """레지스트리에서 이미지의 매니페스트와 설정을 가져옵니다.

        매니페스트 리스트(멀티 플랫폼)는 설정된 플랫폼의 이미지로 해석됩니다.

        Args:
            ref: 이미지 참조와 인증 컨텍스트
            authenticator: 해당 레지스트리 인증 정보
            config: 레지스트리 설정 (기본값: RegistryConfig())

        Returns:
            RegistryImage: 가져온 이미지 스냅샷

        Raises:
            ImageReferenceError: 참조 형식이 잘못된 경우
            AuthenticationError: 인증이 거부된 경우
            RegistryConnectionError: 레지스트리에 연결할 수 없는 경우
            ManifestError: 매니페스트를 가져올 수 없는 경우
            ImageConfigError: 매니페스트나 설정이 잘못된 경우

        Examples:
            image = await RegistryImage.fetch(ImageRef.no_auth("nginx:alpine"), Anonymous())
            print(image.identifier())
        """
        config = config or RegistryConfig()
        reference = parse_reference(ref.image)
        repository = reference.repository

        session = await create_session(config)
        try:
            client = RegistryClient(session, reference.registry, authenticator, config)
            _, media_type, raw_manifest = await client.get_manifest(
                repository, reference.identifier
            )
            manifest = decode_document(raw_manifest, f"manifest of '{reference.name}'")

            if is_manifest_list(manifest, media_type):
                child = select_platform_manifest(manifest, config.platform)
                logger.debug("Resolved %s to %s for %s", reference, child, config.platform)
                _, media_type, raw_manifest = await client.get_manifest(repository, child)
                manifest = decode_document(raw_manifest, f"manifest of '{reference.name}'")

            descriptor = config_descriptor(manifest)
            raw_config = await client.get_blob(repository, descriptor.digest)
            if not verify_digest(raw_config, descriptor.digest):
                raise ImageConfigError(
                    f"Config blob of '{reference.name}' does not match {descriptor.digest}"
                )
            config_file = decode_document(raw_config, f"config of '{reference.name}'")
        except RegistryError as e:
            raise type(e)(f"failed to fetch image '{reference.name}': {e}") from e
        finally:
            await session.close()

        try:
            return cls(
                ref=ref,
                reference=reference,
                authenticator=authenticator,
                config=config,
                raw_manifest=raw_manifest,
                manifest=manifest,
                config_file=config_file,
                media_type=media_type,
            )
        except ImageConfigError as e:
            raise ImageConfigError(f"failed to read image '{reference.name}': {e}") from e

    @property
    def layers(self) -> Sequence[LayerInfo]:
        return self._layers

    @property
    def _runtime_config(self) -> dict[str, Any]:
        return self.config_file.get("config") or {}

    def label(self, key: str) -> str:
        labels = self._runtime_config.get("Labels") or {}
        return labels.get(key, "")

    def env(self, key: str) -> str:
        return env_value(self._runtime_config.get("Env") or [], key)

    def created_at(self) -> datetime:
        created = self.config_file.get("created")
        if created is None:
            return datetime.min.replace(tzinfo=timezone.utc)
        try:
            return parse_timestamp(created)
        except ValueError as e:
            raise ImageConfigError(
                f"failed to get creation time for image '{self.reference.name}': {e}"
            ) from e

    def identifier(self) -> str:
        return f"{self.reference.name}@{self.digest}"

    async def rebase(
        self,
        top_layer: str,
        new_base: RemoteImage,
        *,
        label_updates: Optional[Mapping[str, str]] = None,
        created_at: Optional[datetime] = None,
    ) -> "RegistryImage":
        """이미지의 베이스 레이어를 새 베이스 이미지로 교체하여 같은 저장소에 푸시합니다.

        ``top_layer`` 까지의 레이어(기존 베이스)는 ``new_base`` 의 레이어로 바뀌고,
        그 위의 애플리케이션 레이어는 내용과 순서가 그대로 유지됩니다.
        경계 레이어를 찾지 못하면 레지스트리에 아무것도 쓰지 않고 실패합니다.

        Args:
            top_layer: 기존 베이스의 마지막 레이어 diff ID
            new_base: 새 베이스 이미지 (RegistryImage)
            label_updates: 새 설정에 덮어쓸 라벨 (선택사항)
            created_at: 새 설정의 생성 시각 (기본값: 현재 시각)

        Returns:
            RegistryImage: 푸시된 새 이미지

        Raises:
            LayerBoundaryError: 경계 레이어가 이미지에 없는 경우
            BlobUploadError: 레이어나 설정 업로드 실패 시
            ManifestError: 매니페스트 업로드 실패 시

        Examples:
            rebased = await image.rebase(top_layer, new_run_image)
            print(rebased.identifier())
        """
        if not isinstance(new_base, RegistryImage):
            raise TypeError("expected new base to be a registry image")

        old_base = SubImage.from_layers(self.layers, top_layer)
        rebased = rebase_image(
            self.manifest,
            self.config_file,
            old_base,
            new_base.config_file,
            new_base.layers,
            created_at or utc_now(),
            label_updates,
            media_type=self.media_type,
        )

        repository = self.reference.repository
        # a digest reference cannot be overwritten; publish by the new digest
        target_ref = self.reference.tag or rebased.digest

        session = await create_session(self.config)
        try:
            target = RegistryClient(
                session, self.reference.registry, self.authenticator, self.config
            )
            source = RegistryClient(
                session, new_base.reference.registry, new_base.authenticator, self.config
            )
            source_repository = new_base.reference.repository

            copied = 0
            for layer in rebased.base_layers:
                if await copy_blob(target, repository, source, source_repository, layer):
                    copied += 1
            for layer in rebased.app_layers:
                await copy_blob(target, repository, target, repository, layer)

            config_digest = rebased.manifest["config"]["digest"]
            if not await target.check_blob_exists(repository, config_digest):
                await target.upload_blob(repository, rebased.raw_config, config_digest)

            await target.put_manifest(
                repository, target_ref, rebased.raw_manifest, self.media_type
            )
        except RegistryError as e:
            raise type(e)(f"failed to rebase image '{self.reference.name}': {e}") from e
        finally:
            await session.close()

        logger.info(
            "Rebased %s onto %s (%d base layers copied) -> %s",
            self.identifier(),
            new_base.identifier(),
            copied,
            rebased.digest,
        )

        return RegistryImage(
            ref=self.ref,
            reference=self.reference,
            authenticator=self.authenticator,
            config=self.config,
            raw_manifest=rebased.raw_manifest,
            manifest=rebased.manifest,
            config_file=rebased.config,
            media_type=self.media_type,
        )
