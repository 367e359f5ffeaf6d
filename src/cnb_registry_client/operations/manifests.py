"""Manifest parsing and construction."""

import json
from typing import Any, Optional

from ..core.media_types import DOCKER_CONFIG_V1, DOCKER_MANIFEST_V2, MANIFEST_LISTS
from ..core.types import BlobInfo, LayerInfo
from ..exceptions import ImageConfigError, ManifestError

_DESCRIPTOR_KEYS = ("mediaType", "size", "digest")


def encode_json(document: dict[str, Any]) -> bytes:
    """Serialize a manifest or config the way it is pushed."""
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def decode_document(raw: bytes, what: str) -> dict[str, Any]:
    """Decode a JSON object pulled from a registry.

    Raises:
        ImageConfigError: If the payload is not a JSON object
    """
    try:
        document = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ImageConfigError(f"Invalid {what} JSON: {e}") from e
    if not isinstance(document, dict):
        raise ImageConfigError(f"Invalid {what}: expected a JSON object")
    return document


def manifest_media_type(manifest: dict[str, Any], header_media_type: str = "") -> str:
    return manifest.get("mediaType") or header_media_type or DOCKER_MANIFEST_V2


def is_manifest_list(manifest: dict[str, Any], header_media_type: str = "") -> bool:
    media_type = manifest_media_type(manifest, header_media_type)
    return media_type in MANIFEST_LISTS or (
        "manifests" in manifest and "layers" not in manifest
    )


def _platform_key(platform: dict[str, Any]) -> str:
    parts = [platform.get("os", ""), platform.get("architecture", "")]
    if platform.get("variant"):
        parts.append(platform["variant"])
    return "/".join(parts)


def select_platform_manifest(index: dict[str, Any], platform: str) -> str:
    """Pick the child manifest digest matching a platform.

    A platform without variant ("linux/arm64") matches any variant.

    Raises:
        ManifestError: If no child manifest matches
    """
    wanted = platform.split("/")
    for child in index.get("manifests", []):
        candidate = _platform_key(child.get("platform", {})).split("/")
        if candidate[: len(wanted)] == wanted and child.get("digest"):
            return child["digest"]
    raise ManifestError(f"No manifest for platform {platform} in manifest list")


def config_descriptor(manifest: dict[str, Any]) -> BlobInfo:
    """Return the config blob descriptor of an image manifest.

    Raises:
        ImageConfigError: If the manifest has no usable config descriptor
    """
    config = manifest.get("config")
    if not isinstance(config, dict) or not config.get("digest"):
        raise ImageConfigError("Manifest has no config descriptor")
    return BlobInfo(
        digest=config["digest"],
        size=int(config.get("size", 0)),
        media_type=config.get("mediaType", DOCKER_CONFIG_V1),
    )


def image_layers(manifest: dict[str, Any], config: dict[str, Any]) -> tuple[LayerInfo, ...]:
    """Pair manifest layer descriptors with config diff IDs, in order.

    Raises:
        ImageConfigError: If descriptors and diff IDs do not line up
    """
    descriptors = manifest.get("layers")
    rootfs = config.get("rootfs") or {}
    diff_ids = rootfs.get("diff_ids")
    if not isinstance(descriptors, list) or not isinstance(diff_ids, list):
        raise ImageConfigError("Image is missing layer descriptors or rootfs diff_ids")
    if len(descriptors) != len(diff_ids):
        raise ImageConfigError(
            f"Image has {len(descriptors)} layers but {len(diff_ids)} diff_ids"
        )
    if not all(isinstance(d, dict) and d.get("digest") for d in descriptors):
        raise ImageConfigError("Image has a layer descriptor without digest")

    return tuple(
        LayerInfo(
            digest=descriptor["digest"],
            size=int(descriptor.get("size", 0)),
            media_type=descriptor.get("mediaType", ""),
            diff_id=diff_id,
            extra={k: v for k, v in descriptor.items() if k not in _DESCRIPTOR_KEYS},
        )
        for descriptor, diff_id in zip(descriptors, diff_ids)
    )


def create_manifest_v2(
    config: BlobInfo,
    layers: list[LayerInfo],
    media_type: str = DOCKER_MANIFEST_V2,
    annotations: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """Build an image manifest document."""
    manifest: dict[str, Any] = {
        "schemaVersion": 2,
        "mediaType": media_type,
        "config": config.to_descriptor(),
        "layers": [layer.to_descriptor() for layer in layers],
    }
    if annotations:
        manifest["annotations"] = dict(annotations)
    return manifest
