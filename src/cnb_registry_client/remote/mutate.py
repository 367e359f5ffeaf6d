"""Pure construction of a rebased image manifest and config."""

import copy
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..core.types import BlobInfo, LayerInfo
from ..operations.manifests import (
    config_descriptor,
    create_manifest_v2,
    encode_json,
    manifest_media_type,
)
from ..utils.digest import calculate_digest
from ..utils.timestamps import format_timestamp
from .subimage import SubImage


@dataclass(frozen=True)
class RebasedImage:
    """Manifest and config of a rebased image, ready to push."""

    manifest: dict[str, Any]
    raw_manifest: bytes
    config: dict[str, Any]
    raw_config: bytes
    base_layers: tuple[LayerInfo, ...]
    app_layers: tuple[LayerInfo, ...]

    @property
    def digest(self) -> str:
        return calculate_digest(self.raw_manifest)

    @property
    def layers(self) -> tuple[LayerInfo, ...]:
        return self.base_layers + self.app_layers


def history_above(history: Sequence[dict[str, Any]], layer_count: int) -> list[dict[str, Any]]:
    """Return history entries after the first ``layer_count`` layer-producing entries."""
    seen = 0
    for index, entry in enumerate(history):
        if seen == layer_count:
            return list(history[index:])
        if not entry.get("empty_layer"):
            seen += 1
    return []


def rebase_config(
    original_config: dict[str, Any],
    new_base_config: dict[str, Any],
    old_base: SubImage,
    new_base_layers: Sequence[LayerInfo],
    created_at: datetime,
    label_updates: Optional[Mapping[str, str]] = None,
) -> dict[str, Any]:
    """Derive the rebased config from the original's.

    Everything but ``created``, ``rootfs``, ``history`` and the updated
    labels is carried over from the original config unchanged.
    """
    config = copy.deepcopy(original_config)
    config["created"] = format_timestamp(created_at)
    config["rootfs"] = {
        "type": "layers",
        "diff_ids": [layer.diff_id for layer in new_base_layers]
        + [layer.diff_id for layer in old_base.upper_layers()],
    }

    if "history" in original_config:
        config["history"] = copy.deepcopy(new_base_config.get("history") or []) + (
            history_above(original_config["history"] or [], len(old_base))
        )

    if label_updates:
        runtime = config.setdefault("config", {})
        labels = dict(runtime.get("Labels") or {})
        labels.update(label_updates)
        runtime["Labels"] = labels

    return config


def rebase_image(
    original_manifest: dict[str, Any],
    original_config: dict[str, Any],
    old_base: SubImage,
    new_base_config: dict[str, Any],
    new_base_layers: Sequence[LayerInfo],
    created_at: datetime,
    label_updates: Optional[Mapping[str, str]] = None,
    media_type: Optional[str] = None,
) -> RebasedImage:
    """Swap the layers of ``old_base`` in the original image for a new base.

    The resulting layer list is the new base's layers followed by the
    original's layers above the boundary, descriptors copied verbatim.
    """
    config = rebase_config(
        original_config,
        new_base_config,
        old_base,
        new_base_layers,
        created_at,
        label_updates,
    )
    raw_config = encode_json(config)

    config_blob = BlobInfo(
        digest=calculate_digest(raw_config),
        size=len(raw_config),
        media_type=config_descriptor(original_manifest).media_type,
    )

    base_layers = tuple(new_base_layers)
    app_layers = tuple(old_base.upper_layers())
    manifest = create_manifest_v2(
        config_blob,
        list(base_layers + app_layers),
        media_type=media_type or manifest_media_type(original_manifest),
        annotations=original_manifest.get("annotations"),
    )

    return RebasedImage(
        manifest=manifest,
        raw_manifest=encode_json(manifest),
        config=config,
        raw_config=raw_config,
        base_layers=base_layers,
        app_layers=app_layers,
    )
