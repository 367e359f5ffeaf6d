"""Buildpack metadata carried in image labels."""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..exceptions import MetadataError

BUILDER_METADATA_LABEL = "io.buildpacks.builder.metadata"
BUILD_METADATA_LABEL = "io.buildpacks.build.metadata"
LIFECYCLE_METADATA_LABEL = "io.buildpacks.lifecycle.metadata"


def _field(data: Any, key: str, kind: type, where: str) -> Any:
    if not isinstance(data, dict):
        raise MetadataError(f"{where}: expected an object")
    value = data.get(key)
    if not isinstance(value, kind):
        raise MetadataError(f"{where}: '{key}' must be {kind.__name__}")
    return value


def load_label(payload: str, label: str) -> dict[str, Any]:
    """Decode a metadata label payload.

    Raises:
        MetadataError: If the label is empty or not a JSON object
    """
    if not payload:
        raise MetadataError(f"label '{label}' not present")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MetadataError(f"label '{label}' is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise MetadataError(f"label '{label}' must be a JSON object")
    return data


@dataclass(frozen=True)
class BuildpackMetadata:
    id: str
    version: str

    @classmethod
    def from_dict(cls, data: Any) -> "BuildpackMetadata":
        return cls(
            id=_field(data, "id", str, "buildpack"),
            version=_field(data, "version", str, "buildpack"),
        )


def parse_buildpacks(data: dict[str, Any], where: str) -> list[BuildpackMetadata]:
    return [
        BuildpackMetadata.from_dict(entry)
        for entry in _field(data, "buildpacks", list, where)
    ]


@dataclass(frozen=True)
class StackMetadata:
    """Stack descriptor; names the run image by tag."""

    run_image: str

    @classmethod
    def from_dict(cls, data: Any, where: str) -> "StackMetadata":
        stack = _field(data, "stack", dict, where)
        run_image = _field(stack, "runImage", dict, f"{where} stack")
        return cls(run_image=_field(run_image, "image", str, f"{where} stack runImage"))


@dataclass(frozen=True)
class BuilderImageMetadata:
    buildpacks: list[BuildpackMetadata]
    stack: StackMetadata

    @classmethod
    def from_label(cls, payload: str) -> "BuilderImageMetadata":
        data = load_label(payload, BUILDER_METADATA_LABEL)
        return cls(
            buildpacks=parse_buildpacks(data, BUILDER_METADATA_LABEL),
            stack=StackMetadata.from_dict(data, BUILDER_METADATA_LABEL),
        )


@dataclass(frozen=True)
class LifecycleMetadata:
    """Run image actually used by a build, as recorded by the lifecycle."""

    run_image_top_layer: str
    run_image_reference: str
    stack: StackMetadata

    @classmethod
    def from_label(cls, payload: str) -> "LifecycleMetadata":
        data = load_label(payload, LIFECYCLE_METADATA_LABEL)
        run_image = _field(data, "runImage", dict, LIFECYCLE_METADATA_LABEL)
        where = f"{LIFECYCLE_METADATA_LABEL} runImage"

        top_layer = run_image.get("topLayer", "")
        if not isinstance(top_layer, str):
            raise MetadataError(f"{where}: 'topLayer' must be str")

        return cls(
            run_image_top_layer=top_layer,
            run_image_reference=_field(run_image, "reference", str, where),
            stack=StackMetadata.from_dict(data, LIFECYCLE_METADATA_LABEL),
        )


@dataclass(frozen=True)
class BuilderImage:
    buildpacks: list[BuildpackMetadata]
    run_image: str
    identifier: str


@dataclass(frozen=True)
class BuiltImage:
    identifier: str
    completed_at: datetime
    buildpacks: list[BuildpackMetadata]
    run_image: str
