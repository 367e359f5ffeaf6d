"""Image reference parsing."""

import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import ImageReferenceError
from ..utils.digest import validate_digest

DEFAULT_REGISTRY = "index.docker.io"
DEFAULT_TAG = "latest"

_DOCKER_HUB_ALIASES = ("docker.io", "registry-1.docker.io", DEFAULT_REGISTRY)
_REPOSITORY_PATTERN = re.compile(r"^[a-z0-9]+(?:[._-]+[a-z0-9]+)*(?:/[a-z0-9]+(?:[._-]+[a-z0-9]+)*)*$")
_TAG_PATTERN = re.compile(r"^[\w][\w.-]{0,127}$")


@dataclass(frozen=True)
class Reference:
    """A parsed image reference.

    Attributes:
        registry: Registry host, with port if any (e.g. "localhost:5000")
        repository: Repository path inside the registry (e.g. "library/nginx")
        tag: Tag, empty when the reference names a digest
        digest: Manifest digest, empty when the reference names a tag
    """

    registry: str
    repository: str
    tag: str = ""
    digest: str = ""

    @property
    def name(self) -> str:
        """Fully qualified repository name, "registry/repository"."""
        return f"{self.registry}/{self.repository}"

    @property
    def identifier(self) -> str:
        """Tag or digest used to address the manifest."""
        return self.digest or self.tag

    def __str__(self) -> str:
        if self.digest:
            return f"{self.name}@{self.digest}"
        return f"{self.name}:{self.tag}"


def _split_registry(name: str) -> tuple[str, str]:
    first, sep, rest = name.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        registry = DEFAULT_REGISTRY if first in _DOCKER_HUB_ALIASES else first
        return registry, rest
    return DEFAULT_REGISTRY, name


def split_repository_tag(image: str) -> tuple[str, str]:
    """Split "repo[:tag]" on the tag separator, ignoring registry ports.

    Examples:
        split_repository_tag("localhost:5000/app:v1")  # ("localhost:5000/app", "v1")
        split_repository_tag("cloudfoundry/run")       # ("cloudfoundry/run", "")
    """
    name = image.split("@", 1)[0]
    head, slash, last = name.rpartition("/")
    repo_part, colon, tag = last.partition(":")
    return f"{head}{slash}{repo_part}", tag if colon else ""


def parse_reference(image: str) -> Reference:
    """이미지 참조 문자열을 레지스트리, 저장소, 태그/digest로 파싱합니다.

    Docker Hub 규칙을 따릅니다: 레지스트리가 없으면 "index.docker.io",
    단일 경로 저장소에는 "library/"가 붙고, 태그가 없으면 "latest"를 사용합니다.

    Args:
        image: 이미지 참조 (예: "nginx", "localhost:5000/app:v1", "gcr.io/p/app@sha256:...")

    Returns:
        Reference: 파싱된 참조

    Raises:
        ImageReferenceError: 참조 형식이 잘못된 경우

    Examples:
        ref = parse_reference("builder/image")
        print(ref.name)  # index.docker.io/builder/image
    """
    if not isinstance(image, str) or not image or image != image.strip():
        raise ImageReferenceError(f"invalid image reference {image!r}")

    digest = ""
    name = image
    if "@" in image:
        name, digest = image.split("@", 1)
        if not validate_digest(digest):
            raise ImageReferenceError(f"invalid digest in image reference {image!r}")

    if name.rpartition("/")[2].endswith(":"):
        raise ImageReferenceError(f"empty tag in image reference {image!r}")

    name, tag = split_repository_tag(name)
    if tag and not _TAG_PATTERN.match(tag):
        raise ImageReferenceError(f"invalid tag in image reference {image!r}")
    if not tag and not digest:
        tag = DEFAULT_TAG

    registry, repository = _split_registry(name)
    if registry == DEFAULT_REGISTRY and "/" not in repository:
        repository = f"library/{repository}"

    if not _REPOSITORY_PATTERN.match(repository):
        raise ImageReferenceError(f"invalid repository in image reference {image!r}")

    return Reference(
        registry=registry,
        repository=repository,
        tag="" if digest else tag,
        digest=digest,
    )


def digest_of(image: str) -> Optional[str]:
    """Return the digest portion of "repo@digest", or None."""
    _, sep, digest = image.partition("@")
    return digest if sep and digest else None
