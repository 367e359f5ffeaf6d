"""Registry authenticators and credential resolvers."""

import base64
import binascii
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Protocol, Union

import aiofiles

from ..exceptions import AuthenticationError
from .reference import DEFAULT_REGISTRY, parse_reference
from .types import ImageRef

logger = logging.getLogger(__name__)

# Hosts under which docker config files store Docker Hub credentials
_DOCKER_HUB_KEYS = ("https://index.docker.io/v1/", "index.docker.io", "docker.io")


@dataclass(frozen=True)
class Anonymous:
    """No credentials; public pulls only."""

    def token_authorization(self) -> Optional[str]:
        return None

    def authorization(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class BasicCredentials:
    """Username/password pair, sent as basic auth or exchanged for a token."""

    username: str
    password: str

    def token_authorization(self) -> Optional[str]:
        return self.authorization()

    def authorization(self) -> Optional[str]:
        pair = f"{self.username}:{self.password}".encode("utf-8")
        return "Basic " + base64.b64encode(pair).decode("ascii")

    def __repr__(self) -> str:
        return f"BasicCredentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class BearerToken:
    """A pre-issued registry bearer token."""

    token: str

    def token_authorization(self) -> Optional[str]:
        return None

    def authorization(self) -> Optional[str]:
        return f"Bearer {self.token}"

    def __repr__(self) -> str:
        return "BearerToken(token='***')"


Authenticator = Union[Anonymous, BasicCredentials, BearerToken]


class CredentialResolver(Protocol):
    """Resolves the authenticator for the registry an ImageRef points at."""

    async def credential_for(self, ref: ImageRef) -> Authenticator: ...


class AnonymousCredentialResolver:
    """Resolver for public images."""

    async def credential_for(self, ref: ImageRef) -> Authenticator:
        return Anonymous()


class StaticCredentialResolver:
    """Resolves credentials from a fixed registry host mapping.

    References carrying a secret name must have credentials for their
    registry; references without one fall back to anonymous access.
    """

    def __init__(self, credentials: Mapping[str, Authenticator]) -> None:
        self.credentials = dict(credentials)

    async def credential_for(self, ref: ImageRef) -> Authenticator:
        registry = parse_reference(ref.image).registry
        if registry in self.credentials:
            return self.credentials[registry]
        if ref.has_secret:
            raise AuthenticationError(
                f"no credentials for registry '{registry}' (secret '{ref.secret_name}')"
            )
        return Anonymous()


def _registry_key(key: str) -> str:
    """Normalize a docker config ``auths`` key to a registry host."""
    host = key.split("://", 1)[-1].split("/", 1)[0]
    return DEFAULT_REGISTRY if key in _DOCKER_HUB_KEYS or host == "docker.io" else host


def parse_docker_config(data: str) -> dict[str, Authenticator]:
    """docker config.json 내용에서 레지스트리별 인증 정보를 추출합니다.

    Args:
        data: config.json 문자열 (``auths`` 섹션 사용)

    Returns:
        dict[str, Authenticator]: 레지스트리 호스트 → 인증 정보

    Raises:
        AuthenticationError: JSON 형식이나 auth 항목이 잘못된 경우

    Examples:
        creds = parse_docker_config('{"auths": {"gcr.io": {"auth": "dXNlcjpwYXNz"}}}')
        print(creds["gcr.io"].username)  # user
    """
    try:
        config = json.loads(data)
    except json.JSONDecodeError as e:
        raise AuthenticationError(f"Invalid docker config JSON: {e}") from e

    auths = config.get("auths", {}) if isinstance(config, dict) else None
    if not isinstance(auths, dict):
        raise AuthenticationError("docker config 'auths' must be an object")

    credentials: dict[str, Authenticator] = {}
    for key, entry in auths.items():
        if not isinstance(entry, dict):
            continue

        if entry.get("auth"):
            try:
                decoded = base64.b64decode(entry["auth"]).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as e:
                raise AuthenticationError(f"Invalid auth entry for '{key}': {e}") from e
            username, sep, password = decoded.partition(":")
            if not sep:
                raise AuthenticationError(f"Invalid auth entry for '{key}'")
            credentials[_registry_key(key)] = BasicCredentials(username, password)
        elif entry.get("username"):
            credentials[_registry_key(key)] = BasicCredentials(
                entry["username"], entry.get("password", "")
            )

    return credentials


class DockerConfigCredentialResolver:
    """Resolves credentials from a docker ``config.json`` file.

    The file is read on every call so rotated credentials are picked up.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        if path is None:
            config_dir = os.environ.get("DOCKER_CONFIG", str(Path.home() / ".docker"))
            path = Path(config_dir) / "config.json"
        self.path = Path(path)

    async def credential_for(self, ref: ImageRef) -> Authenticator:
        try:
            async with aiofiles.open(self.path, "r") as f:
                data = await f.read()
        except FileNotFoundError:
            logger.debug("docker config %s not found", self.path)
            data = "{}"
        except OSError as e:
            raise AuthenticationError(f"Cannot read docker config {self.path}: {e}") from e

        return await StaticCredentialResolver(parse_docker_config(data)).credential_for(ref)
