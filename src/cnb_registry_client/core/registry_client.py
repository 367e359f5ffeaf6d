"""Docker Registry API v2 async client implementation."""

import asyncio
import logging
import re
from typing import AsyncIterator, Mapping, Optional, Sequence, Union
from urllib.parse import urlencode, urljoin

import aiohttp

from ..exceptions import (
    AuthenticationError,
    BlobError,
    BlobUploadError,
    ManifestError,
    RegistryConnectionError,
)
from ..utils.digest import calculate_digest, validate_digest
from .auth import Anonymous, Authenticator
from .media_types import MANIFEST_ACCEPT
from .session import parse_json_response
from .types import RegistryConfig, RequestResult

logger = logging.getLogger(__name__)

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


def pull_scope(repository: str) -> str:
    return f"repository:{repository}:pull"


def push_scope(repository: str) -> str:
    return f"repository:{repository}:pull,push"


def scope_actions(scopes: Sequence[str]) -> frozenset[tuple[str, str]]:
    """Expand "repository:name:pull,push" scopes into (resource, action) pairs."""
    pairs = set()
    for scope in scopes:
        resource, _, actions = scope.rpartition(":")
        pairs.update((resource, action) for action in actions.split(","))
    return frozenset(pairs)


async def _iter_chunks(data: bytes, chunk_size: int) -> AsyncIterator[bytes]:
    for offset in range(0, len(data), chunk_size):
        yield data[offset : offset + chunk_size]


def parse_challenge(header: str) -> tuple[str, dict[str, str]]:
    """Split a WWW-Authenticate header into scheme and parameters."""
    scheme, _, params = header.strip().partition(" ")
    return scheme.lower(), dict(_CHALLENGE_PARAM.findall(params))


class RegistryClient:
    """Docker Registry API v2 async client bound to one registry host.

    The client shares the caller's aiohttp session and answers bearer token
    challenges with its authenticator. Tokens live only as long as the client;
    a token granted for a wider scope set also serves narrower requests.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        registry: str,
        authenticator: Optional[Authenticator] = None,
        config: Optional[RegistryConfig] = None,
    ) -> None:
        """Initialize the registry client.

        Args:
            session: Open aiohttp session
            registry: Registry host (e.g., localhost:5000)
            authenticator: Credentials for this registry
            config: Registry settings
        """
        self.session = session
        self.registry = registry
        self.authenticator = authenticator or Anonymous()
        self.config = config or RegistryConfig()
        self.registry_url = self.config.base_url(registry)
        self._tokens: list[tuple[frozenset[tuple[str, str]], str]] = []

    def _authorization(self, scopes: Sequence[str]) -> Optional[str]:
        wanted = scope_actions(scopes)
        for granted, token in reversed(self._tokens):
            if wanted <= granted:
                return f"Bearer {token}"
        return self.authenticator.authorization()

    async def _authenticate(self, challenge: str, scopes: Sequence[str]) -> bool:
        """Answer a bearer challenge; return True when a token was obtained."""
        scheme, params = parse_challenge(challenge)
        if scheme != "bearer" or "realm" not in params:
            return False

        query = [("scope", scope) for scope in scopes]
        if "service" in params:
            query.insert(0, ("service", params["service"]))
        url = f"{params['realm']}?{urlencode(query)}"

        logger.debug("Requesting token from %s for %s", params["realm"], scopes)
        headers = {}
        authorization = self.authenticator.token_authorization()
        if authorization:
            headers["Authorization"] = authorization

        try:
            async with self.session.get(url, headers=headers) as resp:
                body = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RegistryConnectionError(
                f"Failed to reach token service for {self.registry}: {e}"
            ) from e

        if status != 200:
            raise AuthenticationError(
                f"Token request for {self.registry} rejected with status {status}"
            )

        try:
            payload = parse_json_response(body)
        except ValueError as e:
            raise AuthenticationError(f"Invalid token response from {self.registry}: {e}") from e

        token = None
        if isinstance(payload, dict):
            token = payload.get("token") or payload.get("access_token")
        if not token:
            raise AuthenticationError(f"Token response from {self.registry} has no token")

        self._tokens.append((scope_actions(scopes), token))
        return True

    async def _send(
        self,
        method: str,
        path: str,
        scopes: Sequence[str],
        data: Optional[bytes] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> RequestResult:
        """Send one request, retrying once after an auth challenge.

        Raises:
            RegistryConnectionError: On transport failure
            AuthenticationError: If the registry keeps rejecting the request
        """
        url = path if path.startswith("http") else urljoin(self.registry_url, path)

        for attempt in range(2):
            request_headers = dict(headers or {})
            authorization = self._authorization(scopes)
            if authorization:
                request_headers["Authorization"] = authorization

            try:
                async with self.session.request(
                    method, url, data=data, headers=request_headers
                ) as resp:
                    body = await resp.read()
                    result = RequestResult(
                        status=resp.status,
                        headers={k.lower(): v for k, v in resp.headers.items()},
                        body=body,
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                raise RegistryConnectionError(
                    f"{method} {url} failed: {e!r}"
                ) from e

            logger.debug("%s %s -> %d", method, url, result.status)

            if result.status == 401 and attempt == 0:
                challenge = result.headers.get("www-authenticate", "")
                if await self._authenticate(challenge, scopes):
                    continue
            break

        if result.status in (401, 403):
            raise AuthenticationError(
                f"{method} {url} unauthorized (status {result.status})"
            )
        return result

    def _location(self, result: RequestResult) -> str:
        location = result.headers.get("location", "")
        if not location.startswith("http"):
            location = urljoin(self.registry_url, location)
        return location

    async def check_registry_v2(self) -> bool:
        """Check if the registry supports v2 API."""
        result = await self._send("GET", "/v2/", scopes=())
        return result.status == 200

    async def get_manifest(self, repository: str, reference: str) -> tuple[str, str, bytes]:
        """Retrieve a manifest from the registry.

        Args:
            repository: Repository name
            reference: Tag or digest reference

        Returns:
            (manifest digest, media type, raw manifest bytes)

        Raises:
            ManifestError: If retrieval fails
        """
        result = await self._send(
            "GET",
            f"/v2/{repository}/manifests/{reference}",
            scopes=[pull_scope(repository)],
            headers={"Accept": MANIFEST_ACCEPT},
        )
        if result.status == 404:
            raise ManifestError(
                f"Manifest unknown for '{self.registry}/{repository}:{reference}'"
            )
        if result.status != 200:
            raise ManifestError(
                f"Failed to get manifest for '{self.registry}/{repository}:{reference}': "
                f"status {result.status}"
            )

        digest = calculate_digest(result.body)
        if validate_digest(reference) and reference != digest:
            raise ManifestError(
                f"Manifest digest mismatch for '{self.registry}/{repository}': "
                f"requested {reference}, got {digest}"
            )

        media_type = result.headers.get("content-type", "").split(";", 1)[0].strip()
        return digest, media_type, result.body

    async def put_manifest(
        self, repository: str, reference: str, manifest: bytes, media_type: str
    ) -> str:
        """Upload a manifest to the registry.

        Returns:
            Manifest digest

        Raises:
            ManifestError: If upload fails
        """
        result = await self._send(
            "PUT",
            f"/v2/{repository}/manifests/{reference}",
            scopes=[push_scope(repository)],
            data=manifest,
            headers={"Content-Type": media_type},
        )
        if result.status not in (200, 201):
            raise ManifestError(
                f"Failed to upload manifest to '{self.registry}/{repository}:{reference}': "
                f"status {result.status} {result.body[:200]!r}"
            )
        return result.headers.get("docker-content-digest") or calculate_digest(manifest)

    async def get_blob(self, repository: str, digest: str) -> bytes:
        """Download a blob.

        Raises:
            BlobError: If the blob is missing or retrieval fails
        """
        result = await self._send(
            "GET", f"/v2/{repository}/blobs/{digest}", scopes=[pull_scope(repository)]
        )
        if result.status != 200:
            raise BlobError(
                f"Failed to get blob {digest} from '{self.registry}/{repository}': "
                f"status {result.status}"
            )
        return result.body

    async def stream_blob(self, repository: str, digest: str) -> AsyncIterator[bytes]:
        """Download a blob as chunks of ``config.chunk_size`` bytes.

        Args:
            repository: Repository name
            digest: Blob digest

        Yields:
            Blob content chunks

        Raises:
            BlobError: If the blob is missing or retrieval fails
            RegistryConnectionError: On transport failure
        """
        path = f"/v2/{repository}/blobs/{digest}"
        scopes = [pull_scope(repository)]
        source = f"'{self.registry}/{repository}'"

        # HEAD answers any token challenge before the body is streamed
        result = await self._send("HEAD", path, scopes)
        if result.status != 200:
            raise BlobError(f"Failed to get blob {digest} from {source}: status {result.status}")

        headers = {}
        authorization = self._authorization(scopes)
        if authorization:
            headers["Authorization"] = authorization

        url = urljoin(self.registry_url, path)
        try:
            async with self.session.get(url, headers=headers) as resp:
                if resp.status != 200:
                    raise BlobError(
                        f"Failed to get blob {digest} from {source}: status {resp.status}"
                    )
                async for chunk in resp.content.iter_chunked(self.config.chunk_size):
                    yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RegistryConnectionError(f"GET {url} failed: {e!r}") from e

    async def check_blob_exists(self, repository: str, digest: str) -> bool:
        """Check if a blob exists in the registry."""
        result = await self._send(
            "HEAD", f"/v2/{repository}/blobs/{digest}", scopes=[pull_scope(repository)]
        )
        return result.status == 200

    async def mount_blob(
        self, repository: str, digest: str, from_repository: str
    ) -> Optional[str]:
        """Try a cross-repository blob mount.

        Returns:
            None when the blob was mounted, otherwise the upload URL the
            registry opened instead

        Raises:
            BlobUploadError: If the registry refuses both mount and upload
        """
        query = urlencode({"mount": digest, "from": from_repository})
        result = await self._send(
            "POST",
            f"/v2/{repository}/blobs/uploads/?{query}",
            scopes=[push_scope(repository), pull_scope(from_repository)],
        )
        if result.status == 201:
            logger.debug("Mounted %s from %s into %s", digest, from_repository, repository)
            return None
        if result.status == 202:
            return self._location(result)
        raise BlobUploadError(
            f"Failed to mount blob {digest} into '{self.registry}/{repository}': "
            f"status {result.status}"
        )

    async def upload_blob(
        self,
        repository: str,
        data: Union[bytes, AsyncIterator[bytes]],
        digest: str,
        location: Optional[str] = None,
    ) -> str:
        """Upload a blob to the registry in chunks.

        Args:
            repository: Repository name
            data: Blob data, or an async iterator of chunks
            digest: Expected blob digest
            location: Upload URL of an already opened upload session

        Returns:
            Blob digest

        Raises:
            BlobUploadError: If upload fails
        """
        if not validate_digest(digest):
            raise ValueError(f"Invalid digest format: {digest}")

        scopes = [push_scope(repository)]
        target = f"'{self.registry}/{repository}'"

        if location is None:
            result = await self._send("POST", f"/v2/{repository}/blobs/uploads/", scopes)
            if result.status != 202:
                raise BlobUploadError(
                    f"Failed to start upload to {target}: status {result.status}"
                )
            location = self._location(result)

        if not hasattr(data, "__aiter__"):
            data = _iter_chunks(data, self.config.chunk_size)

        offset = 0
        async for chunk in data:
            if not chunk:
                continue
            result = await self._send(
                "PATCH",
                location,
                scopes,
                data=chunk,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Range": f"{offset}-{offset + len(chunk) - 1}",
                },
            )
            if result.status != 202:
                raise BlobUploadError(
                    f"Failed to upload chunk of {digest} to {target}: status {result.status}"
                )
            location = self._location(result)
            offset += len(chunk)

        separator = "&" if "?" in location else "?"
        result = await self._send(
            "PUT",
            f"{location}{separator}{urlencode({'digest': digest})}",
            scopes,
            headers={"Content-Length": "0"},
        )
        if result.status not in (201, 204):
            raise BlobUploadError(
                f"Failed to finalize upload of {digest} to {target}: status {result.status}"
            )
        return digest
