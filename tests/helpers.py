"""Test doubles: in-memory remote images and an in-process fake registry."""

import base64
import json
import uuid
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web

from cnb_registry_client.core.media_types import (
    DOCKER_CONFIG_V1,
    DOCKER_LAYER,
    DOCKER_MANIFEST_LIST_V2,
    DOCKER_MANIFEST_V2,
)
from cnb_registry_client.core.types import ImageRef, LayerInfo
from cnb_registry_client.exceptions import ManifestError
from cnb_registry_client.remote.image import RemoteImage
from cnb_registry_client.remote.subimage import SubImage
from cnb_registry_client.utils.digest import calculate_digest

CREATED_AT = datetime(2019, 5, 1, 12, 30, 0, tzinfo=timezone.utc)
REBASED_AT = datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_layer(name: str) -> LayerInfo:
    """Layer descriptor with digest and diff ID derived from a name."""
    return LayerInfo(
        digest=calculate_digest(f"blob:{name}".encode()),
        size=len(name),
        media_type=DOCKER_LAYER,
        diff_id=calculate_digest(f"diff:{name}".encode()),
    )


class FakeRemoteImage(RemoteImage):
    """In-memory RemoteImage holding labels, env and layers directly."""

    def __init__(self, repo_name: str, digest: str, layers=None) -> None:
        self.repo_name = repo_name
        self.digest = digest
        self.labels: dict[str, str] = {}
        self.env_vars: dict[str, str] = {}
        self.created = CREATED_AT
        self._layers = list(layers or [])
        self.rebase_calls: list[tuple[str, RemoteImage]] = []

    def set_label(self, key: str, value: str) -> None:
        self.labels[key] = value

    def set_env(self, key: str, value: str) -> None:
        self.env_vars[key] = value

    def label(self, key: str) -> str:
        return self.labels.get(key, "")

    def env(self, key: str) -> str:
        return self.env_vars.get(key, "")

    def created_at(self) -> datetime:
        return self.created

    def identifier(self) -> str:
        return f"{self.repo_name}@{self.digest}"

    @property
    def layers(self):
        return self._layers

    async def rebase(self, top_layer, new_base, *, label_updates=None, created_at=None):
        self.rebase_calls.append((top_layer, new_base))
        old_base = SubImage.from_layers(self._layers, top_layer)
        layers = list(new_base.layers) + list(old_base.upper_layers())

        digest = calculate_digest("".join(layer.digest for layer in layers).encode())
        rebased = FakeRemoteImage(self.repo_name, digest, layers)
        rebased.labels = {**self.labels, **(label_updates or {})}
        rebased.env_vars = dict(self.env_vars)
        rebased.created = created_at or REBASED_AT
        return rebased


class FakeRemoteImageFactory:
    """RemoteImageFactory returning canned images by reference string."""

    def __init__(self, images: Optional[dict[str, RemoteImage]] = None) -> None:
        self.images = dict(images or {})
        self.calls: list[ImageRef] = []

    def add(self, image: str, remote: RemoteImage) -> None:
        self.images[image] = remote

    async def new_remote(self, ref: ImageRef) -> RemoteImage:
        self.calls.append(ref)
        if ref.image not in self.images:
            raise ManifestError(f"manifest unknown for '{ref.image}'")
        return self.images[ref.image]


class FakeRegistry:
    """Minimal Docker Registry API v2 served by aiohttp.

    Optionally requires bearer tokens issued for fixed basic credentials.
    Mutating requests are recorded in ``writes``.
    """

    def __init__(self, credentials: Optional[tuple[str, str]] = None) -> None:
        self.credentials = credentials
        self.token = uuid.uuid4().hex
        self.blobs: dict[str, dict[str, bytes]] = {}
        self.manifests: dict[str, dict[str, tuple[bytes, str]]] = {}
        self.uploads: dict[str, tuple[str, bytearray]] = {}
        self.writes: list[tuple[str, str]] = []
        self.mounts: list[tuple[str, str, str]] = []
        self.token_requests: list[str] = []

    # fixtures

    def add_blob(self, repository: str, data: bytes) -> str:
        digest = calculate_digest(data)
        self.blobs.setdefault(repository, {})[digest] = data
        return digest

    def add_manifest(self, repository: str, reference: str, manifest: dict, media_type: str) -> str:
        raw = json.dumps(manifest).encode()
        digest = calculate_digest(raw)
        repo_manifests = self.manifests.setdefault(repository, {})
        repo_manifests[reference] = (raw, media_type)
        repo_manifests[digest] = (raw, media_type)
        return digest

    def add_image(
        self,
        repository: str,
        tag: str,
        layer_names: list[str],
        labels: Optional[dict[str, str]] = None,
        env: Optional[list[str]] = None,
        created: Optional[str] = "2019-05-01T12:30:00.123456789Z",
        history: Optional[list[dict]] = None,
    ) -> tuple[str, list[LayerInfo]]:
        """Store an image; returns its manifest digest and layers."""
        layers = []
        for name in layer_names:
            data = f"blob:{name}".encode()
            self.add_blob(repository, data)
            layers.append(
                LayerInfo(
                    digest=calculate_digest(data),
                    size=len(data),
                    media_type=DOCKER_LAYER,
                    diff_id=calculate_digest(f"diff:{name}".encode()),
                )
            )

        config = {
            "architecture": "amd64",
            "os": "linux",
            "config": {"Env": env or [], "Labels": labels},
            "rootfs": {"type": "layers", "diff_ids": [layer.diff_id for layer in layers]},
        }
        if created is not None:
            config["created"] = created
        if history is not None:
            config["history"] = history
        raw_config = json.dumps(config).encode()
        config_digest = self.add_blob(repository, raw_config)

        manifest = {
            "schemaVersion": 2,
            "mediaType": DOCKER_MANIFEST_V2,
            "config": {
                "mediaType": DOCKER_CONFIG_V1,
                "size": len(raw_config),
                "digest": config_digest,
            },
            "layers": [layer.to_descriptor() for layer in layers],
        }
        return self.add_manifest(repository, tag, manifest, DOCKER_MANIFEST_V2), layers

    def add_index(self, repository: str, tag: str, children: dict[str, str]) -> str:
        """Store a manifest list of {"os/arch": digest} children."""
        manifests = []
        for platform, digest in children.items():
            raw, media_type = self.manifests[repository][digest]
            os_name, arch = platform.split("/")[:2]
            manifests.append(
                {
                    "mediaType": media_type,
                    "size": len(raw),
                    "digest": digest,
                    "platform": {"os": os_name, "architecture": arch},
                }
            )
        index = {"schemaVersion": 2, "mediaType": DOCKER_MANIFEST_LIST_V2, "manifests": manifests}
        return self.add_manifest(repository, tag, index, DOCKER_MANIFEST_LIST_V2)

    def manifest(self, repository: str, reference: str) -> dict:
        raw, _ = self.manifests[repository][reference]
        return json.loads(raw)

    def config(self, repository: str, reference: str) -> dict:
        digest = self.manifest(repository, reference)["config"]["digest"]
        return json.loads(self.blobs[repository][digest])

    # server

    def app(self) -> web.Application:
        app = web.Application(middlewares=[self._auth_middleware])
        app.router.add_get("/token", self._token)
        app.router.add_get("/v2/", self._ping)
        app.router.add_post(r"/v2/{name:.+}/blobs/uploads/", self._start_upload)
        app.router.add_patch(r"/v2/{name:.+}/blobs/uploads/{upload}", self._patch_upload)
        app.router.add_put(r"/v2/{name:.+}/blobs/uploads/{upload}", self._finish_upload)
        app.router.add_get(r"/v2/{name:.+}/blobs/{digest}", self._get_blob)
        app.router.add_get(r"/v2/{name:.+}/manifests/{reference}", self._get_manifest)
        app.router.add_put(r"/v2/{name:.+}/manifests/{reference}", self._put_manifest)
        return app

    @web.middleware
    async def _auth_middleware(self, request: web.Request, handler):
        if request.method in ("POST", "PATCH", "PUT", "DELETE"):
            self.writes.append((request.method, request.path))
        if self.credentials and request.path != "/token":
            if request.headers.get("Authorization") != f"Bearer {self.token}":
                realm = f"{request.url.origin()}/token"
                raise web.HTTPUnauthorized(
                    headers={"WWW-Authenticate": f'Bearer realm="{realm}",service="fake-registry"'}
                )
        return await handler(request)

    async def _token(self, request: web.Request) -> web.Response:
        self.token_requests.append(" ".join(request.query.getall("scope", [])))
        expected = "Basic " + base64.b64encode(":".join(self.credentials).encode()).decode()
        if request.headers.get("Authorization") != expected:
            raise web.HTTPUnauthorized()
        return web.json_response({"token": self.token})

    async def _ping(self, request: web.Request) -> web.Response:
        return web.json_response({})

    async def _get_blob(self, request: web.Request) -> web.Response:
        name, digest = request.match_info["name"], request.match_info["digest"]
        data = self.blobs.get(name, {}).get(digest)
        if data is None:
            raise web.HTTPNotFound()
        return web.Response(body=data, headers={"Docker-Content-Digest": digest})

    async def _get_manifest(self, request: web.Request) -> web.Response:
        name, reference = request.match_info["name"], request.match_info["reference"]
        entry = self.manifests.get(name, {}).get(reference)
        if entry is None:
            raise web.HTTPNotFound()
        raw, media_type = entry
        return web.Response(
            body=raw,
            headers={"Content-Type": media_type, "Docker-Content-Digest": calculate_digest(raw)},
        )

    async def _start_upload(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        mount, source = request.query.get("mount"), request.query.get("from")
        if mount and source and mount in self.blobs.get(source, {}):
            self.blobs.setdefault(name, {})[mount] = self.blobs[source][mount]
            self.mounts.append((name, mount, source))
            return web.Response(status=201, headers={"Location": f"/v2/{name}/blobs/{mount}"})

        upload = uuid.uuid4().hex
        self.uploads[upload] = (name, bytearray())
        return web.Response(
            status=202, headers={"Location": f"/v2/{name}/blobs/uploads/{upload}"}
        )

    async def _patch_upload(self, request: web.Request) -> web.Response:
        name, upload = request.match_info["name"], request.match_info["upload"]
        received = self.uploads[upload][1]
        start = request.headers.get("Content-Range", f"{len(received)}-").split("-")[0]
        if int(start) != len(received):
            raise web.HTTPRequestRangeNotSatisfiable()
        received.extend(await request.read())
        return web.Response(
            status=202, headers={"Location": f"/v2/{name}/blobs/uploads/{upload}"}
        )

    async def _finish_upload(self, request: web.Request) -> web.Response:
        name, upload = request.match_info["name"], request.match_info["upload"]
        repository, data = self.uploads.pop(upload)
        data.extend(await request.read())
        digest = request.query["digest"]
        if calculate_digest(bytes(data)) != digest:
            raise web.HTTPBadRequest(text="DIGEST_INVALID")
        self.blobs.setdefault(repository, {})[digest] = bytes(data)
        return web.Response(status=201, headers={"Location": f"/v2/{name}/blobs/{digest}"})

    async def _put_manifest(self, request: web.Request) -> web.Response:
        name, reference = request.match_info["name"], request.match_info["reference"]
        raw = await request.read()
        manifest = json.loads(raw)
        referenced = [manifest["config"]["digest"]] + [layer["digest"] for layer in manifest["layers"]]
        missing = [d for d in referenced if d not in self.blobs.get(name, {})]
        if missing:
            raise web.HTTPBadRequest(text=f"MANIFEST_BLOB_UNKNOWN {missing}")

        media_type = request.headers.get("Content-Type", DOCKER_MANIFEST_V2)
        digest = calculate_digest(raw)
        repo_manifests = self.manifests.setdefault(name, {})
        repo_manifests[reference] = (raw, media_type)
        repo_manifests[digest] = (raw, media_type)
        return web.Response(status=201, headers={"Docker-Content-Digest": digest})
