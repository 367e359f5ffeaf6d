"""OCI and Docker distribution media types."""

DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST_V2 = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_CONFIG_V1 = "application/vnd.docker.container.image.v1+json"
DOCKER_LAYER = "application/vnd.docker.image.rootfs.diff.tar.gzip"

OCI_MANIFEST_V1 = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX_V1 = "application/vnd.oci.image.index.v1+json"

IMAGE_MANIFESTS = (DOCKER_MANIFEST_V2, OCI_MANIFEST_V1)
MANIFEST_LISTS = (DOCKER_MANIFEST_LIST_V2, OCI_INDEX_V1)

# Accept header for manifest pulls
MANIFEST_ACCEPT = ",".join(IMAGE_MANIFESTS + MANIFEST_LISTS)
