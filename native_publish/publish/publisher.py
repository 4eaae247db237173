"""Repository publisher.

This module handles:
- Laying out publication files in the Maven repository structure
- Generating the checksum files repositories expect
- Uploading to http(s) repositories with HTTP PUT and basic auth
- Copying into local directory repositories (``file://`` or plain paths)

Endpoints are independent. A failure on one endpoint is reported in its
result and never raised, so it neither stops nor rolls back the others.
There is no retry; re-running a publish of an unchanged version is safe.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

import httpx
from pydantic import BaseModel, Field

from native_publish.errors import MissingCredential, PublishFailure
from native_publish.types import EndpointState

if TYPE_CHECKING:
    from native_publish.credentials import CredentialResolver
    from native_publish.project.schema import RepositoryEndpointSchema
    from native_publish.publication.descriptor import PublicationDescriptor
    from native_publish.types import Credential, PackageBundle

logger = logging.getLogger(__name__)

# Checksum files published next to every file
CHECKSUM_ALGORITHMS = ("md5", "sha1", "sha256", "sha512")

# Timeout for each upload (seconds)
UPLOAD_TIMEOUT = 300


@dataclass(frozen=True)
class PublicationFile:
    """A single file to place in the repository."""

    name: str
    data: bytes


class EndpointResult(BaseModel):
    """Outcome of publishing to one endpoint.

    Attributes:
        endpoint: Endpoint name.
        url: Endpoint base URL.
        state: Terminal state once publishing finished.
        uploaded: Repository paths written, in order.
        error_code: Error code if publishing failed.
        error_message: Error message if publishing failed.
    """

    endpoint: str
    url: str
    state: EndpointState = EndpointState.PENDING
    uploaded: list[str] = Field(default_factory=list)
    error_code: str | None = None
    error_message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == EndpointState.PUBLISHED


def maven_layout_path(descriptor: PublicationDescriptor, filename: str) -> str:
    """Return the repository path of a file for a publication.

    ``co.example`` / ``lib`` / ``1.0`` / ``lib-1.0.aar`` becomes
    ``co/example/lib/1.0/lib-1.0.aar``.
    """
    group_path = descriptor.group_id.replace(".", "/")
    return f"{group_path}/{descriptor.artifact_id}/{descriptor.version}/{filename}"


def checksum_files(name: str, data: bytes) -> list[PublicationFile]:
    """Return the checksum companions of a file."""
    return [
        PublicationFile(
            name=f"{name}.{algorithm}",
            data=hashlib.new(algorithm, data).hexdigest().encode("ascii"),
        )
        for algorithm in CHECKSUM_ALGORITHMS
    ]


def publication_files(bundle: PackageBundle) -> list[PublicationFile]:
    """Collect every file to upload for a bundle, in upload order.

    Each file is followed by its signature (when signed) and by the
    checksum files of both.
    """
    files: list[PublicationFile] = []
    for path in bundle.files():
        data = path.read_bytes()
        files.append(PublicationFile(name=path.name, data=data))
        files.extend(checksum_files(path.name, data))

        signature = bundle.signatures.get(path)
        if signature is not None:
            sig_data = signature.read_bytes()
            files.append(PublicationFile(name=signature.name, data=sig_data))
            files.extend(checksum_files(signature.name, sig_data))
    return files


def local_repository_root(url: str) -> Path:
    """Return the directory a local endpoint URL points at."""
    if url.startswith("file://"):
        return Path(unquote(urlparse(url).path))
    return Path(url)


class RepositoryPublisher:
    """Publishes bundles to repository endpoints."""

    def __init__(
        self,
        client: httpx.Client,
        resolver: CredentialResolver,
        timeout: float = UPLOAD_TIMEOUT,
    ) -> None:
        self.client = client
        self.resolver = resolver
        self.timeout = timeout

    def publish(
        self,
        endpoint: RepositoryEndpointSchema,
        bundle: PackageBundle,
        descriptor: PublicationDescriptor,
    ) -> EndpointResult:
        """Publish a bundle to one endpoint.

        Credentials are resolved here, at the moment the endpoint is used.

        Args:
            endpoint: Target endpoint.
            bundle: Assembled package.
            descriptor: Publication descriptor of the bundle.

        Returns:
            EndpointResult in a terminal state.
        """
        result = EndpointResult(
            endpoint=endpoint.name,
            url=endpoint.url,
            state=EndpointState.PUBLISHING,
        )
        logger.info("Publishing %s to %s", descriptor.coordinates, endpoint.name)

        try:
            credential = self.resolver.require(endpoint)
            for item in publication_files(bundle):
                repo_path = maven_layout_path(descriptor, item.name)
                if endpoint.is_remote:
                    self._upload(endpoint, repo_path, item.data, credential)
                else:
                    self._write_local(endpoint, repo_path, item.data)
                result.uploaded.append(repo_path)
        except (MissingCredential, PublishFailure) as e:
            logger.error("Endpoint %s: %s", endpoint.name, e.message)
            result.state = EndpointState.FAILED
            result.error_code = e.code
            result.error_message = e.message
            return result

        result.state = EndpointState.PUBLISHED
        logger.info(
            "Published %d files to %s", len(result.uploaded), endpoint.name
        )
        return result

    def publish_all(
        self,
        endpoints: Sequence[RepositoryEndpointSchema],
        bundle: PackageBundle,
        descriptor: PublicationDescriptor,
    ) -> list[EndpointResult]:
        """Publish to every endpoint in order, independently."""
        return [self.publish(endpoint, bundle, descriptor) for endpoint in endpoints]

    def _upload(
        self,
        endpoint: RepositoryEndpointSchema,
        repo_path: str,
        data: bytes,
        credential: Credential | None,
    ) -> None:
        url = f"{endpoint.url.rstrip('/')}/{repo_path}"
        auth = (
            httpx.BasicAuth(credential.username, credential.password)
            if credential is not None
            else None
        )
        logger.debug("PUT %s (%d bytes)", url, len(data))

        try:
            response = self.client.put(
                url, content=data, auth=auth, timeout=self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PublishFailure(
                endpoint.name,
                f"HTTP error uploading {repo_path}: "
                f"{e.response.status_code} {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise PublishFailure(endpoint.name, f"Timeout uploading {repo_path}") from e
        except httpx.RequestError as e:
            raise PublishFailure(
                endpoint.name, f"Network error uploading {repo_path}: {e}"
            ) from e
        except httpx.InvalidURL as e:
            raise PublishFailure(endpoint.name, f"Invalid URL {url}: {e}") from e

    def _write_local(
        self,
        endpoint: RepositoryEndpointSchema,
        repo_path: str,
        data: bytes,
    ) -> None:
        dest = local_repository_root(endpoint.url) / repo_path
        logger.debug("Writing %s", dest)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except OSError as e:
            raise PublishFailure(endpoint.name, f"Cannot write {dest}: {e}") from e


__all__ = [
    "CHECKSUM_ALGORITHMS",
    "UPLOAD_TIMEOUT",
    "EndpointResult",
    "PublicationFile",
    "RepositoryPublisher",
    "checksum_files",
    "local_repository_root",
    "maven_layout_path",
    "publication_files",
]
