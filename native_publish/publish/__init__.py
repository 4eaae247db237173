"""Repository publishing module."""

from native_publish.publish.publisher import EndpointResult, RepositoryPublisher

__all__ = ["EndpointResult", "RepositoryPublisher"]
