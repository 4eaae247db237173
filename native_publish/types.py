"""Shared type definitions for native_publish.

This module contains dataclasses and enums shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class RunState(str, Enum):
    """State of a pipeline run."""

    INIT = "init"
    BUILDING = "building"
    ASSEMBLING = "assembling"
    DESCRIPTOR_READY = "descriptor_ready"
    PUBLISHING = "publishing"
    DONE = "done"
    ABORTED = "aborted"


class EndpointState(str, Enum):
    """State of publishing to a single repository endpoint."""

    PENDING = "pending"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (EndpointState.PUBLISHED, EndpointState.FAILED)


@dataclass(frozen=True)
class Artifact:
    """One compiled binary for one target architecture.

    Attributes:
        architecture: ABI name the binary was built for.
        source_path: Location of the binary in the staging tree.
        destination: Path inside the package payload (POSIX style).
        version: Release version the binary is labelled with.
        size_bytes: Size of the binary.
        sha256: SHA-256 digest of the binary.
    """

    architecture: str
    source_path: Path
    destination: str
    version: str
    size_bytes: int
    sha256: str


@dataclass(frozen=True)
class Credential:
    """Username/secret pair scoped to a repository endpoint."""

    endpoint: str
    username: str
    password: str = field(repr=False)


@dataclass
class PackageBundle:
    """Everything the publisher uploads for one release.

    Attributes:
        archive_path: The packaged library archive.
        pom_path: Rendered POM descriptor.
        artifacts: Binaries contained in the archive.
        packaging: Archive extension (``aar``, ``zip``, ...).
        sources_path: Optional sources archive.
        signatures: Detached signatures keyed by the signed file.
    """

    archive_path: Path
    pom_path: Path
    artifacts: list[Artifact]
    packaging: str
    sources_path: Path | None = None
    signatures: dict[Path, Path] = field(default_factory=dict)

    def files(self) -> list[Path]:
        """Return the publication files in upload order."""
        paths = [self.archive_path, self.pom_path]
        if self.sources_path is not None:
            paths.append(self.sources_path)
        return paths


__all__ = [
    "Artifact",
    "Credential",
    "EndpointState",
    "PackageBundle",
    "RunState",
]
