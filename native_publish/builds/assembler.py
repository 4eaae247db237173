"""Artifact assembly and library packaging.

This module handles:
- Locating exactly one build output per declared architecture
- Copying outputs into the architecture-specific payload layout
- Writing the library archive with the embedded publication descriptor
- Writing the optional sources archive

Binary contents are never inspected; only existence and placement matter.
Archives are written deterministically (sorted entries, fixed timestamps)
so identical inputs produce identical bytes.
"""

from __future__ import annotations

import hashlib
import io
import logging
import shutil
import zipfile
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from native_publish.errors import MissingArtifact
from native_publish.types import Artifact

if TYPE_CHECKING:
    from native_publish.project.schema import (
        PackagingSchema,
        ProjectConfig,
        TargetArchitectureSchema,
    )

logger = logging.getLogger(__name__)

# Default chunk size for hashing
HASH_CHUNK_SIZE = 64 * 1024  # 64KB

# Earliest timestamp a zip entry can carry
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

DESCRIPTOR_ENTRY = "META-INF/publication.json"
ANDROID_MANIFEST_ENTRY = "AndroidManifest.xml"
CLASSES_JAR_ENTRY = "classes.jar"


def compute_file_hash(
    file_path: Path,
    algorithm: str = "sha256",
    chunk_size: int = HASH_CHUNK_SIZE,
) -> str:
    """Compute the hex digest of a file.

    Args:
        file_path: Path to the file.
        algorithm: hashlib algorithm name.
        chunk_size: Size of chunks for streaming hash.

    Returns:
        Hex digest.
    """
    digest = hashlib.new(algorithm)
    with file_path.open("rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return digest.hexdigest()


def find_architecture_output(
    staging_dir: Path,
    arch: TargetArchitectureSchema,
    pattern: str,
) -> Path:
    """Find the single build output for an architecture.

    Args:
        staging_dir: Staging directory written by the native build.
        arch: Target architecture.
        pattern: Glob matched inside ``staging_dir/<arch.name>/``.

    Returns:
        Path to the output file.

    Raises:
        MissingArtifact: If zero or more than one file matches.
    """
    arch_dir = staging_dir / arch.name
    if not arch_dir.is_dir():
        raise MissingArtifact(arch.name)

    matches = sorted(p for p in arch_dir.glob(pattern) if p.is_file())
    if len(matches) != 1:
        raise MissingArtifact(arch.name, matches=matches)
    return matches[0]


def collect_artifacts(
    project: ProjectConfig,
    staging_dir: Path,
) -> list[Artifact]:
    """Locate and describe the output of every declared architecture.

    Every architecture is checked before anything is copied, so a missing
    output never leaves a partial payload behind.

    Args:
        project: Project configuration.
        staging_dir: Staging directory written by the native build.

    Returns:
        One Artifact per declared architecture, in declaration order.

    Raises:
        MissingArtifact: For the first architecture without exactly one output.
    """
    prefix = project.packaging.payload_prefix.strip("/")
    artifacts: list[Artifact] = []

    for arch in project.architectures:
        source = find_architecture_output(
            staging_dir, arch, project.output_pattern_for(arch)
        )
        destination = f"{arch.name}/{source.name}"
        if prefix:
            destination = f"{prefix}/{destination}"

        artifact = Artifact(
            architecture=arch.name,
            source_path=source,
            destination=destination,
            version=project.version,
            size_bytes=source.stat().st_size,
            sha256=compute_file_hash(source),
        )
        artifacts.append(artifact)
        logger.debug(
            "Found %s output: %s (%d bytes)",
            arch.name,
            source.name,
            artifact.size_bytes,
        )

    logger.info("Collected %d artifacts from %s", len(artifacts), staging_dir)
    return artifacts


def assemble_payload(artifacts: Sequence[Artifact], payload_dir: Path) -> Path:
    """Copy artifacts into their payload subpaths.

    Any previous payload directory is replaced.

    Args:
        artifacts: Collected artifacts.
        payload_dir: Root of the package payload.

    Returns:
        The payload directory.
    """
    if payload_dir.exists():
        shutil.rmtree(payload_dir)
    payload_dir.mkdir(parents=True)

    for artifact in artifacts:
        dest = payload_dir / artifact.destination
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(artifact.source_path, dest)
        logger.debug("Placed %s at %s", artifact.architecture, artifact.destination)

    return payload_dir


def render_android_manifest(packaging: PackagingSchema) -> bytes:
    """Render the minimal library manifest an AAR needs."""
    lines = [
        '<?xml version="1.0" encoding="utf-8"?>',
        '<manifest xmlns:android="http://schemas.android.com/apk/res/android"',
        f'    package="{packaging.namespace or ""}">',
    ]
    if packaging.min_sdk is not None:
        lines.append(f'    <uses-sdk android:minSdkVersion="{packaging.min_sdk}" />')
    lines.append("</manifest>")
    return ("\n".join(lines) + "\n").encode("utf-8")


def _empty_jar() -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w"):
        pass
    return buffer.getvalue()


def _write_entry(archive: zipfile.ZipFile, name: str, data: bytes) -> None:
    info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    archive.writestr(info, data)


def _write_tree(archive: zipfile.ZipFile, root: Path) -> int:
    count = 0
    for path in sorted(root.rglob("*")):
        if path.is_file():
            _write_entry(archive, path.relative_to(root).as_posix(), path.read_bytes())
            count += 1
    return count


def write_library_archive(
    payload_dir: Path,
    archive_path: Path,
    descriptor_json: bytes,
    packaging: PackagingSchema,
) -> Path:
    """Write the packaged library.

    Args:
        payload_dir: Assembled payload.
        archive_path: Output archive path.
        descriptor_json: Serialized publication descriptor to embed.
        packaging: Packaging options.

    Returns:
        Path to the written archive.
    """
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    extra: dict[str, bytes] = {DESCRIPTOR_ENTRY: descriptor_json}
    if packaging.format == "aar":
        extra[ANDROID_MANIFEST_ENTRY] = render_android_manifest(packaging)
        extra[CLASSES_JAR_ENTRY] = _empty_jar()

    with zipfile.ZipFile(archive_path, "w") as archive:
        for name in sorted(extra):
            _write_entry(archive, name, extra[name])
        count = _write_tree(archive, payload_dir)

    logger.info("Wrote %s (%d payload files)", archive_path, count)
    return archive_path


def write_sources_archive(sources_dir: Path, archive_path: Path) -> Path:
    """Write a sources archive from a directory.

    Raises:
        FileNotFoundError: If the sources directory does not exist.
    """
    if not sources_dir.is_dir():
        raise FileNotFoundError(f"Sources directory not found: {sources_dir}")

    archive_path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive_path, "w") as archive:
        count = _write_tree(archive, sources_dir)

    logger.info("Wrote %s (%d source files)", archive_path, count)
    return archive_path


def archive_basename(project: ProjectConfig, classifier: str | None = None) -> str:
    """Return ``<artifactId>-<version>[-<classifier>]``."""
    name = f"{project.artifact_id}-{project.version}"
    if classifier:
        name = f"{name}-{classifier}"
    return name


__all__ = [
    "ANDROID_MANIFEST_ENTRY",
    "CLASSES_JAR_ENTRY",
    "DESCRIPTOR_ENTRY",
    "HASH_CHUNK_SIZE",
    "archive_basename",
    "assemble_payload",
    "collect_artifacts",
    "compute_file_hash",
    "find_architecture_output",
    "render_android_manifest",
    "write_library_archive",
    "write_sources_archive",
]
