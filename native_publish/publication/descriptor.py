"""Publication descriptor builder.

This module handles:
- Building the immutable release metadata from project configuration
- Serializing it to canonical JSON (embedded in the library archive)
- Rendering it as a Maven POM (uploaded next to the archive)
- Checking that artifacts carry the descriptor's version

Everything here is a pure function of the project configuration: no clock,
no environment, no filesystem. The same project always yields the same bytes.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING
from xml.etree import ElementTree as ET

from pydantic import BaseModel, ConfigDict

from native_publish.errors import VersionMismatchError

if TYPE_CHECKING:
    from native_publish.project.schema import ProjectConfig
    from native_publish.types import Artifact

POM_NAMESPACE = "http://maven.apache.org/POM/4.0.0"
POM_SCHEMA_LOCATION = (
    "http://maven.apache.org/POM/4.0.0 https://maven.apache.org/xsd/maven-4.0.0.xsd"
)

DESCRIPTOR_SCHEMA_VERSION = "1"


class LicenseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    url: str | None = None


class DeveloperInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    email: str | None = None


class ScmInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    connection: str | None = None
    developer_connection: str | None = None
    url: str | None = None


class PublicationDescriptor(BaseModel):
    """Immutable release metadata published alongside the binaries.

    Attributes:
        group_id: Maven group identifier.
        artifact_id: Maven artifact identifier.
        version: Release version.
        name: Human-readable name.
        description: Human description.
        url: Project home page.
        packaging: Archive extension.
        architectures: Architectures contained in the package.
        licenses: License references.
        developers: Developer identities.
        scm: Source-control locations.
    """

    model_config = ConfigDict(frozen=True)

    group_id: str
    artifact_id: str
    version: str
    name: str
    description: str | None = None
    url: str | None = None
    packaging: str
    architectures: tuple[str, ...]
    licenses: tuple[LicenseInfo, ...] = ()
    developers: tuple[DeveloperInfo, ...] = ()
    scm: ScmInfo | None = None

    @property
    def coordinates(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"


def build_descriptor(project: ProjectConfig) -> PublicationDescriptor:
    """Build the publication descriptor for a project.

    The version comes from the project configuration, the same value the
    assembler labels every artifact with.

    Args:
        project: Project configuration.

    Returns:
        Frozen PublicationDescriptor.
    """
    scm = None
    if project.scm is not None:
        scm = ScmInfo(
            connection=project.scm.connection,
            developer_connection=project.scm.developer_connection,
            url=project.scm.url,
        )

    return PublicationDescriptor(
        group_id=project.group,
        artifact_id=project.artifact_id,
        version=project.version,
        name=project.display_name,
        description=project.description,
        url=project.url,
        packaging=project.packaging.format,
        architectures=tuple(project.architecture_names()),
        licenses=tuple(
            LicenseInfo(name=lic.name, url=lic.url) for lic in project.licenses
        ),
        developers=tuple(
            DeveloperInfo(id=dev.id, name=dev.name, email=dev.email)
            for dev in project.developers
        ),
        scm=scm,
    )


def descriptor_to_json(descriptor: PublicationDescriptor) -> bytes:
    """Serialize a descriptor to canonical JSON bytes."""
    data = {
        "schema_version": DESCRIPTOR_SCHEMA_VERSION,
        "publication": descriptor.model_dump(mode="json"),
    }
    return (json.dumps(data, indent=2, sort_keys=True) + "\n").encode("utf-8")


def _sub(parent: ET.Element, tag: str, text: str | None = None) -> ET.Element:
    element = ET.SubElement(parent, tag)
    if text is not None:
        element.text = text
    return element


def render_pom(descriptor: PublicationDescriptor) -> bytes:
    """Render a descriptor as a Maven POM document.

    Args:
        descriptor: Publication descriptor.

    Returns:
        UTF-8 encoded POM XML.
    """
    project = ET.Element(
        "project",
        {
            "xmlns": POM_NAMESPACE,
            "xmlns:xsi": "http://www.w3.org/2001/XMLSchema-instance",
            "xsi:schemaLocation": POM_SCHEMA_LOCATION,
        },
    )
    _sub(project, "modelVersion", "4.0.0")
    _sub(project, "groupId", descriptor.group_id)
    _sub(project, "artifactId", descriptor.artifact_id)
    _sub(project, "version", descriptor.version)
    _sub(project, "packaging", descriptor.packaging)
    _sub(project, "name", descriptor.name)
    if descriptor.description:
        _sub(project, "description", descriptor.description)
    if descriptor.url:
        _sub(project, "url", descriptor.url)

    if descriptor.licenses:
        licenses = _sub(project, "licenses")
        for lic in descriptor.licenses:
            entry = _sub(licenses, "license")
            _sub(entry, "name", lic.name)
            if lic.url:
                _sub(entry, "url", lic.url)

    if descriptor.developers:
        developers = _sub(project, "developers")
        for dev in descriptor.developers:
            entry = _sub(developers, "developer")
            _sub(entry, "id", dev.id)
            if dev.name:
                _sub(entry, "name", dev.name)
            if dev.email:
                _sub(entry, "email", dev.email)

    if descriptor.scm is not None:
        scm = _sub(project, "scm")
        if descriptor.scm.connection:
            _sub(scm, "connection", descriptor.scm.connection)
        if descriptor.scm.developer_connection:
            _sub(scm, "developerConnection", descriptor.scm.developer_connection)
        if descriptor.scm.url:
            _sub(scm, "url", descriptor.scm.url)

    ET.indent(project, space="  ")
    body = ET.tostring(project, encoding="unicode")
    return ('<?xml version="1.0" encoding="UTF-8"?>\n' + body + "\n").encode("utf-8")


def check_version_consistency(
    descriptor: PublicationDescriptor,
    artifacts: Sequence[Artifact],
) -> None:
    """Ensure every artifact is labelled with the descriptor's version.

    Raises:
        VersionMismatchError: On the first artifact with another version.
    """
    for artifact in artifacts:
        if artifact.version != descriptor.version:
            raise VersionMismatchError(
                expected=descriptor.version,
                found=artifact.version,
                architecture=artifact.architecture,
            )


__all__ = [
    "DESCRIPTOR_SCHEMA_VERSION",
    "DeveloperInfo",
    "LicenseInfo",
    "PublicationDescriptor",
    "ScmInfo",
    "build_descriptor",
    "check_version_consistency",
    "descriptor_to_json",
    "render_pom",
]
