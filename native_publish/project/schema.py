"""Pydantic models for project file validation.

The project file declares everything a release needs: identity, licensing
and provenance for the publication descriptor, the target architectures and
build command for the native toolchain, packaging options and the repository
endpoints to publish to. Models are frozen; a loaded project is passed
explicitly into every pipeline stage and never mutated.
"""

import re
from pathlib import Path
from typing import Annotated, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Maven coordinates: dotted group, artifact and version without path separators
GROUP_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_\-]+(\.[a-zA-Z0-9_\-]+)*$")
ARTIFACT_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_.\-]+$")
VERSION_PATTERN = re.compile(r"^[a-zA-Z0-9_.+\-]+$")
ENDPOINT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.\-]+$")
# Local paths such as C:\m2 parse with a one-letter scheme
WINDOWS_DRIVE_PATTERN = re.compile(r"^[a-zA-Z]:[\\/]")


class TargetArchitectureSchema(BaseModel):
    """A single build target (instruction set / ABI).

    Attributes:
        name: ABI identifier, also the staging subdirectory name.
        output_pattern: Glob for the binary inside ``staging/<name>/``.
            Falls back to the project's ``library_pattern`` when unset.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1, max_length=64)]
    output_pattern: str | None = Field(
        default=None, description="Glob for this architecture's output"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the name is usable as a directory name."""
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"architecture name must be a plain name, got '{v}'")
        return v


class LicenseSchema(BaseModel):
    """License reference for the publication descriptor."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    url: str | None = None


class DeveloperSchema(BaseModel):
    """Developer / maintainer identity."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    name: str | None = None
    email: str | None = None


class ScmSchema(BaseModel):
    """Source-control locations."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    connection: str | None = None
    developer_connection: str | None = None
    url: str | None = None


class BuildCommandSchema(BaseModel):
    """External cross-compilation command.

    The invocation is composed as
    ``command + [arch_flag, abi]... + [output_flag, staging_dir] + args``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: tuple[str, ...] = Field(default=("cargo", "ndk"), min_length=1)
    arch_flag: str = "-t"
    output_flag: str = "-o"
    args: tuple[str, ...] = ("build", "--release")
    working_dir: Path | None = Field(
        default=None, description="Directory to run the build from"
    )
    env: dict[str, str] = Field(default_factory=dict)


class PackagingSchema(BaseModel):
    """Library archive options.

    Attributes:
        format: Archive extension; ``aar`` adds an Android manifest.
        payload_prefix: Directory inside the archive holding per-arch dirs.
        namespace: Android namespace written into the manifest.
        min_sdk: Minimum SDK level written into the manifest.
        sources_dir: Optional directory packaged as a ``-sources.jar``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    format: Literal["aar", "zip", "jar"] = "aar"
    payload_prefix: str = "jni"
    namespace: str | None = None
    min_sdk: int | None = Field(default=None, ge=1)
    sources_dir: Path | None = None


class EndpointCredentialsSchema(BaseModel):
    """Names of the credential keys an endpoint authenticates with."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    username: Annotated[str, Field(min_length=1)]
    password: Annotated[str, Field(min_length=1)]


class RepositoryEndpointSchema(BaseModel):
    """A named publish target.

    ``url`` is an http(s) repository base or, for local targets, a
    ``file://`` URL or plain directory path.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: Annotated[str, Field(min_length=1, max_length=100)]
    url: Annotated[str, Field(min_length=1)]
    credentials: EndpointCredentialsSchema | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate the endpoint name."""
        if not ENDPOINT_NAME_PATTERN.match(v):
            raise ValueError(f"invalid endpoint name '{v}'")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate the URL is http(s), file:// or a plain directory path."""
        parsed = urlparse(v)
        scheme = parsed.scheme.lower()
        if scheme in ("http", "https"):
            if not parsed.hostname:
                raise ValueError(f"repository URL has no host: '{v}'")
            try:
                _ = parsed.port
            except ValueError:
                raise ValueError(f"invalid port in repository URL: '{v}'") from None
        elif scheme and scheme != "file" and not WINDOWS_DRIVE_PATTERN.match(v):
            raise ValueError(
                f"unsupported repository URL scheme '{parsed.scheme}': "
                "use http(s), file:// or a directory path"
            )
        return v

    @property
    def requires_auth(self) -> bool:
        return self.credentials is not None

    @property
    def is_remote(self) -> bool:
        return urlparse(self.url).scheme.lower() in ("http", "https")


class SigningSchema(BaseModel):
    """Signing stage switch; disabled means a structural no-op."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    enabled: bool = False
    key_name_key: str = "signing.gnupg.keyName"
    passphrase_key: str = "signing.gnupg.passphrase"


class ProjectConfig(BaseModel):
    """Complete, immutable project configuration.

    Attributes:
        group: Maven group identifier.
        artifact_id: Maven artifact identifier.
        version: Release version; labels every artifact and the descriptor.
        name: Human-readable name (defaults to artifact_id).
        description: Human description.
        url: Project home page.
        licenses: License references.
        developers: Developer identities.
        scm: Source-control locations.
        architectures: Declared target architectures.
        library_pattern: Default glob for per-architecture outputs.
        build: Native build command.
        packaging: Archive options.
        repositories: Publish targets.
        signing: Signing stage switch.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    # Identity
    group: Annotated[str, Field(min_length=1, max_length=255)]
    artifact_id: Annotated[str, Field(min_length=1, max_length=255)]
    version: Annotated[str, Field(min_length=1, max_length=100)]
    name: str | None = None
    description: str | None = None
    url: str | None = None

    # Licensing and provenance
    licenses: tuple[LicenseSchema, ...] = ()
    developers: tuple[DeveloperSchema, ...] = ()
    scm: ScmSchema | None = None

    # Build
    architectures: tuple[TargetArchitectureSchema, ...] = Field(min_length=1)
    library_pattern: str = "*.so"
    build: BuildCommandSchema = Field(default_factory=BuildCommandSchema)

    # Packaging and publishing
    packaging: PackagingSchema = Field(default_factory=PackagingSchema)
    repositories: tuple[RepositoryEndpointSchema, ...] = ()
    signing: SigningSchema = Field(default_factory=SigningSchema)

    @field_validator("group")
    @classmethod
    def validate_group(cls, v: str) -> str:
        """Validate the group is a dotted identifier."""
        if not GROUP_ID_PATTERN.match(v):
            raise ValueError(f"invalid group '{v}'")
        return v

    @field_validator("artifact_id")
    @classmethod
    def validate_artifact_id(cls, v: str) -> str:
        """Validate the artifact id contains no path separators."""
        if not ARTIFACT_ID_PATTERN.match(v):
            raise ValueError(f"invalid artifact_id '{v}'")
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: str) -> str:
        """Validate the version is usable in file names and URLs."""
        if not VERSION_PATTERN.match(v):
            raise ValueError(f"invalid version '{v}'")
        return v

    @model_validator(mode="after")
    def validate_unique_names(self) -> "ProjectConfig":
        """Architecture and endpoint names must be unique."""
        arch_names = [a.name for a in self.architectures]
        duplicates = sorted({n for n in arch_names if arch_names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate architectures: {', '.join(duplicates)}")

        endpoint_names = [r.name for r in self.repositories]
        duplicates = sorted({n for n in endpoint_names if endpoint_names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate repositories: {', '.join(duplicates)}")
        return self

    @property
    def display_name(self) -> str:
        return self.name or self.artifact_id

    def output_pattern_for(self, arch: TargetArchitectureSchema) -> str:
        """Return the effective output glob for an architecture."""
        return arch.output_pattern or self.library_pattern

    def architecture_names(self) -> list[str]:
        return [a.name for a in self.architectures]

    def get_repository(self, name: str) -> RepositoryEndpointSchema:
        """Return the endpoint with the given name.

        Raises:
            KeyError: If no endpoint has that name.
        """
        for repo in self.repositories:
            if repo.name == name:
                return repo
        raise KeyError(name)


__all__ = [
    "BuildCommandSchema",
    "DeveloperSchema",
    "EndpointCredentialsSchema",
    "LicenseSchema",
    "PackagingSchema",
    "ProjectConfig",
    "RepositoryEndpointSchema",
    "ScmSchema",
    "SigningSchema",
    "TargetArchitectureSchema",
]
