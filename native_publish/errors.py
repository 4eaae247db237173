"""Error taxonomy for the build-and-publish pipeline.

Every error carries a stable ``code`` for programmatic handling (CLI exit
reporting, JSON run reports). Fatal errors abort the run; credential and
publish errors are scoped to a single repository endpoint.
"""

from __future__ import annotations

from pathlib import Path

# Error code constants
BUILD_FAILED = "build_failed"
TOOLCHAIN_MISSING = "toolchain_missing"
BUILD_TIMEOUT = "build_timeout"
MISSING_ARTIFACT = "missing_artifact"
ASSEMBLY_FAILED = "assembly_failed"
VERSION_MISMATCH = "version_mismatch"
SIGNING_FAILED = "signing_failed"
MISSING_CREDENTIAL = "missing_credential"
PUBLISH_FAILED = "publish_failed"
INVALID_PROJECT = "invalid_project"


class PipelineError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ProjectConfigError(PipelineError):
    """Project file is missing, malformed or fails validation."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=INVALID_PROJECT)


class BuildFailure(PipelineError):
    """The native cross-compilation step did not complete successfully."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        log_path: Path | None = None,
        code: str = BUILD_FAILED,
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.log_path = log_path


class MissingArtifact(PipelineError):
    """No unambiguous build output exists for a declared architecture."""

    def __init__(self, architecture: str, matches: list[Path] | None = None) -> None:
        self.architecture = architecture
        self.matches = list(matches or [])
        if self.matches:
            found = ", ".join(p.name for p in self.matches)
            message = (
                f"Ambiguous build output for architecture '{architecture}': {found}"
            )
        else:
            message = f"No build output found for architecture '{architecture}'"
        super().__init__(message, code=MISSING_ARTIFACT)


class AssemblyFailure(PipelineError):
    """Release files could not be laid out or written."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message, code=ASSEMBLY_FAILED)
        self.path = path


class VersionMismatchError(PipelineError):
    """An artifact is labelled with a version other than the descriptor's."""

    def __init__(self, expected: str, found: str, architecture: str) -> None:
        super().__init__(
            f"Artifact for '{architecture}' is labelled {found}, "
            f"descriptor version is {expected}",
            code=VERSION_MISMATCH,
        )
        self.expected = expected
        self.found = found
        self.architecture = architecture


class SigningFailure(PipelineError):
    """The enabled signing stage could not sign a publication file."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message, code=SIGNING_FAILED)
        self.path = path


class MissingCredential(PipelineError):
    """An endpoint requires a credential that no source provides."""

    def __init__(self, endpoint: str, key: str) -> None:
        super().__init__(
            f"Missing credential '{key}' required by endpoint '{endpoint}'",
            code=MISSING_CREDENTIAL,
        )
        self.endpoint = endpoint
        self.key = key


class PublishFailure(PipelineError):
    """Uploading to a repository endpoint failed."""

    def __init__(
        self,
        endpoint: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            f"Publishing to '{endpoint}' failed: {message}",
            code=PUBLISH_FAILED,
        )
        self.endpoint = endpoint
        self.status_code = status_code


__all__ = [
    "ASSEMBLY_FAILED",
    "BUILD_FAILED",
    "BUILD_TIMEOUT",
    "INVALID_PROJECT",
    "MISSING_ARTIFACT",
    "MISSING_CREDENTIAL",
    "PUBLISH_FAILED",
    "SIGNING_FAILED",
    "TOOLCHAIN_MISSING",
    "VERSION_MISMATCH",
    "AssemblyFailure",
    "BuildFailure",
    "MissingArtifact",
    "MissingCredential",
    "PipelineError",
    "ProjectConfigError",
    "PublishFailure",
    "SigningFailure",
    "VersionMismatchError",
]
