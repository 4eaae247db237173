"""Build-and-publish pipeline.

This module provides the orchestration entry points:
- assemble_release(): collect outputs, build the descriptor, write packages
- PublishPipeline.run(): build -> assemble -> descriptor (+ signing) -> publish
- The run state machine and its JSON-serializable RunReport

State machine per run::

    init -> building -> assembling -> descriptor_ready -> publishing -> done
               |            |               |
               v            v               v
            aborted      aborted         aborted (signing enabled only)

Build and assembly failures abort the run before anything is published.
Publishing failures are confined to their endpoint; the run still ends in
``done`` once every endpoint has reached a terminal state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, Field

from native_publish.builds.assembler import (
    archive_basename,
    assemble_payload,
    collect_artifacts,
    write_library_archive,
    write_sources_archive,
)
from native_publish.builds.runner import NativeBuildResult, run_native_build
from native_publish.credentials import CredentialResolver, default_resolver
from native_publish.errors import AssemblyFailure, PipelineError, ProjectConfigError
from native_publish.publication.descriptor import (
    PublicationDescriptor,
    build_descriptor,
    check_version_consistency,
    descriptor_to_json,
    render_pom,
)
from native_publish.publication.signing import NoopSigner, Signer, create_signer
from native_publish.publish.publisher import EndpointResult, RepositoryPublisher
from native_publish.types import EndpointState, PackageBundle, RunState

if TYPE_CHECKING:
    from native_publish.config import Settings
    from native_publish.project.schema import (
        ProjectConfig,
        RepositoryEndpointSchema,
    )

logger = logging.getLogger(__name__)

BuildRunner = Callable[..., NativeBuildResult]


@dataclass
class Release:
    """A packaged release ready for signing and publishing."""

    descriptor: PublicationDescriptor
    bundle: PackageBundle


def assemble_release(project: ProjectConfig, settings: Settings) -> Release:
    """Assemble the payload and write the publication files.

    Collects one output per architecture from the staging directory, lays
    out the payload, builds the descriptor, checks version consistency and
    writes the library archive, the POM and the optional sources archive
    into the output directory.

    Args:
        project: Project configuration.
        settings: Effective settings (staging and output directories).

    Returns:
        Release with descriptor and bundle.

    Raises:
        MissingArtifact: If an architecture has no unambiguous output.
        VersionMismatchError: If an artifact carries another version.
        AssemblyFailure: If the payload or release files cannot be written.
    """
    try:
        return _write_release(project, settings)
    except OSError as e:
        error_message = f"Cannot write release files: {e}"
        logger.error(error_message)
        path = Path(e.filename) if e.filename else None
        raise AssemblyFailure(error_message, path=path) from e


def _write_release(project: ProjectConfig, settings: Settings) -> Release:
    out_dir = settings.output_dir
    packaging = project.packaging
    base = archive_basename(project)

    artifacts = collect_artifacts(project, settings.staging_dir)
    payload_dir = assemble_payload(artifacts, out_dir / "payload")

    descriptor = build_descriptor(project)
    check_version_consistency(descriptor, artifacts)

    archive_path = write_library_archive(
        payload_dir,
        out_dir / f"{base}.{packaging.format}",
        descriptor_to_json(descriptor),
        packaging,
    )
    pom_path = out_dir / f"{base}.pom"
    pom_path.write_bytes(render_pom(descriptor))

    sources_path = None
    if packaging.sources_dir is not None:
        if packaging.sources_dir.is_dir():
            sources_path = write_sources_archive(
                packaging.sources_dir,
                out_dir / f"{archive_basename(project, 'sources')}.jar",
            )
        else:
            logger.warning(
                "Sources directory not found, skipping sources archive: %s",
                packaging.sources_dir,
            )

    bundle = PackageBundle(
        archive_path=archive_path,
        pom_path=pom_path,
        artifacts=artifacts,
        packaging=packaging.format,
        sources_path=sources_path,
    )
    return Release(descriptor=descriptor, bundle=bundle)


def sign_bundle(signer: Signer, bundle: PackageBundle) -> None:
    """Run the signing stage over every publication file."""
    for path in bundle.files():
        signature = signer.sign(path)
        if signature is not None:
            bundle.signatures[path] = signature


class RunReport(BaseModel):
    """Outcome of a pipeline run.

    Attributes:
        coordinates: ``group:artifact:version`` of the release.
        version: Release version.
        state: Final run state (``done`` or ``aborted``).
        history: Every state the run passed through, in order.
        architectures: Architectures packaged.
        package_path: Path of the library archive, once written.
        pom_path: Path of the rendered POM, once written.
        endpoints: Per-endpoint publish results.
        aborted_in: State the run aborted from.
        error_code: Code of the fatal error.
        error_message: Message of the fatal error.
    """

    coordinates: str
    version: str
    state: RunState = RunState.INIT
    history: list[RunState] = Field(default_factory=lambda: [RunState.INIT])
    architectures: list[str] = Field(default_factory=list)
    package_path: str | None = None
    pom_path: str | None = None
    endpoints: list[EndpointResult] = Field(default_factory=list)
    aborted_in: RunState | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def failed_endpoints(self) -> list[EndpointResult]:
        return [e for e in self.endpoints if e.state == EndpointState.FAILED]

    @property
    def succeeded(self) -> bool:
        """True when the run finished and every endpoint published."""
        return self.state == RunState.DONE and not self.failed_endpoints


class PublishPipeline:
    """Sequential build-and-publish orchestration for one project."""

    def __init__(
        self,
        project: ProjectConfig,
        settings: Settings,
        publisher: RepositoryPublisher,
        signer: Signer | None = None,
        build_runner: BuildRunner = run_native_build,
    ) -> None:
        self.project = project
        self.settings = settings
        self.publisher = publisher
        self.signer: Signer = signer or NoopSigner()
        self.build_runner = build_runner
        self.report = RunReport(
            coordinates=f"{project.group}:{project.artifact_id}:{project.version}",
            version=project.version,
        )

    @property
    def state(self) -> RunState:
        return self.report.state

    def _transition(self, state: RunState) -> None:
        logger.info("Run state: %s -> %s", self.report.state.value, state.value)
        self.report.state = state
        self.report.history.append(state)

    def _abort(self, error: PipelineError) -> RunReport:
        logger.error("Run aborted in %s: %s", self.report.state.value, error.message)
        self.report.aborted_in = self.report.state
        self.report.error_code = error.code
        self.report.error_message = error.message
        self._transition(RunState.ABORTED)
        return self.report

    def select_endpoints(
        self, names: Sequence[str] | None = None
    ) -> list[RepositoryEndpointSchema]:
        """Return the endpoints to publish to.

        Raises:
            ProjectConfigError: If a requested endpoint is not configured.
        """
        if not names:
            return list(self.project.repositories)
        selected = []
        for name in names:
            try:
                selected.append(self.project.get_repository(name))
            except KeyError:
                raise ProjectConfigError(
                    f"Unknown repository endpoint: {name}"
                ) from None
        return selected

    def run(
        self,
        skip_build: bool = False,
        endpoints: Sequence[str] | None = None,
    ) -> RunReport:
        """Execute the whole pipeline.

        Args:
            skip_build: Reuse the existing staging tree instead of building.
            endpoints: Names of endpoints to publish to (default: all).

        Returns:
            RunReport in state ``done`` or ``aborted``.

        Raises:
            ProjectConfigError: If an unknown endpoint is requested.
        """
        targets = self.select_endpoints(endpoints)

        try:
            self._transition(RunState.BUILDING)
            if skip_build:
                logger.info(
                    "Skipping native build, using %s", self.settings.staging_dir
                )
            else:
                self.build_runner(
                    self.project,
                    self.settings.staging_dir,
                    timeout=self.settings.build_timeout,
                )

            self._transition(RunState.ASSEMBLING)
            release = assemble_release(self.project, self.settings)
            self.report.architectures = [
                a.architecture for a in release.bundle.artifacts
            ]
            self.report.package_path = str(release.bundle.archive_path)
            self.report.pom_path = str(release.bundle.pom_path)

            self._transition(RunState.DESCRIPTOR_READY)
            sign_bundle(self.signer, release.bundle)
        except PipelineError as e:
            return self._abort(e)

        self._transition(RunState.PUBLISHING)
        for endpoint in targets:
            self.report.endpoints.append(
                self.publisher.publish(endpoint, release.bundle, release.descriptor)
            )

        self._transition(RunState.DONE)
        failed = self.report.failed_endpoints
        if failed:
            logger.warning(
                "Run done with %d failed endpoint(s): %s",
                len(failed),
                ", ".join(e.endpoint for e in failed),
            )
        return self.report


def create_pipeline(
    project: ProjectConfig,
    settings: Settings,
    client: httpx.Client,
    resolver: CredentialResolver | None = None,
) -> PublishPipeline:
    """Wire a pipeline with the default resolver, signer and publisher."""
    resolver = resolver or default_resolver(settings)
    publisher = RepositoryPublisher(client, resolver, timeout=settings.upload_timeout)
    return PublishPipeline(
        project=project,
        settings=settings,
        publisher=publisher,
        signer=create_signer(project, settings, resolver),
    )


__all__ = [
    "BuildRunner",
    "PublishPipeline",
    "Release",
    "RunReport",
    "assemble_release",
    "create_pipeline",
    "sign_bundle",
]
