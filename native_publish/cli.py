"""Thin CLI wrapper for native_publish.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.markup import escape

from native_publish import __version__
from native_publish.config import get_settings, print_settings_json
from native_publish.errors import PipelineError
from native_publish.project.schema import ProjectConfig

if TYPE_CHECKING:
    from native_publish.pipeline import RunReport

app = typer.Typer(
    name="native-publish",
    help="Native Publish - build, package and publish native libraries",
    no_args_is_help=True,
)
console = Console()

ProjectArg = Annotated[
    Path,
    typer.Argument(help="Project file (YAML or JSON)"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"native-publish version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """Native Publish - build, package and publish native libraries."""
    configure_logging(log_level or get_settings().log_level)


def _load_project_or_exit(path: Path) -> ProjectConfig:
    from native_publish.project.io import load_project

    try:
        return load_project(path)
    except PipelineError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1) from None


@app.command()
def config(json_output: JsonOption = False) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Staging directory:   {settings.staging_dir}")
    console.print(f"  Output directory:    {settings.output_dir}")
    console.print(f"  Credentials file:    {settings.credentials_file}")
    console.print()
    console.print("[bold]Credentials:[/bold]")
    console.print(f"  Key prefixes:        {', '.join(settings.credential_prefixes)}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  GPG command:         {settings.gpg_command}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Build timeout:       {settings.build_timeout}")
    console.print(f"  Upload timeout:      {settings.upload_timeout}")


@app.command()
def describe(
    project_file: ProjectArg,
    pom: Annotated[
        bool,
        typer.Option("--pom", help="Render as Maven POM instead of JSON"),
    ] = False,
) -> None:
    """Render the publication descriptor of a project."""
    from native_publish.publication.descriptor import (
        build_descriptor,
        descriptor_to_json,
        render_pom,
    )

    project = _load_project_or_exit(project_file)
    descriptor = build_descriptor(project)
    rendered = render_pom(descriptor) if pom else descriptor_to_json(descriptor)
    typer.echo(rendered.decode("utf-8"), nl=False)


@app.command()
def build(project_file: ProjectArg, json_output: JsonOption = False) -> None:
    """Run the native cross-compilation for all architectures."""
    from native_publish.builds.runner import run_native_build

    project = _load_project_or_exit(project_file)
    settings = get_settings()

    try:
        result = run_native_build(
            project, settings.staging_dir, timeout=settings.build_timeout
        )
    except PipelineError as e:
        if json_output:
            typer.echo(json.dumps({"code": e.code, "message": e.message}))
        else:
            console.print(f"[red]✗ {escape(e.message)}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        output = {
            "command": result.command,
            "staging_dir": str(result.staging_dir),
            "log_path": str(result.log_path),
            "architectures": result.architectures,
            "duration_seconds": result.duration_seconds,
        }
        typer.echo(json.dumps(output, indent=2))
    else:
        console.print(f"[green]✓ Built {', '.join(result.architectures)}[/green]")
        console.print(f"  Staging: {result.staging_dir}")
        console.print(f"  Log:     {result.log_path}")


@app.command()
def assemble(project_file: ProjectArg, json_output: JsonOption = False) -> None:
    """Assemble and package existing build outputs without publishing."""
    from native_publish.pipeline import assemble_release

    project = _load_project_or_exit(project_file)

    try:
        bundle = assemble_release(project, get_settings()).bundle
    except PipelineError as e:
        if json_output:
            typer.echo(json.dumps({"code": e.code, "message": e.message}))
        else:
            console.print(f"[red]✗ {escape(e.message)}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        output = {
            "archive": str(bundle.archive_path),
            "pom": str(bundle.pom_path),
            "sources": str(bundle.sources_path) if bundle.sources_path else None,
            "artifacts": [
                {
                    "architecture": a.architecture,
                    "destination": a.destination,
                    "size_bytes": a.size_bytes,
                    "sha256": a.sha256,
                }
                for a in bundle.artifacts
            ],
        }
        typer.echo(json.dumps(output, indent=2))
    else:
        console.print(f"[green]✓ Packaged {bundle.archive_path}[/green]")
        for a in bundle.artifacts:
            console.print(f"    {a.destination} ({a.size_bytes} bytes)")


@app.command()
def publish(
    project_file: ProjectArg,
    skip_build: Annotated[
        bool,
        typer.Option("--skip-build", help="Reuse existing build outputs"),
    ] = False,
    endpoints: Annotated[
        list[str] | None,
        typer.Option("--endpoint", "-e", help="Endpoint to publish to (repeatable)"),
    ] = None,
    json_output: JsonOption = False,
) -> None:
    """Build, package and publish to the configured repositories.

    Exits non-zero when the run aborts or any endpoint fails. Re-running is
    safe: the descriptor is deterministic and publishes are versioned.
    """
    import httpx

    from native_publish.pipeline import create_pipeline

    project = _load_project_or_exit(project_file)
    settings = get_settings()

    with httpx.Client() as client:
        pipeline = create_pipeline(project, settings, client)
        try:
            report = pipeline.run(skip_build=skip_build, endpoints=endpoints)
        except PipelineError as e:
            console.print(f"[red]{escape(e.message)}[/red]")
            raise typer.Exit(code=1) from None

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        _print_report(report)

    if not report.succeeded:
        raise typer.Exit(code=1)


def _print_report(report: "RunReport") -> None:
    console.print()
    console.print(f"[bold]Run Results: {report.coordinates}[/bold]")
    console.print(f"  State: {report.state.value}")
    if report.aborted_in is not None:
        detail = escape(f"[{report.error_code}] {report.error_message}")
        console.print(f"  [red]Aborted in {report.aborted_in.value}: {detail}[/red]")
        return

    console.print(f"  Package: {report.package_path}")
    console.print()
    console.print("[bold]Per-Endpoint Results:[/bold]")
    for r in report.endpoints:
        if r.succeeded:
            console.print(
                f"  [green]✓ {r.endpoint}[/green] ({len(r.uploaded)} files)"
            )
        else:
            console.print(f"  [red]✗ {r.endpoint}[/red]")
            detail = escape(f"[{r.error_code}] {r.error_message}")
            console.print(f"      Error: {detail}")


@app.command()
def credentials(project_file: ProjectArg, json_output: JsonOption = False) -> None:
    """Show which credential keys resolve for each endpoint.

    Values are never printed, only the source that provides each key.
    """
    from native_publish.credentials import default_resolver

    project = _load_project_or_exit(project_file)
    resolver = default_resolver(get_settings())

    rows = []
    for endpoint in project.repositories:
        keys = []
        if endpoint.credentials is not None:
            for key in (endpoint.credentials.username, endpoint.credentials.password):
                _, source = resolver.lookup_with_source(key)
                keys.append({"key": key, "source": source})
        rows.append({"endpoint": endpoint.name, "keys": keys})

    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return

    for row in rows:
        console.print(f"  [green]{escape(row['endpoint'])}[/green]")
        if not row["keys"]:
            console.print("    (no authentication)")
        for k in row["keys"]:
            source = escape(k["source"]) if k["source"] else "[red]missing[/red]"
            console.print(f"    {escape(k['key'])}: {source}")
