"""Native build runner.

This module handles:
- Composing the cross-compilation command for every target architecture
- Executing it once with subprocess, blocking until completion
- Capturing stdout/stderr to a build log file
- Enforcing build timeouts

The toolchain is an opaque step: success is the exit status, outputs land
in the staging directory keyed by architecture name.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from native_publish.errors import BUILD_TIMEOUT, TOOLCHAIN_MISSING, BuildFailure

if TYPE_CHECKING:
    from native_publish.project.schema import (
        BuildCommandSchema,
        ProjectConfig,
        TargetArchitectureSchema,
    )

logger = logging.getLogger(__name__)


@dataclass
class NativeBuildResult:
    """Result of a native build execution.

    Attributes:
        success: Whether the build succeeded.
        exit_code: Process exit code.
        staging_dir: Directory containing per-architecture outputs.
        log_path: Path to the build log file.
        started_at: Build start time.
        finished_at: Build finish time.
        command: The command that was executed.
        architectures: Architectures the build covered.
        error_message: Error message if build failed.
    """

    success: bool
    exit_code: int
    staging_dir: Path
    log_path: Path
    started_at: datetime
    finished_at: datetime
    command: str
    architectures: list[str]
    error_message: str | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()


def compose_build_command(
    build: BuildCommandSchema,
    architectures: Sequence[TargetArchitectureSchema],
    output_dir: Path,
) -> list[str]:
    """Compose a single build invocation covering all architectures.

    Args:
        build: Build command configuration.
        architectures: Target architectures, in declaration order.
        output_dir: Staging directory passed to the toolchain.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = list(build.command)

    for arch in architectures:
        cmd.extend([build.arch_flag, arch.name])

    cmd.extend([build.output_flag, str(output_dir)])
    cmd.extend(build.args)
    return cmd


def ensure_toolchain(command: list[str]) -> str:
    """Check that the build executable can be found.

    Args:
        command: Composed build command.

    Returns:
        Resolved path of the executable.

    Raises:
        BuildFailure: If the executable is not on PATH.
    """
    executable = shutil.which(command[0])
    if executable is None:
        raise BuildFailure(
            f"Build tool not found on PATH: {command[0]}",
            code=TOOLCHAIN_MISSING,
        )
    return executable


def run_native_build(
    project: ProjectConfig,
    staging_dir: Path,
    timeout: int | None = None,
    env_override: dict[str, str] | None = None,
) -> NativeBuildResult:
    """Execute the native cross-compilation for every declared architecture.

    Args:
        project: Project configuration.
        staging_dir: Directory the toolchain writes outputs to.
        timeout: Build timeout in seconds (None = no timeout).
        env_override: Optional environment variable overrides, applied on
            top of the project's build environment.

    Returns:
        NativeBuildResult for a successful build.

    Raises:
        BuildFailure: If the toolchain is missing, fails to start, times out
            or exits non-zero.
    """
    staging_dir = staging_dir.resolve()
    log_path = staging_dir.parent / "native-build.log"
    try:
        staging_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        error_message = f"Cannot create staging directory {staging_dir}: {e}"
        logger.error(error_message)
        raise BuildFailure(error_message) from e

    cmd = compose_build_command(project.build, project.architectures, staging_dir)
    ensure_toolchain(cmd)

    cwd = project.build.working_dir or Path.cwd()
    cmd_str = shlex.join(cmd)
    logger.info("Executing native build: %s", cmd_str)
    logger.info("Working directory: %s", cwd)
    logger.info("Staging directory: %s", staging_dir)

    env: dict[str, str] | None = None
    if project.build.env or env_override:
        env = dict(os.environ)
        env.update(project.build.env)
        env.update(env_override or {})

    started_at = datetime.now(timezone.utc)

    try:
        with log_path.open("w") as log_file:
            log_file.write(f"# Command: {cmd_str}\n")
            log_file.write(f"# Started: {started_at.isoformat()}\n")
            log_file.write(f"# CWD: {cwd}\n")
            log_file.write("# " + "=" * 70 + "\n\n")
            log_file.flush()

            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                timeout=timeout,
                env=env,
                check=False,
            )
            exit_code = result.returncode

    except subprocess.TimeoutExpired as e:
        error_message = f"Native build timed out after {timeout} seconds"
        logger.error("%s. See log: %s", error_message, log_path)
        with log_path.open("a") as log_file:
            log_file.write(f"\n# TIMEOUT after {timeout} seconds\n")
        raise BuildFailure(
            error_message,
            exit_code=-1,
            log_path=log_path,
            code=BUILD_TIMEOUT,
        ) from e

    except OSError as e:
        error_message = f"Failed to execute native build: {e}"
        logger.error(error_message)
        raise BuildFailure(error_message, log_path=log_path) from e

    finished_at = datetime.now(timezone.utc)

    with log_path.open("a") as log_file:
        log_file.write(f"\n# Finished: {finished_at.isoformat()}\n")
        log_file.write(f"# Exit code: {exit_code}\n")
        duration = (finished_at - started_at).total_seconds()
        log_file.write(f"# Duration: {duration:.1f}s\n")

    if exit_code != 0:
        error_message = f"Native build failed with exit code {exit_code}"
        logger.error("%s. See log: %s", error_message, log_path)
        raise BuildFailure(error_message, exit_code=exit_code, log_path=log_path)

    logger.info("Native build finished in %.1fs", duration)
    return NativeBuildResult(
        success=True,
        exit_code=exit_code,
        staging_dir=staging_dir,
        log_path=log_path,
        started_at=started_at,
        finished_at=finished_at,
        command=cmd_str,
        architectures=project.architecture_names(),
    )


__all__ = [
    "NativeBuildResult",
    "compose_build_command",
    "ensure_toolchain",
    "run_native_build",
]
