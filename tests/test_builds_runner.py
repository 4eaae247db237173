"""Tests for builds/runner.py module.

Tests build command composition and execution.
Uses mocked subprocess for build execution tests.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from conftest import make_project

from native_publish.builds.runner import (
    NativeBuildResult,
    compose_build_command,
    ensure_toolchain,
    run_native_build,
)
from native_publish.errors import (
    BUILD_FAILED,
    BUILD_TIMEOUT,
    TOOLCHAIN_MISSING,
    BuildFailure,
)


@pytest.fixture
def cargo_project():
    """Project mirroring a cargo-ndk build of four Android ABIs."""
    return make_project(
        architectures=[
            {"name": "armeabi-v7a"},
            {"name": "arm64-v8a"},
            {"name": "x86"},
            {"name": "x86_64"},
        ],
        build={
            "command": ["cargo", "ndk"],
            "args": ["build", "--release", "-Zbuild-std", "-p", "demo_loadable"],
        },
    )


class TestComposeBuildCommand:
    """Tests for compose_build_command function."""

    def test_single_invocation_covers_all_architectures(self, cargo_project, tmp_path):
        """Should pass every architecture to one command."""
        cmd = compose_build_command(
            cargo_project.build, cargo_project.architectures, tmp_path / "jniLibs"
        )

        assert cmd[:2] == ["cargo", "ndk"]
        assert cmd.count("-t") == 4
        for abi in ("armeabi-v7a", "arm64-v8a", "x86", "x86_64"):
            assert cmd[cmd.index(abi) - 1] == "-t"

    def test_architecture_order_preserved(self, cargo_project, tmp_path):
        """Should keep declaration order of architectures."""
        cmd = compose_build_command(
            cargo_project.build, cargo_project.architectures, tmp_path
        )
        abis = [cmd[i + 1] for i, part in enumerate(cmd) if part == "-t"]
        assert abis == ["armeabi-v7a", "arm64-v8a", "x86", "x86_64"]

    def test_output_dir_and_trailing_args(self, cargo_project, tmp_path):
        """Should place output flag before the trailing build args."""
        out = tmp_path / "jniLibs"
        cmd = compose_build_command(
            cargo_project.build, cargo_project.architectures, out
        )

        assert cmd[cmd.index("-o") + 1] == str(out)
        assert cmd[-5:] == ["build", "--release", "-Zbuild-std", "-p", "demo_loadable"]
        assert cmd.index("-o") < cmd.index("build")

    def test_custom_flags(self, tmp_path):
        """Should honour custom architecture and output flags."""
        project = make_project(
            build={
                "command": ["./build.sh"],
                "arch_flag": "--abi",
                "output_flag": "--out",
                "args": [],
            }
        )
        cmd = compose_build_command(project.build, project.architectures, tmp_path)
        assert cmd == [
            "./build.sh", "--abi", "arch1", "--abi", "arch2", "--out", str(tmp_path)
        ]


class TestEnsureToolchain:
    """Tests for ensure_toolchain function."""

    def test_found(self):
        """Should return the resolved executable."""
        with patch(
            "native_publish.builds.runner.shutil.which", return_value="/usr/bin/cargo"
        ):
            assert ensure_toolchain(["cargo", "ndk"]) == "/usr/bin/cargo"

    def test_missing(self):
        """Should raise BuildFailure with toolchain code."""
        with (
            patch("native_publish.builds.runner.shutil.which", return_value=None),
            pytest.raises(BuildFailure) as exc_info,
        ):
            ensure_toolchain(["cargo", "ndk"])
        assert exc_info.value.code == TOOLCHAIN_MISSING


@patch("native_publish.builds.runner.shutil.which", return_value="/usr/bin/cargo")
class TestRunNativeBuild:
    """Tests for run_native_build function."""

    def test_successful_build(self, _which, project, tmp_path):
        """Should return a successful result and write the log."""
        staging = tmp_path / "intermediates" / "jniLibs"
        with patch("native_publish.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            result = run_native_build(project, staging)

        assert isinstance(result, NativeBuildResult)
        assert result.success is True
        assert result.exit_code == 0
        assert result.staging_dir == staging.resolve()
        assert result.architectures == ["arch1", "arch2"]
        assert staging.is_dir()

        log = result.log_path.read_text()
        assert "# Command:" in log
        assert "# Exit code: 0" in log
        mock_run.assert_called_once()

    def test_non_zero_exit_raises(self, _which, project, tmp_path):
        """Should raise BuildFailure carrying the exit code and log path."""
        with (
            patch("native_publish.builds.runner.subprocess.run") as mock_run,
            pytest.raises(BuildFailure) as exc_info,
        ):
            mock_run.return_value = MagicMock(returncode=101)
            run_native_build(project, tmp_path / "staging")

        error = exc_info.value
        assert error.code == BUILD_FAILED
        assert error.exit_code == 101
        assert error.log_path is not None
        assert "# Exit code: 101" in error.log_path.read_text()

    def test_timeout_raises(self, _which, project, tmp_path):
        """Should raise BuildFailure with timeout code."""
        with (
            patch(
                "native_publish.builds.runner.subprocess.run",
                side_effect=subprocess.TimeoutExpired(cmd="cargo", timeout=60),
            ),
            pytest.raises(BuildFailure) as exc_info,
        ):
            run_native_build(project, tmp_path / "staging", timeout=60)

        assert exc_info.value.code == BUILD_TIMEOUT
        assert "TIMEOUT" in exc_info.value.log_path.read_text()

    def test_os_error_raises(self, _which, project, tmp_path):
        """Should wrap OSError in BuildFailure."""
        with (
            patch(
                "native_publish.builds.runner.subprocess.run",
                side_effect=OSError("exec format error"),
            ),
            pytest.raises(BuildFailure) as exc_info,
        ):
            run_native_build(project, tmp_path / "staging")

        assert "exec format error" in str(exc_info.value)

    def test_unwritable_staging_raises(self, _which, project, tmp_path):
        """Should wrap a failure to create the staging tree in BuildFailure."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with (
            patch("native_publish.builds.runner.subprocess.run") as mock_run,
            pytest.raises(BuildFailure) as exc_info,
        ):
            run_native_build(project, blocker / "staging")

        assert exc_info.value.code == BUILD_FAILED
        assert "staging directory" in exc_info.value.message
        mock_run.assert_not_called()

    def test_runs_in_working_dir_with_env(self, _which, tmp_path):
        """Should run from the configured directory with merged environment."""
        project = make_project(
            build={"working_dir": str(tmp_path), "env": {"CARGO_TERM_COLOR": "never"}}
        )
        with patch("native_publish.builds.runner.subprocess.run") as mock_run:
            mock_run.return_value = MagicMock(returncode=0)
            run_native_build(
                project, tmp_path / "staging", env_override={"RUSTFLAGS": "-g"}
            )

        kwargs = mock_run.call_args.kwargs
        assert kwargs["cwd"] == tmp_path
        assert kwargs["env"]["CARGO_TERM_COLOR"] == "never"
        assert kwargs["env"]["RUSTFLAGS"] == "-g"
        assert kwargs["check"] is False
