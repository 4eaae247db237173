"""Build and assembly module.

This module handles:
- Running the native cross-compilation toolchain (runner)
- Collecting per-architecture outputs and packaging the library (assembler)
"""

from native_publish.builds.assembler import collect_artifacts
from native_publish.builds.runner import NativeBuildResult, run_native_build

__all__ = ["NativeBuildResult", "collect_artifacts", "run_native_build"]
