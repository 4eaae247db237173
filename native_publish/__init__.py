"""Native Publish - build, package and publish multi-architecture native libraries.

This package orchestrates the cross-compilation toolchain, assembles the
per-architecture binaries into a library archive and uploads it, together
with its Maven publication descriptor, to the configured repositories.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
