"""Project configuration module.

This module handles:
- The immutable project configuration model (identity, architectures,
  build command, packaging, repositories, signing)
- Loading project files from YAML/JSON
"""

from native_publish.project.io import load_project
from native_publish.project.schema import (
    ProjectConfig,
    RepositoryEndpointSchema,
    TargetArchitectureSchema,
)

__all__ = [
    "ProjectConfig",
    "RepositoryEndpointSchema",
    "TargetArchitectureSchema",
    "load_project",
]
