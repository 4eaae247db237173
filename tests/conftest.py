"""Shared fixtures for native_publish tests."""

from pathlib import Path
from typing import Any

import pytest

from native_publish.config import Settings
from native_publish.project.schema import ProjectConfig

LIBRARY_NAME = "libdemo.so"


def project_data(**overrides: Any) -> dict[str, Any]:
    """Return raw data of a valid project, overriding top-level fields."""
    data: dict[str, Any] = {
        "group": "co.example",
        "artifact_id": "demo-core",
        "version": "0.1.4",
        "description": "Demo native core",
        "url": "https://github.com/example/demo-core",
        "licenses": [
            {
                "name": "Apache License, Version 2.0",
                "url": "http://www.apache.org/licenses/LICENSE-2.0.txt",
            }
        ],
        "developers": [
            {"id": "example", "name": "Example, Inc.", "email": "dev@example.com"}
        ],
        "scm": {
            "connection": "scm:git:github.com/example/demo-core.git",
            "developer_connection": "scm:git:ssh://github.com/example/demo-core.git",
            "url": "https://github.com/example/demo-core",
        },
        "architectures": [{"name": "arch1"}, {"name": "arch2"}],
        "library_pattern": "libdemo*.so",
        "packaging": {"format": "aar", "namespace": "co.example.demo", "min_sdk": 24},
    }
    data.update(overrides)
    return data


def make_project(**overrides: Any) -> ProjectConfig:
    """Build a valid project, overriding top-level fields."""
    return ProjectConfig.model_validate(project_data(**overrides))


def write_staging(staging_dir: Path, architectures: list[str]) -> Path:
    """Create one fake library per architecture in a staging tree."""
    for arch in architectures:
        arch_dir = staging_dir / arch
        arch_dir.mkdir(parents=True, exist_ok=True)
        (arch_dir / LIBRARY_NAME).write_bytes(f"ELF-{arch}".encode())
    return staging_dir


@pytest.fixture
def project() -> ProjectConfig:
    """Project with two architectures and no repositories."""
    return make_project()


@pytest.fixture
def staging_dir(tmp_path: Path) -> Path:
    """Staging tree with outputs for arch1 and arch2."""
    return write_staging(tmp_path / "staging", ["arch1", "arch2"])


@pytest.fixture
def settings(tmp_path: Path, staging_dir: Path) -> Settings:
    """Settings pointing at temporary directories."""
    return Settings(
        staging_dir=staging_dir,
        output_dir=tmp_path / "outputs",
        credentials_file=tmp_path / "local.properties",
        credential_prefixes=["signing", "repo"],
    )
