"""Project file loading.

Project files are YAML (``.yaml``/``.yml``) or JSON (``.json``) documents
validated against :class:`~native_publish.project.schema.ProjectConfig`.
Relative paths inside the file (build working directory, sources directory)
are resolved against the directory containing the project file.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from native_publish.errors import ProjectConfigError
from native_publish.project.schema import ProjectConfig


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _resolve_relative_paths(data: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Anchor relative paths in raw project data to the project file's directory."""
    resolved = dict(data)

    build = resolved.get("build")
    if isinstance(build, dict) and build.get("working_dir"):
        build = dict(build)
        build["working_dir"] = str(base_dir / build["working_dir"])
        resolved["build"] = build

    packaging = resolved.get("packaging")
    if isinstance(packaging, dict) and packaging.get("sources_dir"):
        packaging = dict(packaging)
        packaging["sources_dir"] = str(base_dir / packaging["sources_dir"])
        resolved["packaging"] = packaging

    return resolved


def parse_project_data(data: dict[str, Any]) -> ProjectConfig:
    """Validate raw project data.

    Raises:
        pydantic.ValidationError: If data does not match schema.
    """
    return ProjectConfig.model_validate(data)


def load_project(path: Path) -> ProjectConfig:
    """Load and validate a project file (YAML or JSON).

    File format is determined by extension.

    Args:
        path: Path to the project file.

    Returns:
        Validated, frozen ProjectConfig.

    Raises:
        ProjectConfigError: If the file is missing, unreadable or invalid.
    """
    suffix = path.suffix.lower()
    try:
        if suffix in (".yaml", ".yml"):
            data = load_yaml(path)
        elif suffix == ".json":
            data = load_json(path)
        else:
            raise ProjectConfigError(
                f"Unsupported project file extension: {suffix}. "
                "Use .yaml, .yml, or .json"
            )
    except FileNotFoundError as e:
        raise ProjectConfigError(f"Project file not found: {path}") from e
    except (yaml.YAMLError, json.JSONDecodeError, ValueError) as e:
        raise ProjectConfigError(f"Cannot parse project file {path}: {e}") from e

    data = _resolve_relative_paths(data, path.resolve().parent)
    try:
        return parse_project_data(data)
    except ValidationError as e:
        raise ProjectConfigError(f"Invalid project file {path}:\n{e}") from e


__all__ = [
    "load_json",
    "load_project",
    "load_yaml",
    "parse_project_data",
]
