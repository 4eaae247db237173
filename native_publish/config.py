"""Configuration settings for native_publish.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.

These are deployment settings (where to stage, how long to wait, where the
credentials override file lives). Release identity lives in the project file,
see native_publish.project.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_staging_dir() -> Path:
    """Return the default staging directory for native build outputs."""
    return Path("build") / "intermediates" / "jniLibs"


def _default_output_dir() -> Path:
    """Return the default directory for packaged outputs."""
    return Path("build") / "outputs"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the NATIVE_PUB_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="NATIVE_PUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    staging_dir: Path = Field(
        default_factory=_default_staging_dir,
        description="Directory the native toolchain writes its outputs to",
    )
    output_dir: Path = Field(
        default_factory=_default_output_dir,
        description="Directory for the assembled payload and library archives",
    )
    credentials_file: Path = Field(
        default=Path("local.properties"),
        description="Local, git-ignored properties file with credential overrides",
    )

    # Credentials
    credential_prefixes: list[str] = Field(
        default_factory=lambda: ["signing", "ossrh"],
        description="Credential file keys must start with one of these prefixes",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    gpg_command: str = Field(
        default="gpg",
        description="GnuPG executable used when signing is enabled",
    )

    # Timeouts (in seconds)
    build_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for the native build",
    )
    upload_timeout: int = Field(
        default=300,
        ge=10,
        description="Timeout for each file upload",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
