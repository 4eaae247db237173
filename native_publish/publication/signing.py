"""Optional signing stage.

Signing is switched by ``signing.enabled`` in the project file. When
disabled the stage is still part of the pipeline but does nothing, so
turning it on needs no other change. When enabled, every publication file
gets an ASCII-armoured detached GnuPG signature (``<file>.asc``) that the
publisher uploads next to it.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from native_publish.errors import SigningFailure

if TYPE_CHECKING:
    from native_publish.config import Settings
    from native_publish.credentials import CredentialResolver
    from native_publish.project.schema import ProjectConfig

logger = logging.getLogger(__name__)

# Timeout for a single gpg invocation (seconds)
SIGN_TIMEOUT = 120


class Signer(Protocol):
    enabled: bool

    def sign(self, path: Path) -> Path | None: ...


class NoopSigner:
    """Signer used when signing is disabled."""

    enabled = False

    def sign(self, path: Path) -> Path | None:
        logger.debug("Signing disabled, skipping %s", path.name)
        return None


class GpgSigner:
    """Detached-signature signer using the gpg command line."""

    enabled = True

    def __init__(
        self,
        gpg_command: str = "gpg",
        key_name: str | None = None,
        passphrase: str | None = None,
        timeout: int = SIGN_TIMEOUT,
    ) -> None:
        self.gpg_command = gpg_command
        self.key_name = key_name
        self.passphrase = passphrase
        self.timeout = timeout

    def compose_command(self, path: Path, signature_path: Path) -> list[str]:
        """Compose the gpg invocation for one file."""
        cmd = [self.gpg_command, "--batch", "--yes", "--armor"]
        if self.key_name:
            cmd.extend(["--local-user", self.key_name])
        if self.passphrase is not None:
            cmd.extend(["--pinentry-mode", "loopback", "--passphrase-fd", "0"])
        cmd.extend(["--output", str(signature_path), "--detach-sign", str(path)])
        return cmd

    def sign(self, path: Path) -> Path | None:
        """Sign a file.

        Returns:
            Path to the ``.asc`` signature.

        Raises:
            SigningFailure: If gpg cannot be run or exits non-zero.
        """
        signature_path = path.with_name(path.name + ".asc")
        cmd = self.compose_command(path, signature_path)
        logger.info("Signing %s", path.name)

        try:
            result = subprocess.run(
                cmd,
                input=self.passphrase,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise SigningFailure(
                f"Signing {path.name} timed out after {self.timeout}s", path=path
            ) from e
        except OSError as e:
            raise SigningFailure(
                f"Failed to run {self.gpg_command}: {e}", path=path
            ) from e

        if result.returncode != 0:
            raise SigningFailure(
                f"Signing {path.name} failed (exit {result.returncode}): "
                f"{result.stderr.strip()}",
                path=path,
            )
        return signature_path


def create_signer(
    project: ProjectConfig,
    settings: Settings,
    resolver: CredentialResolver,
) -> Signer:
    """Pick the signer for a project.

    Key name and passphrase are resolved through the credential resolver;
    both are optional, gpg falls back to its default key and agent.
    """
    if not project.signing.enabled:
        return NoopSigner()
    return GpgSigner(
        gpg_command=settings.gpg_command,
        key_name=resolver.lookup(project.signing.key_name_key),
        passphrase=resolver.lookup(project.signing.passphrase_key),
    )


__all__ = ["GpgSigner", "NoopSigner", "SIGN_TIMEOUT", "Signer", "create_signer"]
