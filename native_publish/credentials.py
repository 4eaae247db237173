"""Credential resolution.

Secrets are looked up by key across an ordered list of sources; the first
source that knows a key wins. The default order is the local, git-ignored
properties file followed by the process environment, so a value in the file
overrides the same key in the environment.

Resolution never fails on its own. A missing secret only becomes an error
(:class:`~native_publish.errors.MissingCredential`) when an endpoint that
requires it is actually published to.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from native_publish.errors import MissingCredential
from native_publish.types import Credential

if TYPE_CHECKING:
    from native_publish.config import Settings
    from native_publish.project.schema import RepositoryEndpointSchema

logger = logging.getLogger(__name__)

_SEPARATORS = "=:"
_WHITESPACE = " \t\f"
_COMMENT_PREFIXES = ("#", "!")
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
# Only these end a line; form feed is whitespace
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def _unescape(text: str) -> str:
    """Resolve ``\\t``, ``\\n``, ``\\r``, ``\\f``, ``\\uXXXX`` and ``\\<char>``."""
    chars: list[str] = []
    idx = 0
    while idx < len(text):
        char = text[idx]
        if char != "\\" or idx + 1 == len(text):
            chars.append(char)
            idx += 1
            continue
        escaped = text[idx + 1]
        digits = text[idx + 2 : idx + 6]
        if escaped == "u" and len(digits) == 4 and set(digits) <= _HEX_DIGITS:
            chars.append(chr(int(digits, 16)))
            idx += 6
            continue
        chars.append(_ESCAPES.get(escaped, escaped))
        idx += 2
    return "".join(chars)


def _split_property(line: str) -> tuple[str, str]:
    """Split a logical properties line into unescaped key and value."""
    idx = 0
    while idx < len(line):
        char = line[idx]
        if char == "\\":
            idx += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        idx += 1

    key = line[:idx]
    rest = line[idx:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return _unescape(key), _unescape(rest)


def _logical_lines(text: str) -> Iterator[str]:
    """Yield logical lines with comments dropped and continuations joined."""
    pending: str | None = None
    for raw_line in _LINE_BREAK.split(text):
        line = raw_line.lstrip(_WHITESPACE)
        if pending is None:
            if not line or line.startswith(_COMMENT_PREFIXES):
                continue
            pending = ""

        # An odd run of trailing backslashes continues the line
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2:
            pending += line[:-1]
            continue

        yield pending + line
        pending = None

    if pending:
        yield pending


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``local.properties`` text the way ``java.util.Properties`` does.

    Supports ``=``, ``:`` or whitespace separators, ``#``/``!`` comment
    lines, blank lines and trailing-backslash line continuations. Escapes
    (``\\t``, ``\\n``, ``\\r``, ``\\f``, ``\\uXXXX`` and a backslash before
    any other character) are resolved in keys and values. Trailing
    whitespace in values is kept. Later definitions of a key replace
    earlier ones.

    Args:
        text: Properties file content.

    Returns:
        Mapping of keys to values.
    """
    properties: dict[str, str] = {}
    for logical in _logical_lines(text):
        key, value = _split_property(logical)
        if key:
            properties[key] = value
    return properties


class CredentialSource(Protocol):
    """A named provider of secrets by key."""

    name: str

    def get(self, key: str) -> str | None: ...


class MappingSource:
    """Credential source backed by an in-memory mapping."""

    def __init__(self, values: Mapping[str, str], name: str = "mapping") -> None:
        self.name = name
        self._values = dict(values)

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def keys(self) -> list[str]:
        return sorted(self._values)


class PropertiesFileSource(MappingSource):
    """Credential source backed by a local properties file.

    Only keys starting with one of ``prefixes`` are retained; unrelated
    settings in the same file are discarded. An empty prefix list keeps
    every key. A missing file yields an empty source.
    """

    def __init__(self, path: Path, prefixes: Sequence[str] = ()) -> None:
        self.path = path
        self.prefixes = tuple(prefixes)
        super().__init__(self._load(), name=f"file:{path}")

    def _load(self) -> dict[str, str]:
        if not self.path.is_file():
            logger.debug("Credentials file not present: %s", self.path)
            return {}

        properties = parse_properties(self.path.read_text(encoding="utf-8"))
        kept = {
            key: value
            for key, value in properties.items()
            if not self.prefixes or key.startswith(self.prefixes)
        }
        logger.debug(
            "Loaded %d of %d keys from %s", len(kept), len(properties), self.path
        )
        return kept


class EnvironmentSource:
    """Credential source backed by environment variables."""

    name = "environment"

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ if environ is not None else os.environ

    def get(self, key: str) -> str | None:
        return self._environ.get(key)


class CredentialResolver:
    """Looks up secrets across ordered sources with first-hit precedence."""

    def __init__(self, sources: Iterable[CredentialSource]) -> None:
        self.sources = list(sources)

    def lookup_with_source(self, key: str) -> tuple[str | None, str | None]:
        """Return ``(value, source name)`` or ``(None, None)``."""
        for source in self.sources:
            value = source.get(key)
            if value is not None:
                return value, source.name
        return None, None

    def lookup(self, key: str) -> str | None:
        value, _ = self.lookup_with_source(key)
        return value

    def resolve(self, endpoint: RepositoryEndpointSchema) -> Credential | None:
        """Resolve an endpoint's credential without failing.

        Returns:
            The credential, or None when the endpoint needs no authentication
            or any required key is unresolved.
        """
        if endpoint.credentials is None:
            return None
        username = self.lookup(endpoint.credentials.username)
        password = self.lookup(endpoint.credentials.password)
        if username is None or password is None:
            return None
        return Credential(endpoint=endpoint.name, username=username, password=password)

    def require(self, endpoint: RepositoryEndpointSchema) -> Credential | None:
        """Resolve an endpoint's credential for an authenticated operation.

        Returns:
            The credential, or None when the endpoint needs no authentication.

        Raises:
            MissingCredential: If a required key resolves in no source.
        """
        if endpoint.credentials is None:
            return None
        for key in (endpoint.credentials.username, endpoint.credentials.password):
            if self.lookup(key) is None:
                raise MissingCredential(endpoint.name, key)
        return self.resolve(endpoint)


def default_resolver(
    settings: Settings,
    environ: Mapping[str, str] | None = None,
) -> CredentialResolver:
    """Build the standard resolver: credentials file first, then environment."""
    return CredentialResolver(
        [
            PropertiesFileSource(
                settings.credentials_file, settings.credential_prefixes
            ),
            EnvironmentSource(environ),
        ]
    )


__all__ = [
    "CredentialResolver",
    "CredentialSource",
    "EnvironmentSource",
    "MappingSource",
    "PropertiesFileSource",
    "default_resolver",
    "parse_properties",
]
