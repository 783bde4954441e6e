"""Notifier configuration."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from airbrake_notifier.errors import ConfigurationError

DEFAULT_HOST = "https://api.airbrake.io"

DEFAULT_KEYS_BLOCKLIST: tuple[str, ...] = (
    "/password/i",
    "/secret/i",
    "/token/i",
    "/authorization/i",
    "/api_key/i",
    "/apikey/i",
    "/access_token/i",
)

DEFAULT_HTTP_CLIENT_OPTIONS: dict[str, Any] = {"timeout": 10}

# Flat-config spellings accepted by from_mapping
_ALIASES = {
    "projectId": "project_id",
    "projectKey": "project_key",
    "appVersion": "app_version",
    "rootDirectory": "root_directory",
    "keysBlocklist": "keys_blocklist",
    "httpClientOptions": "http_client_options",
}

_DELIMITED = re.compile(r"^/(?P<body>.*)/(?P<flags>[a-z]*)$", re.DOTALL)
_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


def compile_pattern(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    """Compile a blocklist entry.

    Entries may already be compiled, plain Python regexes, or written in
    delimiter form such as ``/password/i``; the trailing flags of the
    delimiter form are honoured.
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    match = _DELIMITED.match(pattern)
    if match is None:
        return _compile(pattern, 0)
    flags = 0
    for char in match.group("flags"):
        if char not in _FLAGS:
            raise ConfigurationError(f"Unsupported regex flag {char!r} in {pattern!r}")
        flags |= _FLAGS[char]
    return _compile(match.group("body"), flags)


def _compile(pattern: str, flags: int) -> re.Pattern[str]:
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise ConfigurationError(f"Invalid keys_blocklist pattern {pattern!r}: {exc}") from exc


@dataclass(frozen=True)
class NotifierConfig:
    """Immutable notifier settings.

    Args:
        project_id: Airbrake project id (positive integer).
        project_key: Airbrake project API key.
        host: API host; ``https://`` is assumed when no scheme is given.
        environment: Deployment environment reported with every notice.
        app_version: Application version reported with every notice.
        root_directory: Absolute path replaced by ``[PROJECT_ROOT]`` in backtraces.
        keys_blocklist: Key patterns whose values are redacted.
        enabled: When False, notices are never sent.
        http_client_options: Keyword arguments for the ``httpx.Client``.
    """

    project_id: int
    project_key: str
    host: str = DEFAULT_HOST
    environment: str = "production"
    app_version: str | None = None
    root_directory: str | None = None
    keys_blocklist: Sequence[str | re.Pattern[str]] = DEFAULT_KEYS_BLOCKLIST
    enabled: bool = True
    http_client_options: Mapping[str, Any] = field(
        default_factory=lambda: dict(DEFAULT_HTTP_CLIENT_OPTIONS)
    )
    _patterns: tuple[re.Pattern[str], ...] = field(
        init=False, repr=False, compare=False, default=()
    )

    def __post_init__(self) -> None:
        if not self.project_id or not self.project_key:
            raise ConfigurationError(
                "Airbrake: project_id and project_key are required configuration options."
            )
        try:
            project_id = int(self.project_id)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Airbrake: project_id must be an integer, got {self.project_id!r}"
            ) from None
        if project_id <= 0:
            raise ConfigurationError(
                f"Airbrake: project_id must be positive, got {project_id}"
            )
        object.__setattr__(self, "project_id", project_id)
        object.__setattr__(self, "keys_blocklist", tuple(self.keys_blocklist))
        object.__setattr__(
            self, "_patterns", tuple(compile_pattern(p) for p in self.keys_blocklist)
        )
        object.__setattr__(self, "http_client_options", dict(self.http_client_options))

    @property
    def blocklist_patterns(self) -> tuple[re.Pattern[str], ...]:
        """Compiled ``keys_blocklist``, built once at construction."""
        return self._patterns

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> NotifierConfig:
        """Build a config from a flat key/value structure.

        Keys may use the camelCase names (``projectId``) or the snake_case
        attribute names. Unknown keys and ``None`` values are ignored so that
        optional settings fall back to their defaults.
        """
        known = {name for name, f in cls.__dataclass_fields__.items() if f.init}
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = _ALIASES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        if "project_id" not in kwargs or "project_key" not in kwargs:
            raise ConfigurationError(
                "Airbrake: project_id and project_key are required configuration options."
            )
        return cls(**kwargs)
