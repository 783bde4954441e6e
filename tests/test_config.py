"""Tests for NotifierConfig.

Covers:
- Required credentials (construction fails loudly without them)
- Defaults
- Flat mapping loading with camelCase and snake_case keys
- Blocklist pattern compilation
"""

from __future__ import annotations

import re

import pytest

from airbrake_notifier.config import (
    DEFAULT_HOST,
    NotifierConfig,
    compile_pattern,
)
from airbrake_notifier.errors import ConfigurationError
from airbrake_notifier.notifier import Notifier


class TestRequiredCredentials:
    """Construction validation."""

    def test_missing_project_id_fails(self):
        """Only a project key is not enough."""
        with pytest.raises(ConfigurationError):
            Notifier({"projectKey": "abc"})

    def test_missing_project_key_fails(self):
        """Only a project id is not enough."""
        with pytest.raises(ConfigurationError):
            Notifier({"projectId": 1})

    def test_both_present_succeeds(self):
        """A notifier is built when both credentials are given."""
        notifier = Notifier({"projectId": 1, "projectKey": "abc"})
        try:
            assert notifier.config.project_id == 1
            assert notifier.config.project_key == "abc"
        finally:
            notifier.close()

    def test_empty_values_fail(self):
        """Empty credentials count as missing."""
        with pytest.raises(ConfigurationError):
            NotifierConfig(project_id=0, project_key="abc")
        with pytest.raises(ConfigurationError):
            NotifierConfig(project_id=1, project_key="")

    def test_negative_project_id_fails(self):
        """project_id must be positive."""
        with pytest.raises(ConfigurationError):
            NotifierConfig(project_id=-5, project_key="abc")

    def test_non_numeric_project_id_fails(self):
        """project_id must be an integer."""
        with pytest.raises(ConfigurationError):
            NotifierConfig(project_id="abc", project_key="abc")  # type: ignore[arg-type]

    def test_string_project_id_is_converted(self):
        """Numeric strings (e.g. from environment variables) are accepted."""
        config = NotifierConfig(project_id="42", project_key="abc")  # type: ignore[arg-type]
        assert config.project_id == 42

    def test_configuration_error_is_value_error(self):
        """ConfigurationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            NotifierConfig.from_mapping({})


class TestDefaults:
    """Default values."""

    def test_defaults(self):
        """Optional settings have production-ready defaults."""
        config = NotifierConfig(project_id=1, project_key="abc")
        assert config.host == DEFAULT_HOST
        assert config.environment == "production"
        assert config.app_version is None
        assert config.root_directory is None
        assert config.enabled is True
        assert config.http_client_options == {"timeout": 10}

    def test_default_blocklist_covers_credentials(self):
        """The default blocklist matches common credential keys case-insensitively."""
        patterns = NotifierConfig(project_id=1, project_key="abc").blocklist_patterns
        for key in ("password", "DB_PASSWORD", "client_secret", "X-Auth-Token",
                    "Authorization", "api_key", "ApiKey", "access_token"):
            assert any(p.search(key) for p in patterns), key
        assert not any(p.search("username") for p in patterns)

    def test_config_is_immutable(self):
        """Configuration cannot be changed after construction."""
        config = NotifierConfig(project_id=1, project_key="abc")
        with pytest.raises(AttributeError):
            config.environment = "staging"  # type: ignore[misc]


class TestFromMapping:
    """Flat key/value loading."""

    def test_camel_case_keys(self):
        """camelCase keys map onto config attributes."""
        config = NotifierConfig.from_mapping(
            {
                "projectId": 12345,
                "projectKey": "key",
                "appVersion": "1.2.3",
                "rootDirectory": "/var/www/app",
                "keysBlocklist": ["/card/i"],
                "httpClientOptions": {"timeout": 3},
            }
        )
        assert config.project_id == 12345
        assert config.app_version == "1.2.3"
        assert config.root_directory == "/var/www/app"
        assert config.keys_blocklist == ("/card/i",)
        assert config.http_client_options == {"timeout": 3}

    def test_snake_case_keys(self):
        """snake_case keys work too."""
        config = NotifierConfig.from_mapping(
            {"project_id": 7, "project_key": "key", "environment": "staging"}
        )
        assert config.project_id == 7
        assert config.environment == "staging"

    def test_unknown_keys_and_none_ignored(self):
        """Unknown keys are ignored and None falls back to the default."""
        config = NotifierConfig.from_mapping(
            {"projectId": 7, "projectKey": "key", "levels": [], "host": None}
        )
        assert config.host == DEFAULT_HOST


class TestCompilePattern:
    """Blocklist pattern translation."""

    def test_delimited_with_flag(self):
        """``/password/i`` becomes a case-insensitive pattern."""
        pattern = compile_pattern("/password/i")
        assert pattern.pattern == "password"
        assert pattern.flags & re.IGNORECASE
        assert pattern.search("PASSWORD")

    def test_delimited_without_flag(self):
        """Without flags, matching is case-sensitive."""
        pattern = compile_pattern("/password/")
        assert pattern.search("password")
        assert not pattern.search("PASSWORD")

    def test_plain_regex(self):
        """A plain Python regex is compiled as-is."""
        pattern = compile_pattern(r"^card_\d+$")
        assert pattern.search("card_12")

    def test_compiled_pattern_passthrough(self):
        """Already compiled patterns are returned unchanged."""
        compiled = re.compile("ssn", re.IGNORECASE)
        assert compile_pattern(compiled) is compiled

    def test_unsupported_flag(self):
        """Unknown delimiter flags are a configuration error."""
        with pytest.raises(ConfigurationError):
            compile_pattern("/password/u")


class TestBlocklistPatterns:
    """Compiled blocklist on the config."""

    def test_compiled_once(self):
        """Patterns are compiled at construction and reused."""
        config = NotifierConfig(project_id=1, project_key="abc", keys_blocklist=["/card/i"])
        assert config.blocklist_patterns is config.blocklist_patterns
        assert [p.pattern for p in config.blocklist_patterns] == ["card"]

    def test_invalid_regex_is_configuration_error(self):
        """A malformed pattern fails construction with ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid keys_blocklist pattern"):
            NotifierConfig(project_id=1, project_key="abc", keys_blocklist=["/pass(word/i"])

    def test_invalid_regex_disables_integrations(self):
        """Integrations treat a malformed pattern as an unavailable notifier."""
        from airbrake_notifier.error_logger import ErrorLogger

        error_logger = ErrorLogger({"projectId": 1, "projectKey": "abc", "keysBlocklist": ["("]})
        assert error_logger.notifier is None

    def test_internal_field_not_loaded_from_mapping(self):
        """Only constructor fields are read from a flat mapping."""
        config = NotifierConfig.from_mapping({"projectId": 1, "projectKey": "abc", "_patterns": ()})
        assert len(config.blocklist_patterns) == 7
