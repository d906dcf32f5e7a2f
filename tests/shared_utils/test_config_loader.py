"""
Comprehensive tests for shared_utils.config_loader.

Covers the field validators, the production secret rule, get_api_base_url(),
store selection, and get_settings() caching.
"""

import os
from unittest.mock import patch

import pytest

from shared_utils.config_loader import Settings, get_settings
from shared_utils.error_handler import ConfigurationError


# ---------------------------------------------------------------------------
# Helpers: minimal required kwargs
# ---------------------------------------------------------------------------

_BASE = {
    "environment": "development",
    "jwt_secret": "s3cret",
    "dynamodb_table_name": "",
}


def _settings(**overrides) -> Settings:
    kw = {**_BASE, **overrides}
    return Settings(**kw)


# ---------------------------------------------------------------------------
# validate_environment
# ---------------------------------------------------------------------------


class TestValidateEnvironment:
    @pytest.mark.parametrize(
        "input_val, expected",
        [
            ("development", "development"),
            ("STAGING", "staging"),
            ("Production", "production"),
        ],
    )
    def test_valid_environments(self, input_val: str, expected: str) -> None:
        s = _settings(environment=input_val)
        assert s.environment == expected

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="environment"):
            _settings(environment="qa")


# ---------------------------------------------------------------------------
# validate_log_level / validate_join_identity_source
# ---------------------------------------------------------------------------


class TestValidateLogLevel:
    def test_normalised_upper(self) -> None:
        assert _settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="log_level"):
            _settings(log_level="chatty")


class TestValidateJoinIdentitySource:
    def test_default_is_payload(self) -> None:
        assert _settings().join_identity_source == "payload"

    def test_token_case_insensitive(self) -> None:
        assert _settings(join_identity_source="TOKEN").join_identity_source == "token"

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError, match="join_identity_source"):
            _settings(join_identity_source="cookie")


# ---------------------------------------------------------------------------
# Numeric coordination settings
# ---------------------------------------------------------------------------


class TestNumericSettings:
    def test_join_timeout_defaults_to_none(self) -> None:
        assert _settings().join_timeout_seconds is None

    def test_join_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="join_timeout_seconds"):
            _settings(join_timeout_seconds=0)

    def test_sweep_disabled_by_default(self) -> None:
        s = _settings()
        assert s.sweep_interval_seconds == 0.0
        assert s.sweep_grace_seconds == 300.0

    def test_negative_sweep_raises(self) -> None:
        with pytest.raises(ValueError, match="sweep"):
            _settings(sweep_grace_seconds=-1)


# ---------------------------------------------------------------------------
# Production secret rule
# ---------------------------------------------------------------------------


class TestProductionSecret:
    def test_production_requires_secret(self) -> None:
        with pytest.raises(ValueError, match="jwt_secret"):
            _settings(environment="production", jwt_secret="")

    def test_development_allows_empty_secret(self) -> None:
        assert _settings(jwt_secret="").jwt_secret == ""


# ---------------------------------------------------------------------------
# get_api_base_url / store selection
# ---------------------------------------------------------------------------


class TestGetApiBaseUrl:
    def test_default_http(self) -> None:
        assert _settings().get_api_base_url() == "http://localhost:3001"

    def test_https_443_omits_port(self) -> None:
        s = _settings(api_protocol="https", api_port=443, api_host="chat.example.com")
        assert s.get_api_base_url() == "https://chat.example.com"

    def test_http_80_omits_port(self) -> None:
        assert _settings(api_port=80).get_api_base_url() == "http://localhost"


class TestStoreSelection:
    def test_empty_table_uses_memory(self) -> None:
        assert _settings().uses_in_memory_store is True

    def test_table_name_uses_dynamodb(self) -> None:
        assert _settings(dynamodb_table_name="meetings").uses_in_memory_store is False


# ---------------------------------------------------------------------------
# get_settings caching
# ---------------------------------------------------------------------------


class TestGetSettings:
    def test_get_settings_reads_environment(self) -> None:
        """get_settings() is @lru_cache, so we clear it and invoke once."""
        get_settings.cache_clear()
        try:
            with patch.dict(os.environ, {
                "ENVIRONMENT": "staging",
                "JOIN_IDENTITY_SOURCE": "token",
                "API_PORT": "4000",
            }, clear=False):
                settings = get_settings()
                assert isinstance(settings, Settings)
                assert settings.environment == "staging"
                assert settings.join_identity_source == "token"
                assert settings.api_port == 4000
                assert get_settings() is settings
        finally:
            get_settings.cache_clear()

    def test_invalid_environment_raises_configuration_error(self) -> None:
        get_settings.cache_clear()
        try:
            with patch.dict(os.environ, {"ENVIRONMENT": "qa"}, clear=False):
                with pytest.raises(ConfigurationError, match="Invalid configuration"):
                    get_settings()
        finally:
            get_settings.cache_clear()
