"""
Unit tests for VaultConfig.
"""

import pytest

from medvault.config import VaultConfig, DEFAULT_IPFS_API_URL, DEFAULT_REQUEST_TIMEOUT
from medvault.errors import ConfigurationError, ErrorKind
from medvault.encryption.symmetric import SymmetricScheme


class TestFromEnv:
    """Tests for environment loading."""

    def test_defaults(self):
        """Empty environment should give defaults."""
        config = VaultConfig.from_env({})
        assert config.ipfs_api_url == DEFAULT_IPFS_API_URL
        assert config.request_timeout == DEFAULT_REQUEST_TIMEOUT
        assert config.symmetric_scheme is SymmetricScheme.AES_256_CBC
        assert config.ipfs_auth is None

    def test_all_values(self):
        """Every variable should be read."""
        config = VaultConfig.from_env({
            "MEDVAULT_IPFS_API_URL": "http://localhost:5001",
            "MEDVAULT_IPFS_GATEWAY_URL": "http://localhost:8080",
            "MEDVAULT_IPFS_PROJECT_ID": "project",
            "MEDVAULT_IPFS_PROJECT_SECRET": "secret",
            "MEDVAULT_REQUEST_TIMEOUT": "5",
            "MEDVAULT_SYMMETRIC_SCHEME": "AES-256-GCM",
            "MEDVAULT_LOG_LEVEL": "debug",
        })
        assert config.ipfs_api_url == "http://localhost:5001"
        assert config.ipfs_gateway_url == "http://localhost:8080"
        assert config.ipfs_auth == ("project", "secret")
        assert config.request_timeout == 5.0
        assert config.symmetric_scheme is SymmetricScheme.AES_256_GCM
        assert config.log_level == "DEBUG"

    def test_bad_timeout(self):
        """Non-numeric timeout should raise ConfigurationError."""
        with pytest.raises(ConfigurationError) as excinfo:
            VaultConfig.from_env({"MEDVAULT_REQUEST_TIMEOUT": "soon"})
        assert excinfo.value.kind is ErrorKind.CONFIGURATION

    def test_bad_scheme(self):
        """Unknown scheme should raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            VaultConfig.from_env({"MEDVAULT_SYMMETRIC_SCHEME": "rot13"})


class TestValidation:
    """Tests for value validation."""

    def test_negative_timeout(self):
        """Timeout must be positive."""
        with pytest.raises(ConfigurationError):
            VaultConfig(request_timeout=0)

    def test_unknown_log_level(self):
        """Log level must be a known level."""
        with pytest.raises(ConfigurationError):
            VaultConfig(log_level="LOUD")

    def test_secret_without_id(self):
        """Project id and secret must be set together."""
        with pytest.raises(ConfigurationError):
            VaultConfig(ipfs_project_secret="secret")

    def test_with_overrides_ignores_none(self):
        """None overrides should keep the current value."""
        config = VaultConfig().with_overrides(ipfs_api_url=None, request_timeout=3.0)
        assert config.ipfs_api_url == DEFAULT_IPFS_API_URL
        assert config.request_timeout == 3.0

    def test_frozen(self):
        """Config should be immutable."""
        with pytest.raises(AttributeError):
            VaultConfig().request_timeout = 1.0
