"""
Runtime configuration.

VaultConfig is an immutable value passed explicitly into the gateway, the
encryption service and the vault. Nothing in MedVault reads the environment
on import; use VaultConfig.from_env() at the edge (the CLI does).
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .errors import ConfigurationError
from .encryption.symmetric import SymmetricScheme


# Environment variable names
ENV_PREFIX = "MEDVAULT_"
ENV_IPFS_API_URL = ENV_PREFIX + "IPFS_API_URL"
ENV_IPFS_GATEWAY_URL = ENV_PREFIX + "IPFS_GATEWAY_URL"
ENV_IPFS_PROJECT_ID = ENV_PREFIX + "IPFS_PROJECT_ID"
ENV_IPFS_PROJECT_SECRET = ENV_PREFIX + "IPFS_PROJECT_SECRET"
ENV_REQUEST_TIMEOUT = ENV_PREFIX + "REQUEST_TIMEOUT"
ENV_SYMMETRIC_SCHEME = ENV_PREFIX + "SYMMETRIC_SCHEME"
ENV_LOG_LEVEL = ENV_PREFIX + "LOG_LEVEL"

# Defaults (hosted Infura node, public ipfs.io gateway)
DEFAULT_IPFS_API_URL = "https://ipfs.infura.io:5001"
DEFAULT_IPFS_GATEWAY_URL = "https://ipfs.io"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "INFO"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class VaultConfig:
    """Settings for the storage gateway and encryption service."""
    ipfs_api_url: str = DEFAULT_IPFS_API_URL
    ipfs_gateway_url: str = DEFAULT_IPFS_GATEWAY_URL
    ipfs_project_id: Optional[str] = None
    ipfs_project_secret: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    symmetric_scheme: SymmetricScheme = SymmetricScheme.AES_256_CBC
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self):
        if not self.ipfs_api_url:
            raise ConfigurationError("must not be empty", field="ipfs_api_url")
        if not self.ipfs_gateway_url:
            raise ConfigurationError("must not be empty", field="ipfs_gateway_url")
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"must be positive, got {self.request_timeout}",
                field="request_timeout"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                f"unknown level {self.log_level!r}", field="log_level"
            )
        if bool(self.ipfs_project_id) != bool(self.ipfs_project_secret):
            raise ConfigurationError(
                "project id and secret must be set together",
                field="ipfs_project_id"
            )

    @property
    def ipfs_auth(self) -> Optional[tuple]:
        """Basic-auth pair for hosted IPFS nodes, or None."""
        if self.ipfs_project_id:
            return (self.ipfs_project_id, self.ipfs_project_secret)
        return None

    def with_overrides(self, **changes) -> 'VaultConfig':
        """Copy with some fields replaced (None values are ignored)."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'VaultConfig':
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigurationError: If a value cannot be parsed
        """
        env = os.environ if environ is None else environ

        timeout_raw = env.get(ENV_REQUEST_TIMEOUT)
        timeout = DEFAULT_REQUEST_TIMEOUT
        if timeout_raw:
            try:
                timeout = float(timeout_raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"not a number: {timeout_raw!r}", field=ENV_REQUEST_TIMEOUT
                ) from exc

        scheme = SymmetricScheme.AES_256_CBC
        scheme_raw = env.get(ENV_SYMMETRIC_SCHEME)
        if scheme_raw:
            try:
                scheme = SymmetricScheme(scheme_raw.strip().lower())
            except ValueError as exc:
                raise ConfigurationError(
                    f"unknown scheme {scheme_raw!r}", field=ENV_SYMMETRIC_SCHEME
                ) from exc

        return cls(
            ipfs_api_url=env.get(ENV_IPFS_API_URL) or DEFAULT_IPFS_API_URL,
            ipfs_gateway_url=env.get(ENV_IPFS_GATEWAY_URL) or DEFAULT_IPFS_GATEWAY_URL,
            ipfs_project_id=env.get(ENV_IPFS_PROJECT_ID) or None,
            ipfs_project_secret=env.get(ENV_IPFS_PROJECT_SECRET) or None,
            request_timeout=timeout,
            symmetric_scheme=scheme,
            log_level=(env.get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
        )
