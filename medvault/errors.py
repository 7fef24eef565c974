"""
Error types for MedVault.

Every failure is raised once, at the point where it happens, as a
VaultError subclass carrying:
- kind: ErrorKind enumeration value
- operation: the public operation that failed (e.g. "decrypt_with_private_key")
- field: the input field at fault, when there is one (e.g. "mac")

The underlying library exception (if any) is chained with ``raise ... from``
so it stays available on ``__cause__``. Callers should not re-wrap these.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Categories of failure."""
    ENCRYPTION = "encryption"
    DECRYPTION = "decryption"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    STORAGE = "storage"
    CONFIGURATION = "configuration"


class VaultError(Exception):
    """Base class for all MedVault errors."""

    kind: Optional[ErrorKind] = None

    def __init__(self, message: str,
                 operation: Optional[str] = None,
                 field: Optional[str] = None):
        self.message = message
        self.operation = operation
        self.field = field
        super().__init__(self._format())

    def _format(self) -> str:
        parts = []
        if self.operation:
            parts.append(self.operation)
        if self.field:
            parts.append(f"field '{self.field}'")
        prefix = ": ".join(parts)
        return f"{prefix}: {self.message}" if prefix else self.message


class EncryptionError(VaultError):
    """Malformed public key, bad symmetric key material, or unserializable payload."""
    kind = ErrorKind.ENCRYPTION


class DecryptionError(VaultError):
    """MAC mismatch, bad padding, or malformed envelope/ciphertext fields."""
    kind = ErrorKind.DECRYPTION


class ResourceUnavailable(VaultError):
    """Randomness source or crypto primitive unavailable. Fatal, never retried."""
    kind = ErrorKind.RESOURCE_UNAVAILABLE


class StorageError(VaultError):
    """IPFS node unreachable, non-2xx reply, or malformed reply."""
    kind = ErrorKind.STORAGE


class ConfigurationError(VaultError):
    """Invalid configuration value."""
    kind = ErrorKind.CONFIGURATION
