"""
Encryption service facade.

Bundles key generation, ECIES envelopes and symmetric encryption behind one
object so collaborators (the storage gateway, the record vault) can take it
as a constructor argument.

The service keeps no per-call state: one instance may be shared between
threads and requests.

Example:
    service = EncryptionService()
    keys = service.generate_key_pair()

    envelope = service.encrypt_with_public_key({"condition": "migraine"}, keys.public_key)
    record = service.decrypt_with_private_key(envelope, keys.private_key)
"""

from typing import Any, Mapping, Optional, Union

from .keys import KeyInput, KeyPair, SymmetricKey
from .envelope import EncryptedEnvelope, encrypt_with_public_key, decrypt_with_private_key
from .symmetric import (
    KeyMaterial,
    SymmetricScheme,
    encrypt_symmetric,
    decrypt_symmetric,
)


class EncryptionService:
    """
    Stateless encryption operations.

    The symmetric scheme is fixed at construction; asymmetric envelopes
    always use the ECIES construction.
    """

    def __init__(self, symmetric_scheme: SymmetricScheme = SymmetricScheme.AES_256_CBC):
        """
        Args:
            symmetric_scheme: Scheme used by encrypt_symmetric/decrypt_symmetric
        """
        self._scheme = symmetric_scheme

    @classmethod
    def from_config(cls, config) -> 'EncryptionService':
        """Build from a VaultConfig."""
        return cls(symmetric_scheme=config.symmetric_scheme)

    @property
    def symmetric_scheme(self) -> SymmetricScheme:
        return self._scheme

    # ------------------------------------------------------------------
    # Asymmetric
    # ------------------------------------------------------------------

    def generate_key_pair(self) -> KeyPair:
        """Generate a new secp256k1 key pair."""
        return KeyPair.generate()

    def encrypt_with_public_key(self, payload: Any, public_key: KeyInput) -> EncryptedEnvelope:
        """Encrypt payload to public_key; see envelope.encrypt_with_public_key."""
        return encrypt_with_public_key(payload, public_key)

    def decrypt_with_private_key(self,
                                 envelope: Union[EncryptedEnvelope, Mapping[str, Any]],
                                 private_key: KeyInput) -> Any:
        """Verify and decrypt; see envelope.decrypt_with_private_key."""
        return decrypt_with_private_key(envelope, private_key)

    # ------------------------------------------------------------------
    # Symmetric
    # ------------------------------------------------------------------

    def generate_symmetric_key(self) -> SymmetricKey:
        """Generate a random 32-byte key and 16-byte IV."""
        return SymmetricKey.generate()

    def encrypt_symmetric(self, payload: Any, key_material: KeyMaterial,
                          scheme: Optional[SymmetricScheme] = None) -> str:
        """Encrypt payload with the service's scheme (or an explicit one)."""
        return encrypt_symmetric(payload, key_material, scheme or self._scheme)

    def decrypt_symmetric(self, ciphertext_hex: str, key_material: KeyMaterial,
                          scheme: Optional[SymmetricScheme] = None) -> Any:
        """Decrypt ciphertext with the service's scheme (or an explicit one)."""
        return decrypt_symmetric(ciphertext_hex, key_material, scheme or self._scheme)
