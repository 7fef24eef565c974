# Encryption Module
"""
Record encryption implementations including:
- secp256k1 key pairs
- ECIES envelopes (ECDH + SHA-512 KDF + AES-256-CBC + HMAC-SHA256)
- AES-256-CBC symmetric encryption (compatible format)
- AES-256-GCM symmetric encryption (authenticated, opt-in)

Envelope format: {"iv", "ephemPublicKey", "ciphertext", "mac"} (lowercase hex)

Security features:
- Fresh ephemeral key and IV per envelope
- MAC verified in constant time before decryption
- Best-effort JSON parse of decrypted payloads
"""

from .keys import (
    KeyPair,
    SymmetricKey,
    generate_key_pair,
    generate_symmetric_key,
)
from .envelope import (
    EncryptedEnvelope,
    encrypt_with_public_key,
    decrypt_with_private_key,
)
from .symmetric import (
    SymmetricScheme,
    encrypt_symmetric,
    decrypt_symmetric,
)
from .payload import serialize_payload, parse_payload
from .service import EncryptionService

__all__ = [
    'KeyPair',
    'SymmetricKey',
    'EncryptedEnvelope',
    'SymmetricScheme',
    'EncryptionService',
    'generate_key_pair',
    'generate_symmetric_key',
    'encrypt_with_public_key',
    'decrypt_with_private_key',
    'encrypt_symmetric',
    'decrypt_symmetric',
    'serialize_payload',
    'parse_payload',
]
