"""
Symmetric encryption of payloads.

Two schemes:
- AES-256-CBC (default): PKCS#7 padding, key and IV taken from the
  SymmetricKey. Output is the lowercase hex of the raw ciphertext, which
  matches ciphertexts already stored by earlier deployments.
  NOT authenticated: tampering is only noticed if it breaks the padding
  or the JSON. Reusing one SymmetricKey for several messages reuses the IV.
- AES-256-GCM: authenticated. A fresh 12-byte nonce per call is prefixed
  to the output, so the SymmetricKey IV is ignored.

GCM output format:
    [nonce (12 bytes) | ciphertext | tag (16 bytes)]
"""

import logging
from enum import Enum
from typing import Any, Mapping, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import EncryptionError, DecryptionError
from .keys import SymmetricKey, random_bytes, to_bytes
from .payload import serialize_payload, parse_payload


logger = logging.getLogger(__name__)

# Constants
BLOCK_SIZE = 16          # AES block size in bytes
GCM_NONCE_SIZE = 12      # 96 bits for GCM
GCM_TAG_SIZE = 16        # 128-bit tag


class SymmetricScheme(Enum):
    """Supported symmetric constructions."""
    AES_256_CBC = "aes-256-cbc"
    AES_256_GCM = "aes-256-gcm"


KeyMaterial = Union[SymmetricKey, Mapping[str, Any]]


def cbc_encrypt(key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """AES-CBC with PKCS#7 padding."""
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def cbc_decrypt(key: bytes, iv: bytes, ciphertext: bytes,
                operation: str = "cbc_decrypt") -> bytes:
    """
    Reverse of cbc_encrypt.

    Raises:
        DecryptionError: If the ciphertext is not block-aligned or the
            padding is invalid (wrong key/IV or corruption)
    """
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise DecryptionError(
            f"ciphertext length {len(ciphertext)} is not a positive multiple "
            f"of {BLOCK_SIZE}",
            operation=operation, field="ciphertext"
        )
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        logger.debug("CBC padding check failed in %s", operation)
        raise DecryptionError(
            "invalid padding (wrong key/iv or corrupted ciphertext)",
            operation=operation, field="ciphertext"
        ) from exc


def _key_material(key_material: KeyMaterial, error_cls, operation: str) -> SymmetricKey:
    if isinstance(key_material, SymmetricKey):
        material = key_material
    elif isinstance(key_material, Mapping):
        material = SymmetricKey.from_dict(key_material, error_cls, operation)
    else:
        raise error_cls(
            f"expected SymmetricKey or mapping, got {type(key_material).__name__}",
            operation=operation, field="keyMaterial"
        )
    material.validate(error_cls, operation)
    return material


def encrypt_symmetric(payload: Any, key_material: KeyMaterial,
                      scheme: SymmetricScheme = SymmetricScheme.AES_256_CBC) -> str:
    """
    Encrypt a payload with AES-256.

    As with envelopes, decryption parses JSON-looking text and decodes bytes
    as UTF-8 with U+FFFD replacement, so non-UTF-8 bytes come back lossy.

    Args:
        payload: JSON-serializable value, str, or bytes
        key_material: SymmetricKey or {"key": hex, "iv": hex}
        scheme: AES_256_CBC (compatible, unauthenticated) or AES_256_GCM

    Returns:
        Lowercase hex ciphertext

    Raises:
        EncryptionError: Wrong key/IV length or unserializable payload
    """
    operation = "encrypt_symmetric"
    material = _key_material(key_material, EncryptionError, operation)
    plaintext = serialize_payload(payload, operation)

    if scheme is SymmetricScheme.AES_256_GCM:
        nonce = random_bytes(GCM_NONCE_SIZE, operation)
        sealed = AESGCM(material.key).encrypt(nonce, plaintext, None)
        return (nonce + sealed).hex()

    return cbc_encrypt(material.key, material.iv, plaintext).hex()


def decrypt_symmetric(ciphertext_hex: Union[str, bytes], key_material: KeyMaterial,
                      scheme: SymmetricScheme = SymmetricScheme.AES_256_CBC) -> Any:
    """
    Decrypt output of encrypt_symmetric.

    Args:
        ciphertext_hex: Hex string (raw bytes are accepted as-is)
        key_material: The SymmetricKey used to encrypt
        scheme: Must match the scheme used to encrypt

    Returns:
        Parsed JSON value, or the decoded text if it is not JSON

    Raises:
        DecryptionError: Wrong key/IV length, malformed hex, bad padding,
            or failed GCM authentication
    """
    operation = "decrypt_symmetric"
    material = _key_material(key_material, DecryptionError, operation)
    data = to_bytes(ciphertext_hex, "ciphertext", DecryptionError, operation)

    if scheme is SymmetricScheme.AES_256_GCM:
        if len(data) < GCM_NONCE_SIZE + GCM_TAG_SIZE:
            raise DecryptionError(
                f"ciphertext too short ({len(data)} bytes)",
                operation=operation, field="ciphertext"
            )
        nonce, sealed = data[:GCM_NONCE_SIZE], data[GCM_NONCE_SIZE:]
        try:
            plaintext = AESGCM(material.key).decrypt(nonce, sealed, None)
        except InvalidTag as exc:
            logger.warning("GCM authentication failed in %s", operation)
            raise DecryptionError(
                "authentication tag mismatch", operation=operation, field="ciphertext"
            ) from exc
    else:
        plaintext = cbc_decrypt(material.key, material.iv, data, operation)

    return parse_payload(plaintext)
