"""
Key material for MedVault.

Implements:
- secp256k1 key pairs (the curve used by the IPFS/Ethereum ECIES ecosystem)
- Symmetric key material (AES-256 key + 16-byte IV)
- Hex/bytes coercion helpers shared by the envelope and symmetric modules

Key pair format:
    private key: 32-byte big-endian scalar d, 1 <= d < n
    public key:  65-byte uncompressed SEC1 point (0x04 || X || Y)

Key material is never logged.
"""

import re
import secrets
import logging
from dataclasses import dataclass
from typing import Dict, Type, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import VaultError, EncryptionError, ResourceUnavailable


logger = logging.getLogger(__name__)

# Constants
CURVE = ec.SECP256K1()
CURVE_ORDER = int(
    "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16
)
PRIVATE_KEY_SIZE = 32        # 256-bit scalar
COMPRESSED_KEY_SIZE = 33     # 0x02/0x03 || X
UNCOMPRESSED_KEY_SIZE = 65   # 0x04 || X || Y
SYMMETRIC_KEY_SIZE = 32      # AES-256
SYMMETRIC_IV_SIZE = 16       # AES block size

KeyInput = Union[bytes, bytearray, str]

HEX_RE = re.compile(r"(?:[0-9a-fA-F]{2})*")


def random_bytes(size: int, operation: str = "random_bytes") -> bytes:
    """
    Draw bytes from the OS CSPRNG.

    Raises:
        ResourceUnavailable: If the randomness source fails
    """
    try:
        return secrets.token_bytes(size)
    except (OSError, NotImplementedError) as exc:
        logger.error("Randomness source unavailable during %s", operation)
        raise ResourceUnavailable(
            "randomness source unavailable", operation=operation
        ) from exc


def to_bytes(value: KeyInput, field: str, error_cls: Type[VaultError],
             operation: str) -> bytes:
    """
    Coerce raw bytes or a hex string to bytes.

    A leading "0x" on hex input is accepted. Anything else must be an
    even number of hex digits; whitespace is rejected.

    Raises:
        error_cls: If value is neither bytes nor valid hex
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        text = value[2:] if value[:2].lower() == "0x" else value
        try:
            if not HEX_RE.fullmatch(text):
                raise ValueError("not an even-length run of hex digits")
            return bytes.fromhex(text)
        except ValueError as exc:
            raise error_cls("malformed hex", operation=operation, field=field) from exc
    raise error_cls(
        f"expected bytes or hex string, got {type(value).__name__}",
        operation=operation, field=field
    )


def load_public_key(data: bytes, field: str, error_cls: Type[VaultError],
                    operation: str) -> ec.EllipticCurvePublicKey:
    """
    Parse a SEC1-encoded secp256k1 public key (compressed or uncompressed).

    Raises:
        error_cls: On wrong length or a point that is not on the curve
    """
    if len(data) not in (COMPRESSED_KEY_SIZE, UNCOMPRESSED_KEY_SIZE):
        raise error_cls(
            f"public key must be {COMPRESSED_KEY_SIZE} or "
            f"{UNCOMPRESSED_KEY_SIZE} bytes, got {len(data)}",
            operation=operation, field=field
        )
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, data)
    except UnsupportedAlgorithm as exc:
        raise ResourceUnavailable(
            "secp256k1 not supported by the crypto backend", operation=operation
        ) from exc
    except ValueError as exc:
        raise error_cls(
            "invalid public key point", operation=operation, field=field
        ) from exc


def load_private_key(data: bytes, field: str, error_cls: Type[VaultError],
                     operation: str) -> ec.EllipticCurvePrivateKey:
    """
    Build a secp256k1 private key from a 32-byte scalar.

    Raises:
        error_cls: On wrong length or a scalar outside [1, n-1]
    """
    if len(data) != PRIVATE_KEY_SIZE:
        raise error_cls(
            f"private key must be {PRIVATE_KEY_SIZE} bytes, got {len(data)}",
            operation=operation, field=field
        )
    scalar = int.from_bytes(data, 'big')
    if not 0 < scalar < CURVE_ORDER:
        raise error_cls(
            "private key scalar out of range", operation=operation, field=field
        )
    try:
        return ec.derive_private_key(scalar, CURVE)
    except UnsupportedAlgorithm as exc:
        raise ResourceUnavailable(
            "secp256k1 not supported by the crypto backend", operation=operation
        ) from exc


def encode_public_key(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Uncompressed SEC1 encoding (65 bytes)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint
    )


def generate_private_scalar(operation: str = "generate_key_pair") -> bytes:
    """Random 32 bytes that form a valid secp256k1 scalar."""
    while True:
        candidate = random_bytes(PRIVATE_KEY_SIZE, operation)
        if 0 < int.from_bytes(candidate, 'big') < CURVE_ORDER:
            return candidate


@dataclass(frozen=True)
class KeyPair:
    """secp256k1 key pair as raw bytes."""
    private_key: bytes    # 32 bytes
    public_key: bytes     # 65 bytes, uncompressed

    @classmethod
    def generate(cls) -> 'KeyPair':
        """Generate a new random key pair."""
        return cls.from_private_key(generate_private_scalar("generate_key_pair"))

    @classmethod
    def from_private_key(cls, private_key: KeyInput) -> 'KeyPair':
        """
        Re-derive a key pair from a stored private key.

        Args:
            private_key: 32-byte scalar as bytes or hex

        Raises:
            EncryptionError: If the private key is malformed
        """
        operation = "KeyPair.from_private_key"
        raw = to_bytes(private_key, "privateKey", EncryptionError, operation)
        key = load_private_key(raw, "privateKey", EncryptionError, operation)
        return cls(raw, encode_public_key(key.public_key()))

    @property
    def private_hex(self) -> str:
        return self.private_key.hex()

    @property
    def public_hex(self) -> str:
        return self.public_key.hex()

    def to_dict(self) -> Dict[str, str]:
        """Hex form: {"privateKey": ..., "publicKey": ...}."""
        return {
            'privateKey': self.private_hex,
            'publicKey': self.public_hex,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'KeyPair':
        """Load from the hex form; the public key is re-derived and checked."""
        if 'privateKey' not in data:
            raise EncryptionError("missing", operation="KeyPair.from_dict",
                                  field="privateKey")
        pair = cls.from_private_key(data['privateKey'])
        stored = data.get('publicKey')
        if stored is not None:
            stored_bytes = to_bytes(stored, "publicKey", EncryptionError,
                                    "KeyPair.from_dict")
            if stored_bytes != pair.public_key:
                raise EncryptionError(
                    "public key does not match private key",
                    operation="KeyPair.from_dict", field="publicKey"
                )
        return pair

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_hex[:16]}...)"


@dataclass(frozen=True)
class SymmetricKey:
    """
    AES-256 key and IV.

    HAZARD: with the CBC scheme the IV is fixed per key material. Encrypting
    more than one message under the same SymmetricKey reuses the IV and
    leaks whether two plaintexts share a common prefix. Generate fresh
    material per message, or use the GCM scheme.
    """
    key: bytes    # 32 bytes
    iv: bytes     # 16 bytes

    @classmethod
    def generate(cls) -> 'SymmetricKey':
        """Generate a random 32-byte key and 16-byte IV."""
        return cls(
            random_bytes(SYMMETRIC_KEY_SIZE, "generate_symmetric_key"),
            random_bytes(SYMMETRIC_IV_SIZE, "generate_symmetric_key"),
        )

    def validate(self, error_cls: Type[VaultError], operation: str) -> None:
        """Check key and IV lengths."""
        if len(self.key) != SYMMETRIC_KEY_SIZE:
            raise error_cls(
                f"key must be {SYMMETRIC_KEY_SIZE} bytes, got {len(self.key)}",
                operation=operation, field="key"
            )
        if len(self.iv) != SYMMETRIC_IV_SIZE:
            raise error_cls(
                f"iv must be {SYMMETRIC_IV_SIZE} bytes, got {len(self.iv)}",
                operation=operation, field="iv"
            )

    def to_dict(self) -> Dict[str, str]:
        """Hex form: {"key": ..., "iv": ...}."""
        return {'key': self.key.hex(), 'iv': self.iv.hex()}

    @classmethod
    def from_dict(cls, data: Dict[str, KeyInput],
                  error_cls: Type[VaultError] = None,
                  operation: str = "SymmetricKey.from_dict") -> 'SymmetricKey':
        """Load from the hex form (bytes values are accepted too)."""
        error_cls = error_cls or EncryptionError
        for name in ('key', 'iv'):
            if name not in data:
                raise error_cls("missing", operation=operation, field=name)
        return cls(
            to_bytes(data['key'], "key", error_cls, operation),
            to_bytes(data['iv'], "iv", error_cls, operation),
        )

    def __repr__(self) -> str:
        return "SymmetricKey(key=<hidden>, iv=<hidden>)"


def generate_key_pair() -> KeyPair:
    """Generate a new secp256k1 key pair."""
    return KeyPair.generate()


def generate_symmetric_key() -> SymmetricKey:
    """Generate a random AES-256 key and IV."""
    return SymmetricKey.generate()
