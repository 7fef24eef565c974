"""
ECIES envelope encryption on secp256k1.

Compatible with the eccrypto construction used across the IPFS/Ethereum
ecosystem:

    shared   = x-coordinate of ECDH(ephemeral_priv, recipient_pub)   (32 bytes)
    h        = SHA-512(shared)
    enc_key  = h[:32]
    mac_key  = h[32:]
    ct       = AES-256-CBC(enc_key, iv, PKCS7(plaintext))
    mac      = HMAC-SHA256(mac_key, iv || ephem_pub || ct)

Envelope wire format (JSON, all lowercase hex):
    {"iv": ..., "ephemPublicKey": ..., "ciphertext": ..., "mac": ...}

Security features:
- Fresh ephemeral key and IV per encryption
- MAC verified (constant time) BEFORE the ciphertext is decrypted
"""

import hmac
import json
import hashlib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from cryptography.hazmat.primitives.asymmetric import ec

from ..errors import EncryptionError, DecryptionError
from .keys import (
    KeyInput,
    COMPRESSED_KEY_SIZE,
    UNCOMPRESSED_KEY_SIZE,
    to_bytes,
    random_bytes,
    load_public_key,
    load_private_key,
    encode_public_key,
    generate_private_scalar,
)
from .payload import serialize_payload, parse_payload
from .symmetric import BLOCK_SIZE, cbc_encrypt, cbc_decrypt


logger = logging.getLogger(__name__)

# Constants
IV_SIZE = 16           # AES-CBC IV
MAC_SIZE = 32          # HMAC-SHA256
ENVELOPE_FIELDS = ('iv', 'ephemPublicKey', 'ciphertext', 'mac')


@dataclass(frozen=True)
class EncryptedEnvelope:
    """
    Container for ECIES output.

    All four fields are raw bytes; to_dict()/to_json() produce the hex wire form.
    """
    iv: bytes                 # 16 bytes
    ephem_public_key: bytes   # 65 bytes (uncompressed point)
    ciphertext: bytes         # multiple of 16 bytes
    mac: bytes                # 32 bytes

    def to_dict(self) -> Dict[str, str]:
        """Serialize to the hex wire form."""
        return {
            'iv': self.iv.hex(),
            'ephemPublicKey': self.ephem_public_key.hex(),
            'ciphertext': self.ciphertext.hex(),
            'mac': self.mac.hex(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any],
                  operation: str = "EncryptedEnvelope.from_dict") -> 'EncryptedEnvelope':
        """
        Deserialize from the hex wire form.

        Raises:
            DecryptionError: If a field is missing or not valid hex
        """
        decoded = {}
        for name in ENVELOPE_FIELDS:
            if name not in data:
                raise DecryptionError("missing", operation=operation, field=name)
            decoded[name] = to_bytes(data[name], name, DecryptionError, operation)
        return cls(
            iv=decoded['iv'],
            ephem_public_key=decoded['ephemPublicKey'],
            ciphertext=decoded['ciphertext'],
            mac=decoded['mac'],
        )

    def to_json(self) -> str:
        """Serialize to JSON text."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> 'EncryptedEnvelope':
        """Deserialize from JSON text."""
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise DecryptionError(
                "envelope is not valid JSON", operation="EncryptedEnvelope.from_json"
            ) from exc
        if not isinstance(data, dict):
            raise DecryptionError(
                "envelope JSON must be an object", operation="EncryptedEnvelope.from_json"
            )
        return cls.from_dict(data, operation="EncryptedEnvelope.from_json")

    @staticmethod
    def looks_like_envelope(data: Any) -> bool:
        """True if data is a mapping carrying all four envelope fields."""
        return isinstance(data, Mapping) and all(data.get(f) for f in ENVELOPE_FIELDS)


def derive_keys(private_key: ec.EllipticCurvePrivateKey,
                public_key: ec.EllipticCurvePublicKey) -> tuple:
    """
    ECDH + SHA-512 split into (encryption_key, mac_key).

    Returns:
        Tuple of two 32-byte keys
    """
    shared = private_key.exchange(ec.ECDH(), public_key)
    digest = hashlib.sha512(shared).digest()
    return digest[:32], digest[32:]


def compute_mac(mac_key: bytes, iv: bytes, ephem_public_key: bytes,
                ciphertext: bytes) -> bytes:
    """HMAC-SHA256 over iv || ephem_public_key || ciphertext."""
    return hmac.new(mac_key, iv + ephem_public_key + ciphertext, hashlib.sha256).digest()


def encrypt_with_public_key(payload: Any, public_key: KeyInput, *,
                            iv: Optional[bytes] = None,
                            ephemeral_private_key: Optional[KeyInput] = None
                            ) -> EncryptedEnvelope:
    """
    Encrypt a payload to a recipient's secp256k1 public key.

    The payload comes back from decrypt_with_private_key as parsed JSON when
    it looks like JSON (so the string "42" returns as 42). Bytes are decoded
    as UTF-8 on the way out; invalid sequences become U+FFFD, so non-UTF-8
    bytes do not round-trip exactly.

    Args:
        payload: JSON-serializable value, str, or bytes
        public_key: Recipient public key (33 or 65 bytes) as bytes or hex
        iv: Fixed 16-byte IV (test vectors only; random by default)
        ephemeral_private_key: Fixed ephemeral scalar (test vectors only)

    Returns:
        EncryptedEnvelope

    Raises:
        EncryptionError: Malformed public key or unserializable payload
    """
    operation = "encrypt_with_public_key"
    plaintext = serialize_payload(payload, operation)

    recipient_bytes = to_bytes(public_key, "publicKey", EncryptionError, operation)
    recipient = load_public_key(recipient_bytes, "publicKey", EncryptionError, operation)

    if ephemeral_private_key is None:
        ephem_raw = generate_private_scalar(operation)
    else:
        ephem_raw = to_bytes(ephemeral_private_key, "ephemeralPrivateKey",
                             EncryptionError, operation)
    ephemeral = load_private_key(ephem_raw, "ephemeralPrivateKey",
                                 EncryptionError, operation)

    if iv is None:
        iv = random_bytes(IV_SIZE, operation)
    elif len(iv) != IV_SIZE:
        raise EncryptionError(
            f"iv must be {IV_SIZE} bytes, got {len(iv)}",
            operation=operation, field="iv"
        )

    enc_key, mac_key = derive_keys(ephemeral, recipient)
    ciphertext = cbc_encrypt(enc_key, iv, plaintext)
    ephem_public = encode_public_key(ephemeral.public_key())
    mac = compute_mac(mac_key, iv, ephem_public, ciphertext)

    return EncryptedEnvelope(iv, ephem_public, ciphertext, mac)


def _check_lengths(envelope: EncryptedEnvelope, operation: str) -> None:
    if len(envelope.iv) != IV_SIZE:
        raise DecryptionError(
            f"expected {IV_SIZE} bytes, got {len(envelope.iv)}",
            operation=operation, field="iv"
        )
    if len(envelope.ephem_public_key) not in (COMPRESSED_KEY_SIZE, UNCOMPRESSED_KEY_SIZE):
        raise DecryptionError(
            f"expected {UNCOMPRESSED_KEY_SIZE} bytes, got {len(envelope.ephem_public_key)}",
            operation=operation, field="ephemPublicKey"
        )
    if not envelope.ciphertext or len(envelope.ciphertext) % BLOCK_SIZE:
        raise DecryptionError(
            f"length {len(envelope.ciphertext)} is not a positive multiple of {BLOCK_SIZE}",
            operation=operation, field="ciphertext"
        )
    if len(envelope.mac) != MAC_SIZE:
        raise DecryptionError(
            f"expected {MAC_SIZE} bytes, got {len(envelope.mac)}",
            operation=operation, field="mac"
        )


def decrypt_with_private_key(envelope: Union[EncryptedEnvelope, Mapping[str, Any]],
                             private_key: KeyInput) -> Any:
    """
    Verify and decrypt an envelope.

    Args:
        envelope: EncryptedEnvelope or its hex wire form
        private_key: Recipient 32-byte private key as bytes or hex

    Returns:
        Parsed JSON value, or the decoded text if it is not JSON

    Raises:
        DecryptionError: Bad MAC (tampered or wrong key), malformed field,
            or invalid private key
    """
    operation = "decrypt_with_private_key"

    if isinstance(envelope, EncryptedEnvelope):
        env = envelope
    elif isinstance(envelope, Mapping):
        env = EncryptedEnvelope.from_dict(envelope, operation)
    else:
        raise DecryptionError(
            f"expected envelope or mapping, got {type(envelope).__name__}",
            operation=operation, field="envelope"
        )
    _check_lengths(env, operation)

    key_bytes = to_bytes(private_key, "privateKey", DecryptionError, operation)
    recipient = load_private_key(key_bytes, "privateKey", DecryptionError, operation)
    ephemeral = load_public_key(env.ephem_public_key, "ephemPublicKey",
                                DecryptionError, operation)

    enc_key, mac_key = derive_keys(recipient, ephemeral)

    # Verify MAC before touching the ciphertext
    expected = compute_mac(mac_key, env.iv, env.ephem_public_key, env.ciphertext)
    if not hmac.compare_digest(expected, env.mac):
        logger.warning("Envelope MAC verification failed")
        raise DecryptionError(
            "MAC mismatch (tampered envelope or wrong private key)",
            operation=operation, field="mac"
        )

    plaintext = cbc_decrypt(enc_key, env.iv, env.ciphertext, operation)
    return parse_payload(plaintext)
