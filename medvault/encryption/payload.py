"""
Payload serialization.

Plaintext payloads are turned into bytes before any cryptographic operation:
- str    -> UTF-8 bytes as-is
- bytes  -> unchanged
- other  -> compact JSON (no spaces, non-ASCII kept), UTF-8

After decryption the bytes are decoded and parsed as JSON if possible,
otherwise the raw text is returned. Note that a string which is itself
valid JSON (e.g. "42") comes back parsed, and bytes that are not valid
UTF-8 come back as text with U+FFFD in place of the bad sequences.
"""

import json
from typing import Any

from ..errors import EncryptionError


JSON_SEPARATORS = (',', ':')


def serialize_payload(payload: Any, operation: str = "serialize_payload") -> bytes:
    """
    Convert a payload to the bytes that get encrypted.

    Args:
        payload: JSON-serializable value, str, or bytes
        operation: Name of the calling operation (for error context)

    Returns:
        Plaintext bytes

    Raises:
        EncryptionError: If the payload cannot be JSON-encoded
    """
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    if isinstance(payload, str):
        return payload.encode('utf-8')
    try:
        text = json.dumps(payload, separators=JSON_SEPARATORS,
                          ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncryptionError(
            f"payload is not JSON-serializable: {exc}",
            operation=operation, field="payload"
        ) from exc
    return text.encode('utf-8')


def parse_payload(data: bytes) -> Any:
    """
    Best-effort decode of decrypted bytes.

    Returns the parsed JSON value, or the decoded text if it is not JSON.
    Invalid UTF-8 sequences are replaced rather than rejected.
    """
    text = data.decode('utf-8', errors='replace')
    try:
        return json.loads(text)
    except ValueError:
        return text
