"""
IPFS storage for MedVault.

Implements:
- Raw add/cat against the IPFS HTTP RPC API (`/api/v0/add`, `/api/v0/cat`)
- Record upload, optionally encrypted to a patient's public key
- Record retrieval, optionally decrypted with the patient's private key

Notes
- Records are stored as compact UTF-8 JSON; encrypted records are the
  envelope JSON {"iv", "ephemPublicKey", "ciphertext", "mac"}.
- Every failure on the wire surfaces as StorageError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import VaultConfig
from ..errors import StorageError
from ..encryption.envelope import EncryptedEnvelope
from ..encryption.keys import KeyInput
from ..encryption.service import EncryptionService


logger = logging.getLogger(__name__)

API_PREFIX = "/api/v0"
UPLOAD_FILENAME = "record.json"


@dataclass(frozen=True)
class UploadResult:
    """Outcome of an upload: CID, stored size in bytes and public gateway URL."""
    cid: str
    size: int
    is_encrypted: bool
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cid": self.cid,
            "size": self.size,
            "isEncrypted": self.is_encrypted,
            "url": self.url,
        }


class IPFSGateway:
    """
    Minimal IPFS HTTP API client.

    Notes
    - Speaks the Kubo RPC endpoints `add` and `cat` (both POST).
    - Hosted nodes (e.g. Infura) need basic auth; set project id/secret in config.
    - Encryption is delegated to an EncryptionService; when a public key is
      given the stored blob is the envelope JSON, not the plaintext.
    - No retries. Transport failures and non-2xx replies raise StorageError.
    """

    def __init__(
        self,
        config: VaultConfig,
        *,
        client: Optional[httpx.Client] = None,
        encryption: Optional[EncryptionService] = None,
    ) -> None:
        self._api_url = config.ipfs_api_url.rstrip("/")
        self._gateway_url = config.ipfs_gateway_url.rstrip("/")
        self._auth = config.ipfs_auth
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=config.request_timeout)
        self._encryption = encryption or EncryptionService.from_config(config)

    def close(self) -> None:
        """Close the HTTP client if this gateway created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "IPFSGateway":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Public API ---------------
    def url_for(self, cid: str) -> str:
        """Public gateway URL for a CID."""
        return f"{self._gateway_url}/ipfs/{cid}"

    def add_bytes(self, data: bytes, *, is_encrypted: bool = False) -> UploadResult:
        """Store an opaque blob and return its CID."""
        resp = self._post("add", "add_bytes", files={"file": (UPLOAD_FILENAME, data)})
        try:
            payload = resp.json()
            cid = payload["Hash"]
            size = int(payload.get("Size", len(data)))
        except (ValueError, KeyError, TypeError) as exc:
            raise StorageError(
                f"Unexpected reply from IPFS add: {resp.text[:200]}", operation="add_bytes"
            ) from exc
        logger.info("Stored %d bytes on IPFS as %s (encrypted=%s)", size, cid, is_encrypted)
        return UploadResult(cid=cid, size=size, is_encrypted=is_encrypted, url=self.url_for(cid))

    def cat(self, cid: str) -> bytes:
        """Fetch the raw bytes stored under a CID."""
        if not cid:
            raise StorageError("cid is required", operation="cat", field="cid")
        resp = self._post("cat", "cat", params={"arg": cid})
        logger.info("Fetched %d bytes from IPFS for %s", len(resp.content), cid)
        return resp.content

    def upload(self, data: Any, public_key: Optional[KeyInput] = None) -> UploadResult:
        """
        Upload a record, encrypting it to `public_key` first when given.
        An empty key is an error, never a request for plaintext storage.

        The stored blob is JSON: either the record itself or the envelope
        {"iv", "ephemPublicKey", "ciphertext", "mac"}.
        """
        content = data
        if public_key is not None:
            content = self._encryption.encrypt_with_public_key(data, public_key).to_dict()
        try:
            body = json.dumps(content, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise StorageError(
                f"Record is not JSON-serializable: {exc}", operation="upload", field="data"
            ) from exc
        return self.add_bytes(body, is_encrypted=public_key is not None)

    def retrieve(self, cid: str, private_key: Optional[KeyInput] = None) -> Any:
        """
        Fetch a record; decrypt it when a private key is given and the blob
        is an envelope.

        Returns the parsed JSON (or raw text when the blob is not JSON).
        A failed decryption raises DecryptionError; it is never returned as text.
        """
        text = self.cat(cid).decode("utf-8", errors="replace")
        try:
            content = json.loads(text)
        except ValueError:
            return text

        if private_key is not None and EncryptedEnvelope.looks_like_envelope(content):
            return self._encryption.decrypt_with_private_key(content, private_key)
        return content

    # --------------- Internal ---------------
    def _post(self, endpoint: str, operation: str, **kwargs: Any) -> httpx.Response:
        """
        POST to an RPC endpoint with the configured auth.

        Raises:
            StorageError: On transport failure or a non-200 reply
        """
        url = f"{self._api_url}{API_PREFIX}/{endpoint}"
        if self._auth is not None:
            kwargs["auth"] = self._auth
        try:
            resp = self._client.post(url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("IPFS %s request failed: %s", endpoint, exc)
            raise StorageError(f"IPFS node unreachable: {exc}", operation=operation) from exc
        if resp.status_code != 200:
            raise StorageError(
                f"HTTP {resp.status_code} from IPFS node: {resp.text[:200]}",
                operation=operation,
            )
        return resp
