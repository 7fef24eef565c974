"""
Record Vault

Seals medical records for a patient and stores them on IPFS:

    seal(record, public_key)  ->  UploadResult (CID, size, URL)
    open(cid, private_key)    ->  record

The returned CID is what a ledger client embeds in a minting transaction.
"""

import logging
from typing import Any, Optional

from .config import VaultConfig
from .errors import DecryptionError, EncryptionError
from .encryption.envelope import EncryptedEnvelope
from .encryption.keys import KeyInput
from .encryption.service import EncryptionService
from .storage.ipfs_gateway import IPFSGateway, UploadResult


logger = logging.getLogger(__name__)


class RecordVault:
    """
    Composition of EncryptionService and IPFSGateway.

    Example:
        config = VaultConfig.from_env()
        with RecordVault(config) as vault:
            keys = vault.encryption.generate_key_pair()
            result = vault.seal({"condition": "migraine"}, keys.public_hex)
            record = vault.open(result.cid, keys.private_hex)
    """

    def __init__(self, config: VaultConfig,
                 gateway: Optional[IPFSGateway] = None,
                 encryption: Optional[EncryptionService] = None):
        """
        Args:
            config: Vault configuration
            gateway: Existing gateway (created from config if None)
            encryption: Existing service (created from config if None)
        """
        self._config = config
        self._encryption = encryption or EncryptionService.from_config(config)
        self._owns_gateway = gateway is None
        self._gateway = gateway or IPFSGateway(config, encryption=self._encryption)

    @property
    def encryption(self) -> EncryptionService:
        return self._encryption

    @property
    def gateway(self) -> IPFSGateway:
        return self._gateway

    def close(self) -> None:
        if self._owns_gateway:
            self._gateway.close()

    def __enter__(self) -> 'RecordVault':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def seal(self, record: Any, public_key: KeyInput) -> UploadResult:
        """
        Encrypt a record to public_key and store the envelope.

        Raises:
            EncryptionError: If public_key is empty or malformed
            StorageError: If the upload fails
        """
        if not public_key:
            raise EncryptionError("public key is required", operation="seal",
                                  field="publicKey")
        result = self._gateway.upload(record, public_key)
        logger.info("Sealed record stored at %s", result.cid)
        return result

    def store_plain(self, record: Any) -> UploadResult:
        """Store a record without encryption."""
        return self._gateway.upload(record)

    def open(self, cid: str, private_key: KeyInput) -> Any:
        """
        Fetch and decrypt a sealed record.

        Raises:
            DecryptionError: If the blob is not an envelope or fails verification
            StorageError: If the fetch fails
        """
        if not private_key:
            raise DecryptionError("private key is required", operation="open",
                                  field="privateKey")
        content = self._gateway.retrieve(cid)
        return self._encryption.decrypt_with_private_key(
            self._as_envelope(content, cid), private_key
        )

    @staticmethod
    def _as_envelope(content: Any, cid: str) -> Any:
        if not EncryptedEnvelope.looks_like_envelope(content):
            raise DecryptionError(f"content at {cid} is not an encrypted envelope",
                                  operation="open", field="envelope")
        return content
