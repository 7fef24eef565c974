"""
MedVault - encrypted medical-record storage.

Modules:
- encryption: secp256k1 ECIES envelopes and AES-256 symmetric encryption
- storage: IPFS HTTP gateway
- vault: seal/open records (encrypt + store, fetch + decrypt)
- config: VaultConfig
- errors: VaultError hierarchy
"""

__version__ = "0.1.0"
