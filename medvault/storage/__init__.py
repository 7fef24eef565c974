# Storage Module
"""
Content-addressed storage of (encrypted) records on IPFS.

Records are uploaded as JSON; with a public key they are sealed into an
ECIES envelope first. Retrieval optionally opens the envelope again.
"""

from .ipfs_gateway import IPFSGateway, UploadResult

__all__ = [
    'IPFSGateway',
    'UploadResult',
]
