import hashlib
from typing import Dict

import httpx
import pytest

from medvault.config import VaultConfig


class FakeIPFSNode:
    """In-memory stand-in for the IPFS HTTP API (`add` and `cat`)."""

    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.requests = []

    @staticmethod
    def _multipart_file(request: httpx.Request) -> bytes:
        boundary = request.headers["content-type"].split("boundary=")[1].encode()
        part = request.content.split(b"--" + boundary)[1]
        return part.split(b"\r\n\r\n", 1)[1].rsplit(b"\r\n", 1)[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/v0/add":
            data = self._multipart_file(request)
            cid = "Qm" + hashlib.sha256(data).hexdigest()[:44]
            self.blobs[cid] = data
            return httpx.Response(
                200, json={"Name": "record.json", "Hash": cid, "Size": str(len(data))}
            )
        if request.url.path == "/api/v0/cat":
            cid = request.url.params.get("arg")
            if cid not in self.blobs:
                return httpx.Response(500, json={"Message": "merkledag: not found"})
            return httpx.Response(200, content=self.blobs[cid])
        return httpx.Response(404, text="404 page not found")

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler), timeout=10.0)


@pytest.fixture
def config() -> VaultConfig:
    return VaultConfig(
        ipfs_api_url="http://ipfs.test:5001",
        ipfs_gateway_url="https://gateway.test",
    )


@pytest.fixture
def ipfs_node() -> FakeIPFSNode:
    return FakeIPFSNode()
