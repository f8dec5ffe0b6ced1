"""
Pytest fixtures for the vhosts proxy tests.
"""

import asyncio
import hashlib
import json

import pytest

from ipfs_vhosts.config import VhostsConfig
from ipfs_vhosts.exceptions import StorageError
from ipfs_vhosts.registry import VhostRegistry

HELLO_CID = "bafybeictjmxvlw7xuzubam2wuzjruwknbdmnprehzlliba4azjhan7f2fa"
ALEXA_CID = "QmUZLYaz4tPP61PBVRXAz8awzrPpauHkXRjseQu6TsKgrr"
ALEXA_CID_V1 = "bafybeic4myreejzgwrivmoc67qtbqucesfhs7hdfzplklmtaxz6ctn7ug4"
DOCS_CID = "QmbWqxBEKC3P8tqsKc98xmWNzrzDtRLMiMPL8wBuTGsMnR"
DOCS_CID_V1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"

IPNS_NAME = "k51qzi5uqu5dlvj2baxnqndepeb86cbk3ng7n3i46uzyxzyqj2xjonzllnv0v8"
IPNS_KEY = "vhosts"


class FakeStorage:
    """In-memory stand-in for the IPFS HTTP API."""

    def __init__(self, records: dict[str, str] | None = None):
        self.blobs: dict[str, bytes] = {}
        self.names: dict[str, str] = {}
        self.published: list[tuple[str, str, str]] = []
        self.fail_cat = False
        self.fail_add = False
        self.fail_publish = False
        self.closed = False
        if records is not None:
            self.seed(records)

    def seed(self, records: dict[str, str]) -> str:
        data = json.dumps(records).encode("utf-8")
        cid = self._store(data)
        self.names[f"/ipns/{IPNS_NAME}"] = cid
        return cid

    def _store(self, data: bytes) -> str:
        cid = "fake" + hashlib.sha256(data).hexdigest()[:16]
        self.blobs[cid] = data
        return cid

    def record(self) -> dict[str, str]:
        return json.loads(self.blobs[self.names[f"/ipns/{IPNS_NAME}"]])

    async def cat(self, path: str) -> bytes:
        await asyncio.sleep(0)
        if self.fail_cat:
            raise StorageError("cat failed")
        cid = self.names.get(path)
        if cid is None:
            raise StorageError(f"could not resolve name {path}")
        return self.blobs[cid]

    async def add(self, data: bytes) -> str:
        await asyncio.sleep(0)
        if self.fail_add:
            raise StorageError("add failed")
        return self._store(data)

    async def name_publish(self, cid: str, lifetime: str, key: str) -> None:
        await asyncio.sleep(0)
        if self.fail_publish:
            raise StorageError("publish failed")
        self.published.append((cid, lifetime, key))
        self.names[f"/ipns/{IPNS_NAME}"] = cid

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def records() -> dict[str, str]:
    return {"hello": HELLO_CID, "alexa": ALEXA_CID}


@pytest.fixture
def storage(records: dict[str, str]) -> FakeStorage:
    return FakeStorage(records)


@pytest.fixture
def registry(storage: FakeStorage) -> VhostRegistry:
    return VhostRegistry(storage, ipns_name=IPNS_NAME, ipns_key=IPNS_KEY, refresh_interval=0.01)


def make_config(gateway: str = "http://127.0.0.1:8080", **overrides) -> VhostsConfig:
    raw = {
        "proxy": {"hostname": "example.com", "port": 8000},
        "ipfs": {
            "gateway": {"address": gateway},
            "api": {"host": "127.0.0.1", "port": 5001},
            "ipns": {"key": IPNS_KEY, "name": IPNS_NAME},
            "refresh_interval": 3600,
        },
    }
    raw.update(overrides)
    return VhostsConfig(**raw)
